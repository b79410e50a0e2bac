from __future__ import annotations

import pytest

from fakes import FakeChartProvider, FakeNarrator, external
from schemas import CombinedAnalysisIn, HollandTestIn, ZiweiAnalysisIn
from services.analysis_services import (
    CHART_STAGE_BUDGET,
    COMBINED_BUDGET,
    AnalysisInputError,
    AnalysisPipeline,
)
from services.ziwei_services import ChartUnavailableError


def _combined(birth_payload, answers, **extra):
    return CombinedAnalysisIn(**birth_payload, hollandAnswers=answers, **extra)


def test_both_stages_use_the_service_when_available(birth_payload, answers, chart_provider):
    narrator = FakeNarrator([external("紫微解读"), external("综合解读")])
    data = AnalysisPipeline(narrator, chart_provider).combined_analysis(_combined(birth_payload, answers))

    assert data.ziweiAnalysis.source == "external"
    assert data.combinedAnalysis.source == "external"
    assert data.combinedAnalysis.text == "综合解读"
    assert [c["budget"] for c in narrator.calls] == [CHART_STAGE_BUDGET, COMBINED_BUDGET]
    # combined prompt embeds the chart narrative and the ranked profile
    assert "紫微解读" in narrator.calls[1]["prompt"]
    assert data.hollandResult.hollandCode in narrator.calls[1]["prompt"]
    assert chart_provider.calls == [("2006-08-16", 7, "男")]


def test_chart_stage_failure_still_attempts_combined_stage(birth_payload, answers, chart_provider):
    narrator = FakeNarrator([None, external("综合解读")])
    data = AnalysisPipeline(narrator, chart_provider).combined_analysis(_combined(birth_payload, answers))

    assert data.ziweiAnalysis.source == "fallback"
    assert data.combinedAnalysis.source == "external"
    assert len(narrator.calls) == 2
    assert data.ziweiAnalysis.text in narrator.calls[1]["prompt"]


def test_combined_stage_failure_keeps_chart_narrative(birth_payload, answers, chart_provider):
    narrator = FakeNarrator([external("紫微解读"), None])
    data = AnalysisPipeline(narrator, chart_provider).combined_analysis(_combined(birth_payload, answers))

    assert data.ziweiAnalysis.source == "external"
    assert data.combinedAnalysis.source == "fallback"
    assert data.combinedAnalysis.text


def test_chart_library_outage_uses_placeholder(birth_payload, answers):
    narrator = FakeNarrator([external("综合解读")])
    provider = FakeChartProvider(error=ChartUnavailableError("py-iztro is not installed"))
    data = AnalysisPipeline(narrator, provider).combined_analysis(_combined(birth_payload, answers))

    assert data.userInfo.name == "小明"
    assert data.userInfo.soul == "未知"
    assert data.ziweiAnalysis.source == "fallback"
    # no narrative call is spent on an empty chart; only the combined stage runs
    assert len(narrator.calls) == 1
    assert data.combinedAnalysis.source == "external"


def test_supplied_chart_and_narrative_are_reused(birth_payload, answers):
    narrator = FakeNarrator([external("综合解读")])
    provider = FakeChartProvider(error=AssertionError("must not be called"))
    supplied = {
        "userInfo": {"name": "小明", "gender": "男", "soul": "廉贞"},
        "palaces": {"命宫": {"name": "命宫", "position": "子", "majorStars": [{"name": "天相"}]}},
        "deepseekAnalysis": {"source": "external", "text": "之前的解读", "model": "deepseek-chat", "timestamp": "t"},
    }
    data = AnalysisPipeline(narrator, provider).combined_analysis(
        _combined(birth_payload, answers, ziweiAnalysis=supplied)
    )

    assert provider.calls == []
    assert data.userInfo.soul == "廉贞"
    assert data.ziweiAnalysis.text == "之前的解读"
    assert len(narrator.calls) == 1
    assert "之前的解读" in narrator.calls[0]["prompt"]


def test_supplied_chart_without_narrative_is_narrated(birth_payload, answers):
    narrator = FakeNarrator()
    provider = FakeChartProvider(error=AssertionError("must not be called"))
    supplied = {"userInfo": {"name": "小明"}, "palaces": {}}
    data = AnalysisPipeline(narrator, provider).combined_analysis(
        _combined(birth_payload, answers, ziweiAnalysis=supplied)
    )
    assert len(narrator.calls) == 2
    assert data.ziweiAnalysis.source == "fallback"


@pytest.mark.parametrize("bad", [None, [], [1] * 23, [1] * 25])
def test_wrong_answer_count_is_rejected(birth_payload, bad, chart_provider):
    narrator = FakeNarrator()
    with pytest.raises(AnalysisInputError):
        AnalysisPipeline(narrator, chart_provider).combined_analysis(_combined(birth_payload, bad))
    assert narrator.calls == []
    assert chart_provider.calls == []


def test_holland_only_fallback(answers, chart_provider):
    data = AnalysisPipeline(FakeNarrator(), chart_provider).holland_test(HollandTestIn(answers=answers))
    assert data.analysis.source == "fallback"
    assert data.hollandCode == data.profile.hollandCode
    assert [t.type for t in data.primaryTypes] == list(data.hollandCode)


def test_holland_prompt_includes_ziwei_info(answers, chart_provider):
    narrator = FakeNarrator([external("报告")])
    payload = HollandTestIn(answers=answers, userInfo={"name": "小明", "ziweiInfo": {"soul": "文曲"}})
    data = AnalysisPipeline(narrator, chart_provider).holland_test(payload)
    assert data.analysis.text == "报告"
    assert "文曲" in narrator.calls[0]["prompt"]


def test_ziwei_only_analysis(birth_payload, chart_provider):
    data = AnalysisPipeline(FakeNarrator(), chart_provider).ziwei_analysis(ZiweiAnalysisIn(**birth_payload))
    assert len(data.palaces) == 12
    assert data.deepseekAnalysis.source == "fallback"
    assert "紫微" in data.deepseekAnalysis.text
