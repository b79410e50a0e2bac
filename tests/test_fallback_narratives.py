from __future__ import annotations

import pytest

from schemas import BirthPayload
from services.fallback_services import (
    CHART_UNAVAILABLE_TEXT,
    combined_fallback_narrative,
    holland_fallback_narrative,
    ziwei_fallback_narrative,
)
from services.holland_services import HOLLAND_CODES, rank_scores
from services.ziwei_services import normalize_chart, placeholder_chart

STAMP = "2026-01-01T00:00:00.000Z"


@pytest.fixture
def chart(full_raw_chart):
    return normalize_chart(full_raw_chart, name="小明", gender="男")


@pytest.fixture
def placeholder():
    return placeholder_chart(BirthPayload(name="小明", gender="男", birthYear=2006, birthMonth=8, birthDay=16, birthHour=14))


@pytest.mark.parametrize("code", HOLLAND_CODES)
def test_holland_fallback_for_every_primary_type(code):
    scores = {c: 0 for c in HOLLAND_CODES}
    scores[code] = 16
    narrative = holland_fallback_narrative(rank_scores(scores), timestamp=STAMP)
    assert narrative.source == "fallback"
    assert f"您的霍兰德代码：{code}" in narrative.text
    assert narrative.timestamp == STAMP


def test_ziwei_fallback_mentions_life_palace_stars(chart):
    narrative = ziwei_fallback_narrative(chart, timestamp=STAMP)
    assert "命宫位于寅" in narrative.text
    assert "紫微、天府" in narrative.text
    assert "木三局" in narrative.text


def test_ziwei_fallback_for_placeholder_chart(placeholder):
    assert ziwei_fallback_narrative(placeholder).text == CHART_UNAVAILABLE_TEXT


def test_combined_fallback_uses_both_sources(chart):
    profile = rank_scores({"R": 0, "I": 17, "A": 9, "S": 3, "E": 1, "C": 0})
    text = combined_fallback_narrative(chart, profile, timestamp=STAMP).text
    assert "命主为文曲" in text
    assert "研究型（IAS）" in text
    assert "计算机科学（匹配度：95%）" in text
    assert "研究性、学术性的工作环境" in text


def test_combined_fallback_without_chart(placeholder):
    profile = rank_scores({c: 0 for c in HOLLAND_CODES})
    narrative = combined_fallback_narrative(placeholder, profile)
    assert "排盘暂时不可用" in narrative.text
    assert narrative.text.strip()


def test_fallbacks_are_deterministic(chart):
    profile = rank_scores({"R": 5, "I": 5, "A": 5, "S": 5, "E": 5, "C": 5})
    first = combined_fallback_narrative(chart, profile, timestamp=STAMP)
    second = combined_fallback_narrative(chart, profile, timestamp=STAMP)
    assert first == second
