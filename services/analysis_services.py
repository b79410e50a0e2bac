"""Orchestration of the inventory, chart and narrative stages.

The combined pipeline walks Validated -> ChartReady -> ChartNarrated ->
InventoryScored -> CombinedNarrated -> Done. Only input validation can reject a
request; chart library and narrative failures are replaced by placeholders and
template text at the stage where they happen.
"""
from __future__ import annotations

import contextvars
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, List, Optional

from middleware import request_logger
from schemas import (
    BirthPayload,
    ChartRecord,
    CombinedAnalysisData,
    CombinedAnalysisIn,
    HollandTestData,
    HollandTestIn,
    ZiweiAnalysisData,
    ZiweiAnalysisIn,
)
from services.ai_agent_services import NarrativeBudget, NarrativeClient
from services.ai_prompt_service import (
    get_system_prompt_combined,
    get_system_prompt_holland,
    get_system_prompt_ziwei,
    get_user_prompt_combined,
    get_user_prompt_holland,
    get_user_prompt_ziwei,
)
from services.fallback_services import (
    chart_unavailable_narrative,
    combined_fallback_narrative,
    holland_fallback_narrative,
    ziwei_fallback_narrative,
)
from services.holland_services import ANSWER_COUNT, rank_scores, score_answers
from services.ziwei_services import ChartProvider, cast_chart, complete_chart, placeholder_chart
from utils.time_utils import utc_now_iso

logger = request_logger(__name__)

CHART_STAGE_BUDGET = NarrativeBudget(max_tokens=500, temperature=0.4)
CHART_REPORT_BUDGET = NarrativeBudget(max_tokens=1000, temperature=0.3)
COMBINED_BUDGET = NarrativeBudget(max_tokens=1500, temperature=0.4)
HOLLAND_BUDGET = NarrativeBudget(max_tokens=2000, temperature=0.7)


class AnalysisInputError(ValueError):
    """Structurally invalid request; surfaced as HTTP 400."""


class PipelineStage(str, Enum):
    REJECTED = "Rejected"
    VALIDATED = "Validated"
    CHART_READY = "ChartReady"
    CHART_NARRATED = "ChartNarrated"
    INVENTORY_SCORED = "InventoryScored"
    COMBINED_NARRATED = "CombinedNarrated"
    DONE = "Done"


def validate_answers(answers: Optional[List[Any]]) -> List[Any]:
    if not isinstance(answers, list) or len(answers) != ANSWER_COUNT:
        got = len(answers) if isinstance(answers, list) else 0
        logger.info("stage=%s answers=%s expected=%s", PipelineStage.REJECTED.value, got, ANSWER_COUNT)
        raise AnalysisInputError(f"霍兰德测试答案不完整，需要{ANSWER_COUNT}道题的答案")
    return answers


class AnalysisPipeline:
    def __init__(self, narrator: NarrativeClient, chart_provider: ChartProvider) -> None:
        self.narrator = narrator
        self.chart_provider = chart_provider

    # ----- stages -----
    def acquire_chart(self, payload: BirthPayload, supplied: Optional[ChartRecord] = None) -> ChartRecord:
        if supplied is not None:
            return complete_chart(supplied)
        try:
            return cast_chart(self.chart_provider, payload)
        except Exception as e:
            logger.warning("Chart library failed (%s): %s; using placeholder chart", type(e).__name__, e)
            return placeholder_chart(payload)

    def narrate_chart(self, chart: ChartRecord, budget: NarrativeBudget, detailed: bool = False):
        if chart.isPlaceholder:
            return chart_unavailable_narrative()
        result = self.narrator.generate(
            get_user_prompt_ziwei(chart, detailed=detailed),
            budget,
            system_prompt=get_system_prompt_ziwei(),
        )
        if result is None:
            logger.info("Chart narrative unavailable; using template text")
            return ziwei_fallback_narrative(chart)
        return result

    # ----- entry points -----
    def holland_test(self, payload: HollandTestIn) -> HollandTestData:
        answers = validate_answers(payload.answers)
        profile = rank_scores(score_answers(answers))
        logger.info("Holland scores=%s code=%s", profile.scores, profile.hollandCode)

        analysis = self.narrator.generate(
            get_user_prompt_holland(profile, payload.userInfo),
            HOLLAND_BUDGET,
            system_prompt=get_system_prompt_holland(),
        )
        if analysis is None:
            logger.info("Holland narrative unavailable; using template text")
            analysis = holland_fallback_narrative(profile)

        return HollandTestData(
            hollandCode=profile.hollandCode,
            scores=profile.scores,
            primaryTypes=profile.topThreeTypes,
            profile=profile,
            analysis=analysis,
            analysisTime=utc_now_iso(),
        )

    def ziwei_analysis(self, payload: ZiweiAnalysisIn) -> ZiweiAnalysisData:
        chart = self.acquire_chart(payload)
        narrative = self.narrate_chart(chart, CHART_REPORT_BUDGET, detailed=True)
        return ZiweiAnalysisData(
            userInfo=chart.userInfo,
            palaces=chart.palaces,
            deepseekAnalysis=narrative,
            analysisTime=utc_now_iso(),
        )

    def combined_analysis(self, payload: CombinedAnalysisIn) -> CombinedAnalysisData:
        name = payload.display_name
        answers = validate_answers(payload.hollandAnswers)
        logger.info("stage=%s name=%s", PipelineStage.VALIDATED.value, name)

        # Chart casting and scoring are independent; the narrative calls are not.
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="ziwei-chart") as pool:
            chart_future = pool.submit(contextvars.copy_context().run, self.acquire_chart, payload, payload.ziweiAnalysis)
            scores = score_answers(answers)
            chart = chart_future.result()
        logger.info("stage=%s placeholder=%s", PipelineStage.CHART_READY.value, chart.isPlaceholder)

        supplied = payload.ziweiAnalysis
        if supplied is not None and supplied.deepseekAnalysis is not None:
            chart_narrative = supplied.deepseekAnalysis
        else:
            chart_narrative = self.narrate_chart(chart, CHART_STAGE_BUDGET)
        logger.info("stage=%s source=%s", PipelineStage.CHART_NARRATED.value, chart_narrative.source)

        profile = rank_scores(scores)
        logger.info("stage=%s code=%s", PipelineStage.INVENTORY_SCORED.value, profile.hollandCode)

        combined = self.narrator.generate(
            get_user_prompt_combined(chart, chart_narrative.text, profile),
            COMBINED_BUDGET,
            system_prompt=get_system_prompt_combined(),
        )
        if combined is None:
            logger.info("Combined narrative unavailable; using template text")
            combined = combined_fallback_narrative(chart, profile)
        logger.info("stage=%s source=%s", PipelineStage.COMBINED_NARRATED.value, combined.source)

        envelope = CombinedAnalysisData(
            userInfo=chart.userInfo,
            ziweiAnalysis=chart_narrative,
            hollandResult=profile,
            combinedAnalysis=combined,
            timestamp=utc_now_iso(),
        )
        logger.info("stage=%s name=%s", PipelineStage.DONE.value, name)
        return envelope
