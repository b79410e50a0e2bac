from __future__ import annotations
from functools import lru_cache

from fastapi import APIRouter, Body, Depends, HTTPException, Response

import settings
from schemas import (
    CombinedAnalysisIn, CombinedAnalysisOut,
    HollandTestIn, HollandTestOut,
    ZiweiAnalysisIn, ZiweiAnalysisOut,
)
from services.ai_agent_services import NarrativeClient, NarrativeConfig
from services.analysis_services import AnalysisInputError, AnalysisPipeline
from services.ziwei_services import ChartProvider, IztroChartProvider


router = APIRouter(prefix="/api")


# --------------------- Dependencies ---------------------
@lru_cache()
def get_narrative_client() -> NarrativeClient:
    return NarrativeClient(NarrativeConfig.from_settings())


@lru_cache()
def get_chart_provider() -> ChartProvider:
    return IztroChartProvider(language=settings.ZIWEI_LANGUAGE)


def get_pipeline(
    narrator: NarrativeClient = Depends(get_narrative_client),
    chart_provider: ChartProvider = Depends(get_chart_provider),
) -> AnalysisPipeline:
    return AnalysisPipeline(narrator=narrator, chart_provider=chart_provider)


def _preflight() -> Response:
    return Response(status_code=200)


_SAMPLE_BIRTH = {
    "name": "小明",
    "gender": "男",
    "birthYear": 2006,
    "birthMonth": 8,
    "birthDay": 16,
    "birthHour": 14,
    "birthMinute": 30,
    "location": "北京",
}
_SAMPLE_ANSWERS = [4, 5, 3, 4, 2, 3, 2, 1, 5, 4, 4, 5, 3, 3, 2, 4, 1, 2, 2, 3, 3, 2, 1, 2]


# --------------- Holland -----------------
@router.options("/holland-test", include_in_schema=False)
def holland_test_preflight() -> Response:
    return _preflight()


@router.post("/holland-test", response_model=HollandTestOut, tags=["Holland"], summary="Score the 24-item RIASEC inventory")
def holland_test(
    payload: HollandTestIn = Body(
        ...,
        openapi_examples={
            "sample": {
                "summary": "Sample",
                "value": {"answers": _SAMPLE_ANSWERS, "userInfo": {"name": "小明", "gender": "男"}},
            }
        },
    ),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> HollandTestOut:
    try:
        data = pipeline.holland_test(payload)
    except AnalysisInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return HollandTestOut(data=data)


# --------------- Ziwei -----------------
@router.options("/ziwei-analysis", include_in_schema=False)
def ziwei_analysis_preflight() -> Response:
    return _preflight()


@router.post("/ziwei-analysis", response_model=ZiweiAnalysisOut, tags=["Ziwei"], summary="Cast and interpret a ziwei chart")
def ziwei_analysis(
    payload: ZiweiAnalysisIn = Body(
        ...,
        openapi_examples={"sample": {"summary": "Sample", "value": _SAMPLE_BIRTH}},
    ),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> ZiweiAnalysisOut:
    return ZiweiAnalysisOut(data=pipeline.ziwei_analysis(payload))


# --------------- Combined -----------------
@router.options("/combined-analysis", include_in_schema=False)
def combined_analysis_preflight() -> Response:
    return _preflight()


@router.post("/combined-analysis", response_model=CombinedAnalysisOut, tags=["Combined"], summary="Ziwei chart + Holland inventory combined guidance")
def combined_analysis(
    payload: CombinedAnalysisIn = Body(
        ...,
        openapi_examples={
            "sample": {
                "summary": "Sample",
                "value": {**_SAMPLE_BIRTH, "hollandAnswers": _SAMPLE_ANSWERS},
            }
        },
    ),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> CombinedAnalysisOut:
    try:
        data = pipeline.combined_analysis(payload)
    except AnalysisInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CombinedAnalysisOut(data=data)
