from __future__ import annotations
import datetime as dt
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# --------- Common ---------
class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    code: str = Field(default="SERVER_ERROR")
    error: Optional[str] = Field(default=None, description="Traceback, only outside production.")


GENDER_TOKENS = {
    "男": "男", "male": "男", "m": "男",
    "女": "女", "female": "女", "f": "女",
}


# --------- Inputs ---------
class HollandUserInfo(BaseModel):
    """Optional personal context forwarded into the inventory narrative."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    gender: Optional[str] = None
    ziweiInfo: Optional[Dict[str, Any]] = Field(default=None, description="Free-form chart summary, embedded verbatim in the prompt.")


class HollandTestIn(BaseModel):
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "answers": [4, 5, 3, 4, 2, 3, 2, 1, 5, 4, 4, 5, 3, 3, 2, 4, 1, 2, 2, 3, 3, 2, 1, 2],
                "userInfo": {"name": "小明", "gender": "男"},
            }
        ]
    })

    # Length is checked by the pipeline so the caller gets a domain message, not a schema error.
    answers: Optional[List[Any]] = Field(default=None, description="Exactly 24 ratings (0-5).")
    userInfo: Optional[HollandUserInfo] = None


class BirthPayload(BaseModel):
    """Birth details used to cast a ziwei chart."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "name": "小明",
                "gender": "男",
                "birthYear": 2006,
                "birthMonth": 8,
                "birthDay": 16,
                "birthHour": 14,
                "birthMinute": 30,
                "location": "北京",
            }
        ]
    })

    name: Optional[str] = Field(default=None, description="Display name.", examples=["小明"])
    gender: str = Field(..., description="男/女 (male/female also accepted).", examples=["男"])
    birthYear: int = Field(..., ge=1900, le=2100, examples=[2006])
    birthMonth: int = Field(..., ge=1, le=12, examples=[8])
    birthDay: int = Field(..., ge=1, le=31, examples=[16])
    birthHour: int = Field(..., ge=0, le=23, examples=[14])
    birthMinute: int = Field(default=0, ge=0, le=59, examples=[30])
    location: Optional[str] = Field(default="北京", examples=["北京"])

    @field_validator("gender")
    @classmethod
    def _normalize_gender(cls, value: str) -> str:
        token = GENDER_TOKENS.get(str(value).strip().lower())
        if token is None:
            raise ValueError("gender must be one of 男/女/male/female")
        return token

    @model_validator(mode="after")
    def _check_calendar_date(self) -> "BirthPayload":
        try:
            dt.date(self.birthYear, self.birthMonth, self.birthDay)
        except ValueError as exc:
            raise ValueError(f"invalid birth date: {exc}") from exc
        return self

    @property
    def display_name(self) -> str:
        return self.name or "用户"


class ZiweiAnalysisIn(BirthPayload):
    pass


# --------- Narratives ---------
class ExternalNarrative(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["external"] = "external"
    text: str = Field(..., min_length=1)
    model: str
    timestamp: str
    usage: Optional[Dict[str, Any]] = None


class FallbackNarrative(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["fallback"] = "fallback"
    text: str = Field(..., min_length=1)
    timestamp: str


NarrativeResult = Annotated[Union[ExternalNarrative, FallbackNarrative], Field(discriminator="source")]


# --------- Chart ---------
class MajorStar(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    brightness: str = "平"
    mutagen: Optional[str] = None


class MinorStar(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: Optional[str] = None
    mutagen: Optional[str] = None


class Palace(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    position: str = ""
    majorStars: List[MajorStar] = Field(default_factory=list)
    minorStars: List[MinorStar] = Field(default_factory=list)


class ChartUserInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "用户"
    gender: Optional[str] = None
    solarDate: str = "未知"
    lunarDate: str = "未知"
    chineseDate: str = "未知"
    zodiac: str = "未知"
    soul: str = "未知"
    body: str = "未知"
    fiveElementsClass: str = "未知"
    birthHour: Optional[int] = None
    location: Optional[str] = None


class ChartRecord(BaseModel):
    """Twelve named palaces plus user descriptors; always complete."""
    model_config = ConfigDict(frozen=True)

    userInfo: ChartUserInfo
    palaces: Dict[str, Palace]
    isPlaceholder: bool = False


class SuppliedChart(ChartRecord):
    """A chart computed earlier by the client, optionally with its narrative."""
    deepseekAnalysis: Optional[NarrativeResult] = None


class CombinedAnalysisIn(BirthPayload):
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "name": "小明",
                "gender": "男",
                "birthYear": 2006,
                "birthMonth": 8,
                "birthDay": 16,
                "birthHour": 14,
                "birthMinute": 30,
                "location": "北京",
                "hollandAnswers": [4, 5, 3, 4, 2, 3, 2, 1, 5, 4, 4, 5, 3, 3, 2, 4, 1, 2, 2, 3, 3, 2, 1, 2],
            }
        ]
    })

    hollandAnswers: Optional[List[Any]] = Field(default=None, description="Exactly 24 ratings (0-5).")
    ziweiAnalysis: Optional[SuppliedChart] = Field(default=None, description="Reuse a previously computed chart.")


# --------- Holland ---------
class TypeScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    score: int


class TopType(TypeScore):
    percentage: int


class MajorRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    match: int
    reason: str


class HollandResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    primaryType: str
    primaryTypeName: str
    primaryScore: int
    hollandCode: str = Field(..., min_length=3, max_length=3)
    scores: Dict[str, int]
    sortedTypes: List[TypeScore]
    topThreeTypes: List[TopType]
    characteristics: List[str]
    workEnvironment: str
    developmentSuggestion: str
    majorRecommendations: List[MajorRecommendation]


# --------- Outputs ---------
class HollandTestData(BaseModel):
    hollandCode: str
    scores: Dict[str, int]
    primaryTypes: List[TopType]
    profile: HollandResult
    analysis: NarrativeResult
    analysisTime: str


class HollandTestOut(BaseModel):
    success: bool = True
    data: HollandTestData


class ZiweiAnalysisData(BaseModel):
    userInfo: ChartUserInfo
    palaces: Dict[str, Palace]
    deepseekAnalysis: NarrativeResult
    analysisTime: str


class ZiweiAnalysisOut(BaseModel):
    success: bool = True
    data: ZiweiAnalysisData


class CombinedAnalysisData(BaseModel):
    userInfo: ChartUserInfo
    ziweiAnalysis: NarrativeResult
    hollandResult: HollandResult
    combinedAnalysis: NarrativeResult
    timestamp: str


class CombinedAnalysisOut(BaseModel):
    success: bool = True
    message: str = "紫微斗数与霍兰德测试综合分析完成"
    data: CombinedAnalysisData
