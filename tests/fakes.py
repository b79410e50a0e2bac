from __future__ import annotations

from typing import Any, Dict, List, Optional

from schemas import ExternalNarrative


class FakeNarrator:
    """Stands in for NarrativeClient; replays canned replies, then signals unavailable."""

    def __init__(self, replies: Optional[List[Optional[ExternalNarrative]]] = None):
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    def generate(self, prompt, budget, system_prompt=None):
        self.calls.append({"prompt": prompt, "budget": budget, "system_prompt": system_prompt})
        return self.replies.pop(0) if self.replies else None


class RawChart:
    """Shape of an iztro astrolabe: top-level descriptors plus palace(name)."""

    solarDate = "2006-08-16"
    lunarDate = "二〇〇六年七月廿三"
    chineseDate = "丙戌 丙申 壬午 丁未"
    zodiac = "狗"
    soul = "文曲"
    body = "天同"
    fiveElementsClass = "木三局"

    def __init__(self, palaces: Dict[str, Any]):
        self._palaces = palaces

    def palace(self, name: str):
        value = self._palaces.get(name)
        if isinstance(value, Exception):
            raise value
        return value


class FakeChartProvider:
    def __init__(self, raw: Any = None, error: Optional[Exception] = None):
        self.raw = raw
        self.error = error
        self.calls: List[tuple] = []

    def by_solar(self, solar_date: str, time_index: int, gender: str):
        self.calls.append((solar_date, time_index, gender))
        if self.error is not None:
            raise self.error
        return self.raw


def make_palace(name: str, major: Optional[List[str]] = None, branch: str = "午") -> Dict[str, Any]:
    return {
        "name": name,
        "earthlyBranch": branch,
        "majorStars": [{"name": star, "brightness": "庙", "mutagen": None} for star in (major or [])],
        "minorStars": [{"name": "文昌", "type": "soft", "mutagen": "科"}],
    }


def external(text: str = "AI 分析内容", model: str = "deepseek-chat") -> ExternalNarrative:
    return ExternalNarrative(text=text, model=model, timestamp="2026-01-01T00:00:00.000Z")
