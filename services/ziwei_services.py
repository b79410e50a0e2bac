"""Ziwei (紫微斗数) chart casting and normalization.

The chart itself comes from py-iztro; this module only turns whatever the
library hands back into a fixed twelve-palace ``ChartRecord``. A palace that
cannot be read is replaced with an empty one, the other eleven are unaffected.
"""
from __future__ import annotations

import importlib.util
import logging
from bisect import bisect_right
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from schemas import BirthPayload, ChartRecord, ChartUserInfo, MajorStar, MinorStar, Palace

logger = logging.getLogger(__name__)

PALACE_NAMES: Tuple[str, ...] = (
    "命宫", "兄弟", "夫妻", "子女", "财帛", "疾厄",
    "迁移", "奴仆", "官禄", "田宅", "福德", "父母",
)
# Labels different iztro locales/versions use for the same palace.
PALACE_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "奴仆": ("仆役", "交友"),
}
LIFE_PALACE = "命宫"
UNKNOWN = "未知"

# Start minute of slots 1..11, then 23:00 which wraps back to slot 0 (子时).
_SLOT_STARTS: Tuple[int, ...] = tuple(h * 60 for h in (1, 3, 5, 7, 9, 11, 13, 15, 17, 19, 21, 23))
TIME_SLOT_NAMES: Tuple[str, ...] = ("子", "丑", "寅", "卯", "辰", "巳", "午", "未", "申", "酉", "戌", "亥")


class ChartUnavailableError(RuntimeError):
    """The external chart library is missing or produced no chart."""


class ChartProvider(Protocol):
    def by_solar(self, solar_date: str, time_index: int, gender: str) -> Any: ...


class IztroChartProvider:
    """Thin adapter over ``py_iztro.Astro().by_solar``; imported lazily."""

    def __init__(self, language: str = "zh-CN") -> None:
        self.language = language
        self._astro: Any = None

    def _load(self) -> Any:
        if self._astro is None:
            try:
                from py_iztro import Astro  # type: ignore
            except ImportError as exc:
                raise ChartUnavailableError("py-iztro is not installed") from exc
            self._astro = Astro()
        return self._astro

    def by_solar(self, solar_date: str, time_index: int, gender: str) -> Any:
        astro = self._load()
        chart = astro.by_solar(solar_date, time_index, gender, True, self.language)
        if chart is None:
            raise ChartUnavailableError(f"no chart returned for {solar_date} slot={time_index}")
        return chart


def chart_library_available() -> bool:
    return importlib.util.find_spec("py_iztro") is not None


def time_index(hour: int, minute: int = 0) -> int:
    """Map a clock time to the 0-11 two-hour slot; slot 0 spans 23:00-00:59."""
    total = hour * 60 + minute
    return bisect_right(_SLOT_STARTS, total) % 12


def solar_date_string(year: int, month: int, day: int) -> str:
    return f"{year}-{month:02d}-{day:02d}"


def _field(obj: Any, *names: str, default: Any = None) -> Any:
    """Read the first present attribute/key among ``names`` (camelCase or snake_case)."""
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    return default


def _palace_key(label: Any) -> str:
    text = str(label or "").strip()
    return text[:-1] if len(text) > 1 and text.endswith("宫") else text


def _palace_labels(name: str) -> List[str]:
    return [name, *PALACE_ALIASES.get(name, ())]


def empty_palace(name: str) -> Palace:
    return Palace(name=name)


def _lookup_palace(raw: Any, name: str) -> Any:
    labels = _palace_labels(name)
    finder = getattr(raw, "palace", None)
    if callable(finder):
        for label in labels:
            found = finder(label)
            if found:
                return found

    wanted = {_palace_key(label) for label in labels}
    palaces = _field(raw, "palaces", default=None) or ()
    if isinstance(palaces, Mapping):
        palaces = palaces.values()
    for palace in palaces:
        if _palace_key(_field(palace, "name")) in wanted:
            return palace
    return None


def _star_list(palace: Any, *names: str) -> Iterable[Any]:
    stars = _field(palace, *names, default=None)
    return stars if isinstance(stars, (list, tuple)) else ()


def _read_palace(raw: Any, name: str) -> Palace:
    palace = _lookup_palace(raw, name)
    if palace is None:
        logger.debug("Palace %s missing from chart; using empty placeholder", name)
        return empty_palace(name)

    major = [
        MajorStar(
            name=_field(star, "name"),
            brightness=_field(star, "brightness") or "平",
            mutagen=_field(star, "mutagen") or None,
        )
        for star in _star_list(palace, "majorStars", "major_stars")
    ]
    minor = [
        MinorStar(
            name=_field(star, "name"),
            type=_field(star, "type"),
            mutagen=_field(star, "mutagen") or None,
        )
        for star in _star_list(palace, "minorStars", "minor_stars")
    ]
    return Palace(
        name=name,
        position=str(_field(palace, "earthlyBranch", "earthly_branch", default="") or ""),
        majorStars=major,
        minorStars=minor,
    )


def _text(raw: Any, *names: str) -> str:
    value = _field(raw, *names)
    return str(value) if value not in (None, "") else UNKNOWN


def normalize_chart(
    raw: Any,
    *,
    name: str,
    gender: str,
    birth_hour: Optional[int] = None,
    location: Optional[str] = None,
) -> ChartRecord:
    """Convert a raw library chart into a ChartRecord holding all twelve palaces."""
    user_info = ChartUserInfo(
        name=name,
        gender=gender,
        solarDate=_text(raw, "solarDate", "solar_date"),
        lunarDate=_text(raw, "lunarDate", "lunar_date"),
        chineseDate=_text(raw, "chineseDate", "chinese_date"),
        zodiac=_text(raw, "zodiac"),
        soul=_text(raw, "soul"),
        body=_text(raw, "body"),
        fiveElementsClass=_text(raw, "fiveElementsClass", "five_elements_class"),
        birthHour=birth_hour,
        location=location,
    )

    palaces: Dict[str, Palace] = {}
    for palace_name in PALACE_NAMES:
        try:
            palaces[palace_name] = _read_palace(raw, palace_name)
        except Exception:
            logger.warning("Failed to parse palace %s; using empty placeholder", palace_name, exc_info=True)
            palaces[palace_name] = empty_palace(palace_name)

    return ChartRecord(userInfo=user_info, palaces=palaces)


def cast_chart(provider: ChartProvider, payload: BirthPayload) -> ChartRecord:
    """Cast a chart for the birth data. Raises if the library is unavailable or fails."""
    solar_date = solar_date_string(payload.birthYear, payload.birthMonth, payload.birthDay)
    slot = time_index(payload.birthHour, payload.birthMinute)
    logger.info("Casting ziwei chart solar_date=%s slot=%s(%s)", solar_date, slot, TIME_SLOT_NAMES[slot])
    raw = provider.by_solar(solar_date, slot, payload.gender)
    return normalize_chart(
        raw,
        name=payload.display_name,
        gender=payload.gender,
        birth_hour=payload.birthHour,
        location=payload.location,
    )


def complete_chart(chart: ChartRecord) -> ChartRecord:
    """Return a chart holding exactly the twelve canonical palaces."""
    by_key = {_palace_key(k): v for k, v in chart.palaces.items()}
    palaces: Dict[str, Palace] = {}
    for palace_name in PALACE_NAMES:
        found = next(
            (by_key[_palace_key(label)] for label in _palace_labels(palace_name) if _palace_key(label) in by_key),
            None,
        )
        palaces[palace_name] = found.model_copy(update={"name": palace_name}) if found else empty_palace(palace_name)
    return ChartRecord(userInfo=chart.userInfo, palaces=palaces, isPlaceholder=chart.isPlaceholder)


def placeholder_chart(payload: BirthPayload) -> ChartRecord:
    """Chart carrying only the caller's descriptors and twelve empty palaces."""
    return ChartRecord(
        userInfo=ChartUserInfo(
            name=payload.display_name,
            gender=payload.gender,
            solarDate=solar_date_string(payload.birthYear, payload.birthMonth, payload.birthDay),
            birthHour=payload.birthHour,
            location=payload.location,
        ),
        palaces={name: empty_palace(name) for name in PALACE_NAMES},
        isPlaceholder=True,
    )


def life_palace(chart: ChartRecord) -> Palace:
    return chart.palaces.get(LIFE_PALACE) or empty_palace(LIFE_PALACE)


def major_star_names(palace: Palace) -> List[str]:
    return [star.name for star in palace.majorStars]
