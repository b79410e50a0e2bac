from __future__ import annotations

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from api_router import get_chart_provider, get_narrative_client
from fakes import FakeChartProvider, FakeNarrator, RawChart, make_palace
from main import app
from services.ziwei_services import PALACE_NAMES


@pytest.fixture
def full_raw_chart() -> RawChart:
    palaces = {name: make_palace(name) for name in PALACE_NAMES}
    palaces["命宫"] = make_palace("命宫", ["紫微", "天府"], branch="寅")
    return RawChart(palaces)


@pytest.fixture
def birth_payload() -> Dict[str, Any]:
    return {
        "name": "小明",
        "gender": "男",
        "birthYear": 2006,
        "birthMonth": 8,
        "birthDay": 16,
        "birthHour": 14,
        "birthMinute": 30,
        "location": "北京",
    }


@pytest.fixture
def answers() -> List[int]:
    return [4, 5, 3, 4, 2, 3, 2, 1, 5, 4, 4, 5, 3, 3, 2, 4, 1, 2, 2, 3, 3, 2, 1, 2]


@pytest.fixture
def narrator() -> FakeNarrator:
    return FakeNarrator()


@pytest.fixture
def chart_provider(full_raw_chart) -> FakeChartProvider:
    return FakeChartProvider(raw=full_raw_chart)


@pytest.fixture
def client(narrator, chart_provider):
    app.dependency_overrides[get_narrative_client] = lambda: narrator
    app.dependency_overrides[get_chart_provider] = lambda: chart_provider
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
