from __future__ import annotations

import asyncio
import json
import time

import httpx
import pytest

from services.ai_agent_services import NarrativeBudget, NarrativeClient, NarrativeConfig

BUDGET = NarrativeBudget(max_tokens=500, temperature=0.4)
CONFIG = NarrativeConfig(api_key="sk-test", base_url="https://llm.test/v1", model="deepseek-chat", timeout_seconds=7)


def _completion(content="分析正文", model="deepseek-chat-0324"):
    return {
        "id": "cmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 34, "total_tokens": 46},
    }


def _client(handler) -> NarrativeClient:
    return NarrativeClient(CONFIG, transport=httpx.MockTransport(handler))


def test_success_returns_external_narrative():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion())

    result = _client(handler).generate("请分析", BUDGET, system_prompt="你是专家")

    assert result is not None
    assert result.source == "external"
    assert result.text == "分析正文"
    assert result.model == "deepseek-chat-0324"
    assert result.usage["total_tokens"] == 46
    assert seen["url"] == "https://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["max_tokens"] == 500
    assert seen["body"]["temperature"] == 0.4
    assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]


@pytest.mark.parametrize("status", [401, 429, 500, 503])
def test_non_success_status_signals_fallback(status):
    result = _client(lambda request: httpx.Response(status, json={"error": {"message": "nope"}})).generate("p", BUDGET)
    assert result is None


def test_timeout_signals_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    assert _client(handler).generate("p", BUDGET) is None


def test_connection_error_signals_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    assert _client(handler).generate("p", BUDGET) is None


@pytest.mark.parametrize(
    "body",
    [
        {"id": "x", "choices": []},
        {"id": "x"},
        _completion(content=None),
        _completion(content="   "),
    ],
)
def test_malformed_body_signals_fallback(body):
    assert _client(lambda request: httpx.Response(200, json=body)).generate("p", BUDGET) is None


def test_non_json_body_signals_fallback():
    handler = lambda request: httpx.Response(200, text="<html>gateway</html>", headers={"content-type": "text/html"})
    assert _client(handler).generate("p", BUDGET) is None


def test_missing_key_never_calls_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_completion())

    client = NarrativeClient(
        NarrativeConfig(api_key=None),
        transport=httpx.MockTransport(handler),
    )
    assert not client.enabled
    assert client.generate("p", BUDGET) is None
    assert calls == []


def _quick(timeout_seconds: float) -> NarrativeConfig:
    return CONFIG.model_copy(update={"timeout_seconds": timeout_seconds})


def test_trickling_body_is_cut_at_deadline():
    body = json.dumps(_completion(content="迟到的正文"), ensure_ascii=False).encode("utf-8")

    async def trickle():
        for i in range(0, len(body), 20):
            await asyncio.sleep(0.3)
            yield body[i:i + 20]

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "application/json"}, content=trickle())

    client = NarrativeClient(_quick(0.5), transport=httpx.MockTransport(handler))
    started = time.monotonic()
    result = client.generate("p", BUDGET)
    elapsed = time.monotonic() - started

    assert result is None
    assert elapsed < 2.0


def test_slow_first_byte_is_cut_at_deadline():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json=_completion())

    client = NarrativeClient(_quick(0.3), transport=httpx.MockTransport(handler))
    started = time.monotonic()
    assert client.generate("p", BUDGET) is None
    assert time.monotonic() - started < 2.0


def test_reply_within_deadline_is_kept():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.05)
        return httpx.Response(200, json=_completion())

    result = NarrativeClient(_quick(2.0), transport=httpx.MockTransport(handler)).generate("p", BUDGET)
    assert result is not None
    assert result.text == "分析正文"


def test_missing_model_falls_back_to_configured_name():
    body = {k: v for k, v in _completion().items() if k != "model"}
    result = _client(lambda request: httpx.Response(200, json=body)).generate("p", BUDGET)
    assert result is not None
    assert result.model == "deepseek-chat"
