from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, cast

import httpx
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict

import settings
from schemas import ExternalNarrative
from utils.time_utils import utc_now_iso

logger = logging.getLogger(__name__)


class NarrativeConfig(BaseModel):
    """Connection settings for the OpenAI-compatible completion endpoint."""
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    base_url: str = "https://api.deepseek.com"
    model: str = "deepseek-chat"
    timeout_seconds: float = 7.0

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    @classmethod
    def from_settings(cls) -> "NarrativeConfig":
        return cls(
            api_key=settings.usable_api_key(settings.DEEPSEEK_API_KEY),
            base_url=settings.DEEPSEEK_BASE_URL,
            model=settings.DEEPSEEK_MODEL,
            timeout_seconds=settings.DEEPSEEK_TIMEOUT_SECONDS,
        )


@dataclass(frozen=True)
class NarrativeBudget:
    max_tokens: int
    temperature: float


class NarrativeClient:
    """One bounded chat-completion attempt per call.

    ``generate`` returns an ``ExternalNarrative`` on success and ``None`` when the
    caller should fall back: no key configured, transport error, non-2xx status,
    a body without generated text, or the wall-clock deadline expiring. The
    deadline covers the whole call (connect, headers and body) and cancels the
    request when it fires. It never raises.
    """

    def __init__(self, config: NarrativeConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _open(self) -> AsyncOpenAI:
        http_client = httpx.AsyncClient(transport=self._transport) if self._transport is not None else None
        return AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            max_retries=0,
            http_client=http_client,
        )

    def generate(
        self,
        prompt: str,
        budget: NarrativeBudget,
        system_prompt: Optional[str] = None,
    ) -> Optional[ExternalNarrative]:
        if not self.enabled:
            logger.info("Narrative service not configured; fallback required")
            return None

        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            return asyncio.run(self._complete(messages, budget))
        except asyncio.TimeoutError:
            logger.warning(
                "Narrative call exceeded %.1fs deadline; fallback required", self.config.timeout_seconds
            )
            return None
        except Exception as e:
            # Connection errors, HTTP status errors and malformed bodies all end here.
            logger.warning("Narrative call failed (%s): %s; fallback required", type(e).__name__, e)
            return None

    async def _complete(self, messages: List[Dict[str, Any]], budget: NarrativeBudget) -> Optional[ExternalNarrative]:
        async with self._open() as client:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.config.model,
                    messages=cast(Any, messages),
                    temperature=budget.temperature,
                    max_tokens=budget.max_tokens,
                ),
                timeout=self.config.timeout_seconds,
            )

        content = response.choices[0].message.content
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            logger.warning("Narrative response carried no text; fallback required")
            return None

        usage = None
        if getattr(response, "usage", None) is not None:
            usage = response.usage.model_dump()
            logger.info(
                "Narrative tokens prompt=%s completion=%s total=%s",
                usage.get("prompt_tokens"),
                usage.get("completion_tokens"),
                usage.get("total_tokens"),
            )
        return ExternalNarrative(
            text=content,
            model=getattr(response, "model", None) or self.config.model,
            timestamp=utc_now_iso(),
            usage=usage,
        )
