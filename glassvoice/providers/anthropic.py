"""Adapter for the Anthropic messages API. No speech-to-text."""

import time
from typing import Any, Optional, Sequence

import httpx

from glassvoice.exceptions import ProviderError, ProviderUnavailable
from glassvoice.prompts.prompt_templates import build_intent_prompt, build_reply_prompt
from glassvoice.prompts.system_prompts import INTENT_SYSTEM_PROMPT, REPLY_SYSTEM_PROMPT
from glassvoice.providers.base import CLASSIFY, REPLY, HttpProvider
from glassvoice.schemas.intent_schema import ReplyResult, TranscriptionResult
from glassvoice.utils import extract_action_marker

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HttpProvider):

    capabilities = frozenset({CLASSIFY, REPLY})

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        intent_temperature: float = 0.1,
        reply_temperature: float = 0.7,
        reply_max_tokens: int = 150,
        timeout: float = 8.0,
        client: Optional[httpx.AsyncClient] = None,
        provider_id: str = "anthropic",
    ) -> None:
        super().__init__(provider_id, api_key, base_url, timeout, client)
        self.model = model
        self.intent_temperature = intent_temperature
        self.reply_temperature = reply_temperature
        self.reply_max_tokens = reply_max_tokens

    def _auth_headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}

    async def _message(self, system: str, user: str, temperature: float, max_tokens: int) -> str:
        body = {
            "model": self.model,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": user}],
        }
        data = await self._request("POST", "/v1/messages", json=body)
        try:
            blocks = data["content"]
            text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        except (KeyError, TypeError, AttributeError) as exc:
            raise ProviderError(self.provider_id, "unexpected messages response shape") from exc
        return text

    async def _complete_intent(self, text: str, context_turns: Sequence[str]) -> str:
        return await self._message(
            INTENT_SYSTEM_PROMPT,
            build_intent_prompt(text, context_turns),
            self.intent_temperature,
            300,
        )

    async def generate_reply(
        self,
        text: str,
        intent_name: str,
        context_turns: Sequence[str],
        auxiliary_data: Optional[dict[str, Any]] = None,
    ) -> ReplyResult:
        started = time.perf_counter()
        raw = await self._message(
            REPLY_SYSTEM_PROMPT,
            build_reply_prompt(text, intent_name, context_turns, auxiliary_data),
            self.reply_temperature,
            self.reply_max_tokens,
        )
        reply_text, action = extract_action_marker(raw)
        if not reply_text:
            raise ProviderError(self.provider_id, "empty reply")
        return ReplyResult(
            text=reply_text,
            confidence=0.9,
            provider_id=self.provider_id,
            suggested_action=action,
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        raise ProviderUnavailable(self.provider_id, "speech-to-text not supported")
