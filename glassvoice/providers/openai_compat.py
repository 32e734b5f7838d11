"""Adapter for OpenAI-compatible APIs (OpenAI itself and Groq)."""

import logging
import time
from typing import Any, Optional, Sequence

import httpx

from glassvoice.exceptions import ProviderError
from glassvoice.prompts.prompt_templates import build_intent_prompt, build_reply_prompt
from glassvoice.prompts.system_prompts import INTENT_SYSTEM_PROMPT, REPLY_SYSTEM_PROMPT
from glassvoice.providers.base import HttpProvider
from glassvoice.schemas.intent_schema import ReplyResult, TranscriptionResult
from glassvoice.utils import extract_action_marker

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(HttpProvider):
    """Chat completions for classification and replies, Whisper for transcription."""

    def __init__(
        self,
        provider_id: str,
        api_key: str,
        base_url: str,
        model: str,
        transcription_model: str = "whisper-1",
        intent_temperature: float = 0.1,
        reply_temperature: float = 0.7,
        reply_max_tokens: int = 150,
        timeout: float = 8.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(provider_id, api_key, base_url, timeout, client)
        self.model = model
        self.transcription_model = transcription_model
        self.intent_temperature = intent_temperature
        self.reply_temperature = reply_temperature
        self.reply_max_tokens = reply_max_tokens

    async def _chat(self, messages: list[dict[str, str]], **options: Any) -> str:
        body = {"model": self.model, "messages": messages, **options}
        data = await self._request("POST", "/chat/completions", json=body)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.provider_id, "unexpected chat completion shape") from exc
        if not isinstance(content, str):
            raise ProviderError(self.provider_id, "chat completion has no text content")
        return content

    async def _complete_intent(self, text: str, context_turns: Sequence[str]) -> str:
        return await self._chat(
            [
                {"role": "system", "content": INTENT_SYSTEM_PROMPT},
                {"role": "user", "content": build_intent_prompt(text, context_turns)},
            ],
            temperature=self.intent_temperature,
            max_tokens=300,
            response_format={"type": "json_object"},
        )

    async def generate_reply(
        self,
        text: str,
        intent_name: str,
        context_turns: Sequence[str],
        auxiliary_data: Optional[dict[str, Any]] = None,
    ) -> ReplyResult:
        started = time.perf_counter()
        raw = await self._chat(
            [
                {"role": "system", "content": REPLY_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_reply_prompt(text, intent_name, context_turns, auxiliary_data),
                },
            ],
            temperature=self.reply_temperature,
            max_tokens=self.reply_max_tokens,
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
        if not audio:
            raise ProviderError(self.provider_id, "empty audio")
        started = time.perf_counter()
        data = await self._request(
            "POST",
            "/audio/transcriptions",
            files={"file": ("audio.wav", audio, "audio/wav")},
            data={"model": self.transcription_model, "response_format": "json"},
        )
        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise ProviderError(self.provider_id, "transcription response has no text")
        return TranscriptionResult(
            text=text.strip(),
            confidence=0.9,
            provider_id=self.provider_id,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
