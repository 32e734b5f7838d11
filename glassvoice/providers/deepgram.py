"""Adapter for Deepgram pre-recorded transcription. Speech-to-text only."""

import time
from typing import Any, Optional, Sequence

import httpx

from glassvoice.exceptions import ProviderError, ProviderUnavailable
from glassvoice.providers.base import TRANSCRIBE, HttpProvider
from glassvoice.schemas.intent_schema import (
    IntentDetectionResult,
    ReplyResult,
    TranscriptionResult,
)


class DeepgramProvider(HttpProvider):

    capabilities = frozenset({TRANSCRIBE})

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str = "nova-2",
        language: str = "en",
        timeout: float = 8.0,
        client: Optional[httpx.AsyncClient] = None,
        provider_id: str = "deepgram",
    ) -> None:
        super().__init__(provider_id, api_key, base_url, timeout, client)
        self.model = model
        self.language = language

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self.api_key}"}

    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        if not audio:
            raise ProviderError(self.provider_id, "empty audio")
        started = time.perf_counter()
        data = await self._request(
            "POST",
            "/v1/listen",
            params={"model": self.model, "language": self.language, "smart_format": "true"},
            headers={"Content-Type": "audio/wav"},
            content=audio,
        )
        try:
            alternative = data["results"]["channels"][0]["alternatives"][0]
            text = alternative["transcript"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.provider_id, "unexpected transcription shape") from exc
        return TranscriptionResult(
            text=text.strip(),
            confidence=min(1.0, max(0.0, float(alternative.get("confidence", 0.9)))),
            provider_id=self.provider_id,
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    async def classify_intent(
        self, text: str, context_turns: Sequence[str]
    ) -> IntentDetectionResult:
        raise ProviderUnavailable(self.provider_id, "intent classification not supported")

    async def generate_reply(
        self,
        text: str,
        intent_name: str,
        context_turns: Sequence[str],
        auxiliary_data: Optional[dict[str, Any]] = None,
    ) -> ReplyResult:
        raise ProviderUnavailable(self.provider_id, "reply generation not supported")
