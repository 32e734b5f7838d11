"""
Uniform interface over external AI backends.

Every backend offers the same three operations: transcription, intent
classification and reply generation. A backend that lacks a capability
raises ProviderUnavailable for it. Adapters never retry; fallback is the
ensemble's job.
"""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import httpx

from glassvoice.exceptions import ProviderError, ProviderUnavailable
from glassvoice.schemas.intent_schema import (
    IntentDetectionResult,
    ReplyResult,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

TRANSCRIBE = "transcribe"
CLASSIFY = "classify"
REPLY = "reply"


class ProviderAdapter(ABC):
    """One external AI backend."""

    provider_id: str = "provider"
    capabilities: frozenset[str] = frozenset({TRANSCRIBE, CLASSIFY, REPLY})

    @abstractmethod
    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        """Turn raw audio into text."""

    @abstractmethod
    async def classify_intent(
        self, text: str, context_turns: Sequence[str]
    ) -> IntentDetectionResult:
        """Classify one utterance given the recent conversation."""

    @abstractmethod
    async def generate_reply(
        self,
        text: str,
        intent_name: str,
        context_turns: Sequence[str],
        auxiliary_data: Optional[dict[str, Any]] = None,
    ) -> ReplyResult:
        """Produce a spoken reply for an utterance."""

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""


def extract_json_object(text: str, provider_id: str) -> dict[str, Any]:
    """Parse the first ``{...}`` block of a model answer.

    Models often wrap JSON in prose or code fences, so the outermost
    braces are located first.
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise ProviderError(provider_id, "no JSON object in model output", {"output": (text or "")[:200]})
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ProviderError(provider_id, f"malformed JSON: {exc.msg}", {"output": (text or "")[:200]}) from exc
    if not isinstance(payload, dict):
        raise ProviderError(provider_id, "JSON output is not an object")
    return payload


def _confidence(value: Any, provider_id: str, default: float = 0.5) -> float:
    if value is None:
        return default
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        raise ProviderError(provider_id, f"non-numeric confidence {value!r}") from None


def intent_result_from_payload(
    payload: dict[str, Any], provider_id: str, duration_ms: Optional[float] = None
) -> IntentDetectionResult:
    """Build an IntentDetectionResult from a provider's parsed JSON answer."""
    intent_name = payload.get("intent")
    if not isinstance(intent_name, str) or not intent_name.strip():
        raise ProviderError(provider_id, "classification has no intent name")
    entities = payload.get("entities") or payload.get("parameters") or {}
    if not isinstance(entities, dict):
        entities = {}
    context = payload.get("context") if isinstance(payload.get("context"), dict) else {}
    requires_input = payload.get("requiresUserInput", payload.get("requires_input"))
    should_respond = payload.get("shouldRespond", payload.get("should_respond", True))
    return IntentDetectionResult(
        intent_name=intent_name.strip(),
        confidence=_confidence(payload.get("confidence"), provider_id),
        entities={k: v for k, v in entities.items() if v not in (None, "")},
        should_respond=bool(should_respond),
        provider_id=provider_id,
        emotion=payload.get("emotion"),
        urgency=payload.get("urgency"),
        topic=payload.get("topic"),
        phase=context.get("conversationPhase") or payload.get("phase"),
        requires_input=bool(requires_input) if requires_input is not None else None,
        reply=payload.get("naturalResponse") or payload.get("reply"),
        duration_ms=duration_ms,
    )


class HttpProvider(ProviderAdapter):
    """Shared HTTP plumbing: auth check, error mapping and JSON decoding.

    A client can be injected (tests pass one built on ``httpx.MockTransport``);
    otherwise one is created lazily and owned by the adapter.
    """

    def __init__(
        self,
        provider_id: str,
        api_key: str,
        base_url: str,
        timeout: float = 8.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.provider_id = provider_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if not self.configured:
            raise ProviderUnavailable(self.provider_id, "no API key configured")

        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        url = f"{self.base_url}{path}"
        try:
            response = await self._get_client().request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderUnavailable(self.provider_id, "request timed out") from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailable(self.provider_id, f"unreachable: {exc}") from exc

        status = response.status_code
        if status in (401, 403):
            raise ProviderUnavailable(self.provider_id, f"authentication rejected (HTTP {status})")
        if status == 429:
            raise ProviderUnavailable(self.provider_id, "rate limited (HTTP 429)")
        if status >= 400:
            raise ProviderError(
                self.provider_id, f"HTTP {status}", {"body": response.text[:500]}
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(self.provider_id, "response body is not JSON") from exc

    async def classify_intent(
        self, text: str, context_turns: Sequence[str]
    ) -> IntentDetectionResult:
        started = time.perf_counter()
        raw = await self._complete_intent(text, context_turns)
        payload = extract_json_object(raw, self.provider_id)
        duration_ms = (time.perf_counter() - started) * 1000
        result = intent_result_from_payload(payload, self.provider_id, duration_ms)
        logger.debug(
            "%s classified %r as %s (%.2f) in %.0f ms",
            self.provider_id, text[:60], result.intent_name, result.confidence, duration_ms,
        )
        return result

    async def _complete_intent(self, text: str, context_turns: Sequence[str]) -> str:
        """Return the raw model answer for a classification request."""
        raise ProviderUnavailable(self.provider_id, "intent classification not supported")

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
