"""
Multi-provider ensemble for intent classification, plus ordered fallback
chains for reply generation and transcription.

Classification is fanned out to every capable provider at once; each
call is bounded by a timeout and yields a ProviderAttempt holding either
a result or the error. The successful results are then reduced to one:
the highest confidence wins whether or not the providers agree, and a
tie goes to the provider listed first in configuration.

Usage:
    resolver = EnsembleResolver(providers, timeout=5.0)
    decision = await resolver.resolve_intent("I need tempered glass", context)
    if decision.failed:
        ...  # fall back to pattern matching
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence

from glassvoice.exceptions import ProviderError, ProviderUnavailable
from glassvoice.providers.base import CLASSIFY, REPLY, TRANSCRIBE, ProviderAdapter
from glassvoice.schemas.intent_schema import (
    IntentDetectionResult,
    ReplyResult,
    TranscriptionResult,
)
from glassvoice.utils import normalize_key

logger = logging.getLogger(__name__)


@dataclass
class ProviderAttempt:
    """Outcome of one provider call: exactly one of result / error is set."""
    provider_id: str
    result: Optional[Any] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


@dataclass
class EnsembleDecision:
    """Reduced classification plus every attempt that led to it."""
    winner: Optional[IntentDetectionResult]
    attempts: list[ProviderAttempt] = field(default_factory=list)
    agreed: Optional[bool] = None

    @property
    def failed(self) -> bool:
        return self.winner is None

    @property
    def successes(self) -> list[IntentDetectionResult]:
        return [a.result for a in self.attempts if a.ok]


def reduce_intents(results: Sequence[IntentDetectionResult]) -> Optional[IntentDetectionResult]:
    """Pick the winning classification from results in provider priority order.

    A later result only replaces the current winner with strictly higher
    confidence, so ties stay with the earlier provider.
    """
    winner: Optional[IntentDetectionResult] = None
    for result in results:
        if winner is None or result.confidence > winner.confidence:
            winner = result
    return winner


def intents_agree(results: Sequence[IntentDetectionResult]) -> Optional[bool]:
    if len(results) < 2:
        return None
    return len({normalize_key(r.intent_name) for r in results}) == 1


class EnsembleResolver:
    """Runs provider calls with bounded waits and reduces their results."""

    def __init__(self, providers: Sequence[ProviderAdapter], timeout: float = 5.0) -> None:
        self.providers = list(providers)
        self.timeout = timeout

    def capable(self, capability: str) -> list[ProviderAdapter]:
        return [p for p in self.providers if capability in p.capabilities]

    async def _attempt(
        self, provider: ProviderAdapter, call: Callable[[], Awaitable[Any]]
    ) -> ProviderAttempt:
        try:
            result = await asyncio.wait_for(call(), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = ProviderUnavailable(provider.provider_id, f"no answer within {self.timeout}s")
            logger.warning("Provider %s timed out after %.1fs", provider.provider_id, self.timeout)
            return ProviderAttempt(provider.provider_id, error=error)
        except ProviderError as exc:
            logger.warning("Provider %s failed: %s", provider.provider_id, exc.message)
            return ProviderAttempt(provider.provider_id, error=exc)
        except Exception as exc:
            logger.exception("Provider %s raised an unexpected error", provider.provider_id)
            return ProviderAttempt(provider.provider_id, error=exc)
        return ProviderAttempt(provider.provider_id, result=result)

    async def resolve_intent(self, text: str, context_turns: Sequence[str]) -> EnsembleDecision:
        """Classify with every capable provider concurrently and reduce."""
        providers = self.capable(CLASSIFY)
        if not providers:
            return EnsembleDecision(winner=None)

        attempts = await asyncio.gather(*(
            self._attempt(p, lambda p=p: p.classify_intent(text, context_turns))
            for p in providers
        ))
        successes = [a.result for a in attempts if a.ok]
        winner = reduce_intents(successes)
        agreed = intents_agree(successes)

        if winner is None:
            logger.warning("All %d classification providers failed", len(providers))
        else:
            logger.info(
                "Ensemble resolved '%s' (%.2f) from %s; %d/%d succeeded%s",
                winner.intent_name, winner.confidence, winner.provider_id,
                len(successes), len(providers),
                "" if agreed is None else (", providers agree" if agreed else ", providers disagree"),
            )
        return EnsembleDecision(winner=winner, attempts=list(attempts), agreed=agreed)

    async def _first_success(
        self, capability: str, call: Callable[[ProviderAdapter], Awaitable[Any]]
    ) -> tuple[Optional[Any], list[ProviderAttempt]]:
        attempts: list[ProviderAttempt] = []
        for provider in self.capable(capability):
            attempt = await self._attempt(provider, lambda provider=provider: call(provider))
            attempts.append(attempt)
            if attempt.ok:
                return attempt.result, attempts
        return None, attempts

    async def first_reply(
        self,
        text: str,
        intent_name: str,
        context_turns: Sequence[str],
        auxiliary_data: Optional[dict[str, Any]] = None,
    ) -> Optional[ReplyResult]:
        """Generate a reply with the first provider that succeeds, in priority order."""
        result, attempts = await self._first_success(
            REPLY,
            lambda p: p.generate_reply(text, intent_name, context_turns, auxiliary_data),
        )
        if result is None and attempts:
            logger.warning("Reply generation failed on all %d providers", len(attempts))
        return result

    async def first_transcription(self, audio: bytes) -> Optional[TranscriptionResult]:
        """Transcribe with the first provider that succeeds, in priority order."""
        result, attempts = await self._first_success(TRANSCRIBE, lambda p: p.transcribe(audio))
        if result is None:
            logger.warning("Transcription failed on all %d providers", len(attempts))
        return result

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()
