"""Shared test fixtures and helpers."""

import asyncio
import random
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import pytest

from glassvoice.conversation.action_executor import ActionExecutor
from glassvoice.conversation.ensemble import EnsembleResolver
from glassvoice.conversation.order_builder import OrderBuilder
from glassvoice.conversation.orchestrator import ConversationOrchestrator
from glassvoice.conversation.session_store import Session, SessionStore
from glassvoice.config import ConversationConfig
from glassvoice.exceptions import ProviderUnavailable
from glassvoice.providers.base import CLASSIFY, REPLY, TRANSCRIBE, ProviderAdapter
from glassvoice.schemas.intent_schema import (
    CanonicalIntent,
    Intent,
    IntentDetectionResult,
    ReplyResult,
    TranscriptionResult,
)
from glassvoice.tools.customers import InMemoryCustomerStore, demo_customers
from glassvoice.tools.orders import InMemoryOrderStore, demo_orders
from glassvoice.tools.reports import SummaryReportGenerator

FIXED_NOW = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for session timing tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(ProviderAdapter):
    """Provider returning canned answers, or raising a canned error."""

    def __init__(
        self,
        provider_id: str,
        intent: Optional[str] = None,
        confidence: float = 0.9,
        entities: Optional[dict[str, Any]] = None,
        emotion: Optional[str] = None,
        reply: Optional[str] = None,
        suggested_action: Optional[str] = None,
        transcript: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        capabilities: frozenset[str] = frozenset({TRANSCRIBE, CLASSIFY, REPLY}),
    ) -> None:
        self.provider_id = provider_id
        self.intent = intent
        self.confidence = confidence
        self.entities = entities or {}
        self.emotion = emotion
        self.reply = reply
        self.suggested_action = suggested_action
        self.transcript = transcript
        self.error = error
        self.delay = delay
        self.capabilities = capabilities
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def _wait(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def classify_intent(
        self, text: str, context_turns: Sequence[str]
    ) -> IntentDetectionResult:
        self.calls.append(("classify", text))
        await self._wait()
        if self.intent is None:
            raise ProviderUnavailable(self.provider_id, "no canned intent")
        return IntentDetectionResult(
            intent_name=self.intent,
            confidence=self.confidence,
            entities=self.entities,
            provider_id=self.provider_id,
            emotion=self.emotion,
        )

    async def generate_reply(
        self,
        text: str,
        intent_name: str,
        context_turns: Sequence[str],
        auxiliary_data: Optional[dict[str, Any]] = None,
    ) -> ReplyResult:
        self.calls.append(("reply", text))
        await self._wait()
        if self.reply is None:
            raise ProviderUnavailable(self.provider_id, "no canned reply")
        return ReplyResult(
            text=self.reply,
            confidence=0.9,
            provider_id=self.provider_id,
            suggested_action=self.suggested_action,
        )

    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        self.calls.append(("transcribe", f"{len(audio)} bytes"))
        await self._wait()
        if self.transcript is None:
            raise ProviderUnavailable(self.provider_id, "no canned transcript")
        return TranscriptionResult(text=self.transcript, confidence=0.95, provider_id=self.provider_id)

    async def aclose(self) -> None:
        self.closed = True


def make_intent(
    name: CanonicalIntent,
    entities: Optional[dict[str, Any]] = None,
    confidence: float = 0.9,
    **kwargs: Any,
) -> Intent:
    """Helper to create a canonical Intent."""
    return Intent(name=name, confidence=confidence, entities=entities or {}, **kwargs)


class FailingOrderStore(InMemoryOrderStore):
    """Order store whose writes always fail, for degraded-path tests."""

    def __init__(self) -> None:
        super().__init__(demo_orders(FIXED_NOW))
        self.create_calls = 0

    async def create(self, request, customer_id):
        self.create_calls += 1
        raise ConnectionError("database unavailable")

    async def search(self, **filters):
        raise ConnectionError("database unavailable")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def order_store():
    return InMemoryOrderStore(demo_orders(FIXED_NOW))


@pytest.fixture
def customer_store():
    return InMemoryCustomerStore(demo_customers())


@pytest.fixture
def report_generator():
    return SummaryReportGenerator()


@pytest.fixture
def executor(order_store, customer_store, report_generator):
    return ActionExecutor(
        order_store, customer_store, report_generator,
        base_price=50.0, currency="USD", default_thickness=6.0, demo_mode=True,
    )


@pytest.fixture
def session_store(clock):
    return SessionStore(max_turns=20, retain_turns=10, idle_ttl_minutes=30, clock=clock)


@pytest.fixture
def session():
    return Session(key="test-session")


@pytest.fixture
def builder():
    return OrderBuilder(base_price=50.0, currency="USD")


@pytest.fixture
def conversation_config():
    return ConversationConfig(
        enable_filler_words=True,
        enable_thinking_sounds=True,
        thinking_threshold_chars=50,
        silence_timeout_ms=1500,
        use_generated_replies=True,
        context_window=8,
        demo_mode=True,
    )


@pytest.fixture
def orchestrator(executor, session_store, conversation_config):
    """Orchestrator with no AI providers: pattern classification and templates only."""
    return ConversationOrchestrator(
        resolver=None,
        executor=executor,
        store=session_store,
        config=conversation_config,
        max_conversation_minutes=30,
        rng=random.Random(7),
    )


def make_orchestrator(
    providers: Sequence[ProviderAdapter],
    executor: ActionExecutor,
    store: SessionStore,
    config: ConversationConfig,
    timeout: float = 1.0,
) -> ConversationOrchestrator:
    """Orchestrator wired to the given fake providers."""
    return ConversationOrchestrator(
        resolver=EnsembleResolver(providers, timeout=timeout),
        executor=executor,
        store=store,
        config=config,
        max_conversation_minutes=30,
        rng=random.Random(7),
    )
