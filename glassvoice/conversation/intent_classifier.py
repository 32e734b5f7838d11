"""
Intent classification: ensemble first, deterministic patterns as fallback.

Providers answer in their own vocabulary ("CREATE_ORDER", "get reports",
"casual_conversation"). Everything is normalized onto CanonicalIntent,
and fields a provider leaves out are filled from INTENT_METADATA. When
every provider fails, or none is configured, a word-boundary regex
classifier over the lowercased utterance decides instead. It always
returns an intent.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from glassvoice.config import settings
from glassvoice.conversation.ensemble import EnsembleResolver
from glassvoice.conversation.extractors import extract_order_fields
from glassvoice.prompts.prompt_templates import CLOSING_REPLY
from glassvoice.schemas.intent_schema import (
    CanonicalIntent,
    ConversationPhase,
    Emotion,
    Intent,
    IntentDetectionResult,
    Urgency,
)
from glassvoice.utils import extract_order_reference, normalize_key

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "pattern"
DEFAULT_FALLBACK_CONFIDENCE = 0.5


@dataclass(frozen=True)
class IntentMetadata:
    """Defaults for a canonical intent when a provider does not supply them."""
    topic: str
    template: str
    phase: ConversationPhase = ConversationPhase.INQUIRY
    requires_input: bool = False
    emotion: Emotion = Emotion.NEUTRAL
    urgency: Urgency = Urgency.LOW


INTENT_METADATA: dict[CanonicalIntent, IntentMetadata] = {
    CanonicalIntent.PLACE_ORDER: IntentMetadata(
        topic="order_creation",
        template="Sure, let's set up a new order.",
        phase=ConversationPhase.PROCESSING,
        requires_input=True,
        urgency=Urgency.MEDIUM,
    ),
    CanonicalIntent.CHECK_ORDER: IntentMetadata(
        topic="order_status",
        template="Let me look that order up for you.",
        phase=ConversationPhase.PROCESSING,
    ),
    CanonicalIntent.MODIFY_ORDER: IntentMetadata(
        topic="order_update",
        template="Okay, let's update that order.",
        phase=ConversationPhase.PROCESSING,
        requires_input=True,
        urgency=Urgency.MEDIUM,
    ),
    CanonicalIntent.CANCEL_ORDER: IntentMetadata(
        topic="order_cancellation",
        template="Alright, let me cancel that order.",
        phase=ConversationPhase.PROCESSING,
        urgency=Urgency.MEDIUM,
    ),
    CanonicalIntent.GET_QUOTE: IntentMetadata(
        topic="pricing",
        template="Let me work out a quote for you.",
        phase=ConversationPhase.PROCESSING,
    ),
    CanonicalIntent.SEARCH_ORDERS: IntentMetadata(
        topic="search",
        template="Let me search the orders for you.",
        phase=ConversationPhase.PROCESSING,
    ),
    CanonicalIntent.UPDATE_ORDER: IntentMetadata(
        topic="order_update",
        template="Okay, let's update that order.",
        phase=ConversationPhase.PROCESSING,
        requires_input=True,
        urgency=Urgency.MEDIUM,
    ),
    CanonicalIntent.GENERATE_REPORT: IntentMetadata(
        topic="reports",
        template="I'll put that report together for you.",
        phase=ConversationPhase.PROCESSING,
    ),
    CanonicalIntent.GREETING: IntentMetadata(
        topic="greeting",
        template=(
            f"Hi, this is {settings.assistant.name}! "
            "How can I help you with your glass orders today?"
        ),
        phase=ConversationPhase.GREETING,
        requires_input=True,
        emotion=Emotion.HAPPY,
    ),
    CanonicalIntent.GOODBYE: IntentMetadata(
        topic="closing",
        template=CLOSING_REPLY,
        phase=ConversationPhase.CLOSING,
    ),
    CanonicalIntent.CLARIFICATION: IntentMetadata(
        topic="help",
        template=(
            "I can create new orders, check or update existing ones, give you a quote, "
            "search orders and generate reports. What would you like to do?"
        ),
        requires_input=True,
    ),
    CanonicalIntent.GENERAL_INQUIRY: IntentMetadata(
        topic="general",
        template="I'm here to help with your glass orders. What would you like to do?",
        requires_input=True,
    ),
    CanonicalIntent.END_CONVERSATION: IntentMetadata(
        topic="closing",
        template=CLOSING_REPLY,
        phase=ConversationPhase.CLOSING,
    ),
}

INTENT_ALIASES: dict[str, CanonicalIntent] = {
    "create_order": CanonicalIntent.PLACE_ORDER,
    "new_order": CanonicalIntent.PLACE_ORDER,
    "make_order": CanonicalIntent.PLACE_ORDER,
    "order": CanonicalIntent.PLACE_ORDER,
    "order_created": CanonicalIntent.PLACE_ORDER,
    "check_status": CanonicalIntent.CHECK_ORDER,
    "order_status": CanonicalIntent.CHECK_ORDER,
    "track_order": CanonicalIntent.CHECK_ORDER,
    "get_order": CanonicalIntent.CHECK_ORDER,
    "lookup_order": CanonicalIntent.CHECK_ORDER,
    "edit_order": CanonicalIntent.MODIFY_ORDER,
    "change_order": CanonicalIntent.MODIFY_ORDER,
    "update_status": CanonicalIntent.UPDATE_ORDER,
    "update_order_status": CanonicalIntent.UPDATE_ORDER,
    "delete_order": CanonicalIntent.CANCEL_ORDER,
    "quote": CanonicalIntent.GET_QUOTE,
    "price": CanonicalIntent.GET_QUOTE,
    "pricing": CanonicalIntent.GET_QUOTE,
    "get_price": CanonicalIntent.GET_QUOTE,
    "price_quote": CanonicalIntent.GET_QUOTE,
    "search": CanonicalIntent.SEARCH_ORDERS,
    "search_order": CanonicalIntent.SEARCH_ORDERS,
    "search_results": CanonicalIntent.SEARCH_ORDERS,
    "find_orders": CanonicalIntent.SEARCH_ORDERS,
    "list_orders": CanonicalIntent.SEARCH_ORDERS,
    "orders_found": CanonicalIntent.SEARCH_ORDERS,
    "get_orders": CanonicalIntent.SEARCH_ORDERS,
    "generate_pdf": CanonicalIntent.GENERATE_REPORT,
    "pdf": CanonicalIntent.GENERATE_REPORT,
    "pdf_requested": CanonicalIntent.GENERATE_REPORT,
    "report": CanonicalIntent.GENERATE_REPORT,
    "reports": CanonicalIntent.GENERATE_REPORT,
    "get_report": CanonicalIntent.GENERATE_REPORT,
    "get_reports": CanonicalIntent.GENERATE_REPORT,
    "hello": CanonicalIntent.GREETING,
    "hi": CanonicalIntent.GREETING,
    "greet": CanonicalIntent.GREETING,
    "bye": CanonicalIntent.GOODBYE,
    "farewell": CanonicalIntent.GOODBYE,
    "help": CanonicalIntent.CLARIFICATION,
    "get_help": CanonicalIntent.CLARIFICATION,
    "get_info": CanonicalIntent.CLARIFICATION,
    "clarify": CanonicalIntent.CLARIFICATION,
    "general": CanonicalIntent.GENERAL_INQUIRY,
    "inquiry": CanonicalIntent.GENERAL_INQUIRY,
    "question": CanonicalIntent.GENERAL_INQUIRY,
    "casual_conversation": CanonicalIntent.GENERAL_INQUIRY,
    "small_talk": CanonicalIntent.GENERAL_INQUIRY,
    "complaint": CanonicalIntent.GENERAL_INQUIRY,
    "unknown": CanonicalIntent.GENERAL_INQUIRY,
    "none": CanonicalIntent.GENERAL_INQUIRY,
    "other": CanonicalIntent.GENERAL_INQUIRY,
    "end": CanonicalIntent.END_CONVERSATION,
    "stop": CanonicalIntent.END_CONVERSATION,
    "end_call": CanonicalIntent.END_CONVERSATION,
    "hang_up": CanonicalIntent.END_CONVERSATION,
    "quit": CanonicalIntent.END_CONVERSATION,
    "exit": CanonicalIntent.END_CONVERSATION,
}


@dataclass(frozen=True)
class PatternRule:
    """Fallback rule: all patterns must match the lowercased utterance."""
    intent: CanonicalIntent
    confidence: float
    patterns: tuple[re.Pattern, ...]

    def matches(self, text: str) -> bool:
        return all(p.search(text) for p in self.patterns)


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern)


_ORDER_WORD = r"\b(orders?|ord-\w+)\b"

# Checked in order; first match wins.
FALLBACK_RULES: tuple[PatternRule, ...] = (
    PatternRule(CanonicalIntent.CANCEL_ORDER, 0.7, (_rx(r"\b(cancel|delete)\b"), _rx(_ORDER_WORD))),
    PatternRule(
        CanonicalIntent.MODIFY_ORDER, 0.7,
        (_rx(r"\b(modify|change|edit)\b"), _rx(_ORDER_WORD)),
    ),
    PatternRule(
        CanonicalIntent.UPDATE_ORDER, 0.7,
        (_rx(r"\b(update|mark|set)\b"), _rx(r"\b(orders?|ord-\w+|status)\b")),
    ),
    PatternRule(
        CanonicalIntent.GET_QUOTE, 0.7,
        (_rx(r"\b(quote|price|pricing|cost|how much|estimate)\b"),),
    ),
    PatternRule(
        CanonicalIntent.PLACE_ORDER, 0.7,
        (_rx(r"\b(new|create|place|make|start)\b"), _rx(r"\b(orders?)\b")),
    ),
    PatternRule(CanonicalIntent.GENERATE_REPORT, 0.7, (_rx(r"\b(report|reports|pdf)\b"),)),
    PatternRule(
        CanonicalIntent.SEARCH_ORDERS, 0.7,
        (_rx(r"\b(search|find|show|list|look for)\b"),),
    ),
    PatternRule(
        CanonicalIntent.CHECK_ORDER, 0.7,
        (_rx(r"\b(status|check|track|where is|where's)\b"), _rx(_ORDER_WORD)),
    ),
    PatternRule(
        CanonicalIntent.END_CONVERSATION, 0.8,
        (_rx(
            r"\b(bye|goodbye|good bye|stop|end|finish|done|quit|exit|hang up|"
            r"that's all|that is all|nothing else|see you|talk to you later)\b"
        ),),
    ),
    PatternRule(
        CanonicalIntent.GREETING, 0.8,
        (_rx(r"\b(hi|hello|hey|hiya|howdy|good (morning|afternoon|evening))\b"),),
    ),
    PatternRule(
        CanonicalIntent.CLARIFICATION, 0.6,
        (_rx(r"\b(help|what can you do|how does|how do i|confused|don't understand)\b"),),
    ),
)


def normalize_intent_name(raw: Optional[str]) -> CanonicalIntent:
    """Map any provider intent label onto the canonical vocabulary.

    Examples:
        >>> normalize_intent_name("CREATE_ORDER")
        <CanonicalIntent.PLACE_ORDER: 'place_order'>
        >>> normalize_intent_name("Search Orders")
        <CanonicalIntent.SEARCH_ORDERS: 'search_orders'>
    """
    key = normalize_key(raw or "")
    try:
        return CanonicalIntent(key)
    except ValueError:
        pass
    if key in INTENT_ALIASES:
        return INTENT_ALIASES[key]
    logger.debug("Unknown intent label %r; treating as general_inquiry", raw)
    return CanonicalIntent.GENERAL_INQUIRY


def _coerce(enum_cls, value: Any, default):
    if value is None:
        return default
    try:
        return enum_cls(normalize_key(str(value)))
    except ValueError:
        return default


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_entities(entities: dict[str, Any]) -> dict[str, Any]:
    """snake_case entity keys ("glassType" -> "glass_type")."""
    return {normalize_key(_CAMEL_RE.sub("_", str(k))): v for k, v in entities.items()}


def text_entities(text: str) -> dict[str, Any]:
    """Entities the local extractors can read straight from the utterance."""
    entities: dict[str, Any] = dict(extract_order_fields(text))
    reference = extract_order_reference(text)
    if reference:
        entities["order_id"] = reference
    return entities


def fallback_intent(text: str) -> Intent:
    """Deterministic classification from word patterns. Never fails."""
    lowered = text.lower().strip()
    name, confidence = CanonicalIntent.GENERAL_INQUIRY, DEFAULT_FALLBACK_CONFIDENCE
    for rule in FALLBACK_RULES:
        if rule.matches(lowered):
            name, confidence = rule.intent, rule.confidence
            break
    meta = INTENT_METADATA[name]
    return Intent(
        name=name,
        confidence=confidence,
        entities=text_entities(text),
        emotion=meta.emotion,
        urgency=meta.urgency,
        requires_input=meta.requires_input,
        topic=meta.topic,
        phase=meta.phase,
        reply=None,
        source=FALLBACK_SOURCE,
    )


def intent_from_result(result: IntentDetectionResult, text: str) -> Intent:
    """Canonical Intent from a provider result, gaps filled from metadata."""
    name = normalize_intent_name(result.intent_name)
    meta = INTENT_METADATA[name]
    entities = text_entities(text)
    entities.update(normalize_entities(result.entities))
    return Intent(
        name=name,
        confidence=result.confidence,
        entities=entities,
        emotion=_coerce(Emotion, result.emotion, meta.emotion),
        urgency=_coerce(Urgency, result.urgency, meta.urgency),
        requires_input=meta.requires_input if result.requires_input is None else result.requires_input,
        topic=result.topic or meta.topic,
        phase=_coerce(ConversationPhase, result.phase, meta.phase),
        reply=result.reply,
        source=result.provider_id,
    )


class IntentClassifier:
    """Ensemble classification with a pattern-matching safety net."""

    def __init__(self, resolver: Optional[EnsembleResolver] = None) -> None:
        self.resolver = resolver

    async def classify(self, text: str, context_turns: Sequence[str] = ()) -> Intent:
        if self.resolver is None:
            return fallback_intent(text)

        decision = await self.resolver.resolve_intent(text, context_turns)
        if decision.failed:
            intent = fallback_intent(text)
            logger.info(
                "Falling back to pattern matching: %s (%.2f)", intent.name.value, intent.confidence
            )
            return intent
        return intent_from_result(decision.winner, text)

    @staticmethod
    def template_for(name: CanonicalIntent) -> str:
        return INTENT_METADATA[name].template
