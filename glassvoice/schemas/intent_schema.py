"""Intent vocabulary and AI provider result models."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CanonicalIntent(str, Enum):
    """Closed vocabulary every provider label is normalized onto."""
    PLACE_ORDER = "place_order"
    CHECK_ORDER = "check_order"
    MODIFY_ORDER = "modify_order"
    CANCEL_ORDER = "cancel_order"
    GET_QUOTE = "get_quote"
    SEARCH_ORDERS = "search_orders"
    UPDATE_ORDER = "update_order"
    GENERATE_REPORT = "generate_report"
    GREETING = "greeting"
    GOODBYE = "goodbye"
    CLARIFICATION = "clarification"
    GENERAL_INQUIRY = "general_inquiry"
    END_CONVERSATION = "end_conversation"


class Emotion(str, Enum):
    NEUTRAL = "neutral"
    HAPPY = "happy"
    FRUSTRATED = "frustrated"
    EXCITED = "excited"
    CONFUSED = "confused"
    CONCERNED = "concerned"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConversationPhase(str, Enum):
    GREETING = "greeting"
    INQUIRY = "inquiry"
    PROCESSING = "processing"
    CONFIRMATION = "confirmation"
    CLOSING = "closing"


class TranscriptionResult(BaseModel):
    """Text recognised from audio by one provider."""
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    provider_id: str
    duration_ms: Optional[float] = None


class IntentDetectionResult(BaseModel):
    """Raw classification returned by one provider, before normalization."""
    intent_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    entities: dict[str, Any] = Field(default_factory=dict)
    should_respond: bool = True
    provider_id: str
    emotion: Optional[str] = None
    urgency: Optional[str] = None
    topic: Optional[str] = None
    phase: Optional[str] = None
    requires_input: Optional[bool] = None
    reply: Optional[str] = None
    duration_ms: Optional[float] = None


class ReplyResult(BaseModel):
    """Natural-language reply generated by one provider."""
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    provider_id: str
    suggested_action: Optional[str] = None
    duration_ms: Optional[float] = None


class Intent(BaseModel):
    """Classified intent of a single utterance, in canonical form."""
    name: CanonicalIntent
    confidence: float = Field(ge=0.0, le=1.0)
    entities: dict[str, Any] = Field(default_factory=dict)
    emotion: Emotion = Emotion.NEUTRAL
    urgency: Urgency = Urgency.LOW
    requires_input: bool = False
    topic: Optional[str] = None
    phase: ConversationPhase = ConversationPhase.INQUIRY
    reply: Optional[str] = None
    source: str = "pattern"
