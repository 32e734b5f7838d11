"""Conversation turn, response and action result schemas."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Speaker(str, Enum):
    ASSISTANT = "assistant"
    USER = "user"
    SYSTEM = "system"


class Turn(BaseModel):
    """A single entry in a session's conversation history."""

    speaker: Speaker
    text: str
    timestamp: float


class VoiceResponse(BaseModel):
    """What the orchestrator hands back to the transport for one utterance."""

    text: str
    action: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    should_speak: bool = True
    filler_word: Optional[str] = None
    is_thinking: bool = False
    confidence: float = 1.0


class ActionResult(BaseModel):
    """Outcome of executing the side effect attached to an intent."""

    action: Optional[str] = None
    message: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    success: bool = True
    degraded: bool = False
