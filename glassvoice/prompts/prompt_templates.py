"""Prompt construction and canned spoken phrases."""

import json
import random
from typing import Any, Optional, Sequence

from glassvoice.utils import format_money

THINKING_SOUNDS = ["Mm-hmm...", "I see...", "Right...", "Uh-huh...", "LISA's listening...", "Go on..."]

GENERAL_FILLERS = [
    "Mm-hmm...", "I see...", "Right...", "Okay...", "Sure...", "Uh-huh...",
    "LISA's thinking...", "Let me help with that...",
]

TOPIC_FILLERS: dict[str, list[str]] = {
    "order_creation": [
        "Got it, so far we have...", "Okay, let me make sure...",
        "Right, and for the...", "Perfect, so LISA has...",
    ],
    "search": [
        "Let me check that for you...", "LISA's searching now...",
        "Looking that up...", "One moment while I find that...",
    ],
}

INTERRUPTION_RESPONSES = [
    "Oh, go ahead!", "Sorry, what were you saying?", "Yes?",
    "LISA's listening...", "Sure, I'm here!", "What can I help with?",
]

EMOTION_PREFIXES: dict[str, str] = {
    "frustrated": "I understand, and I'm here to help. ",
    "excited": "That's great! ",
    "confused": "No worries, let me clarify that. ",
}

STEP_PROMPTS: dict[str, str] = {
    "glass_type": "What type of glass do you need? For example tempered, laminated, insulated or float.",
    "dimensions": "What are the dimensions? Width by height in millimeters, like 1200 by 800.",
    "quantity": "How many pieces do you need?",
    "customer": "What's the customer name for this order?",
}

LONG_CONVERSATION_NOTICE = (
    "We've been chatting for a while! Let me summarize where we are. "
    "Is there anything specific I can help you wrap up?"
)
NOT_HEARD_REPLY = "Sorry, I didn't quite catch that. Could you say that again?"
NEW_ORDER_INTRO = "Sure, let's set up a new order."
ORDER_CANCELLED_REPLY = "No problem, I've cancelled that order. Is there anything else I can help with?"
CLOSING_REPLY = "Thanks for calling! Have a great day. Goodbye!"
ERROR_REPLY = "Sorry about that. Could you repeat what you need help with?"
FRUSTRATED_ERROR_REPLY = "I apologize for the confusion. Let me try to help you better."


def pick(options: Sequence[str], rng: Optional[random.Random] = None) -> str:
    """Choose one phrase at random."""
    return (rng or random).choice(list(options))


def filler_for_topic(topic: Optional[str], rng: Optional[random.Random] = None) -> str:
    return pick(TOPIC_FILLERS.get(topic or "", GENERAL_FILLERS), rng)


def apply_emotion_prefix(text: str, emotion: Optional[str]) -> str:
    """Prefix a reply with an acknowledgment matching the user's emotion."""
    prefix = EMOTION_PREFIXES.get(emotion or "")
    if not prefix or text.startswith(prefix.strip()):
        return text
    return f"{prefix}{text}"


def format_context(context_turns: Sequence[str], limit: int = 5) -> str:
    return "\n".join(context_turns[-limit:]) if context_turns else "(no previous turns)"


def build_intent_prompt(text: str, context_turns: Sequence[str]) -> str:
    """User message for intent classification."""
    return (
        f'User: "{text}"\n\n'
        f"Previous context:\n{format_context(context_turns)}\n\n"
        "Respond in JSON format only."
    )


def build_reply_prompt(
    text: str,
    intent_name: str,
    context_turns: Sequence[str],
    auxiliary_data: Optional[dict[str, Any]] = None,
    context_limit: int = 8,
) -> str:
    """User message for natural reply generation."""
    parts = [
        f"USER INTENT: {intent_name}",
        f"CONVERSATION CONTEXT:\n{format_context(context_turns, context_limit)}",
    ]
    if auxiliary_data:
        parts.append(f"ACTION RESULT:\n{json.dumps(auxiliary_data, default=str)[:1500]}")
    parts.append(f'USER SAID: "{text}"')
    parts.append("Respond naturally and conversationally.")
    return "\n\n".join(parts)


def build_order_summary(
    glass_type: str,
    width: float,
    height: float,
    quantity: int,
    customer_name: str,
    unit_price: float,
    total_price: float,
    currency: str = "USD",
) -> str:
    """Read-back of a fully collected order, ending with the confirm question."""
    return (
        f"Let me confirm: {quantity} pieces of {glass_type} glass, "
        f"{width:g} by {height:g} millimeters, for {customer_name}. "
        f"That's {format_money(unit_price, currency)} per piece, "
        f"{format_money(total_price, currency)} in total. Shall I create this order?"
    )
