from glassvoice.conversation.ensemble import EnsembleDecision, EnsembleResolver, ProviderAttempt
from glassvoice.conversation.intent_classifier import IntentClassifier, normalize_intent_name
from glassvoice.conversation.order_builder import BuilderStep, OrderBuilder, next_step
from glassvoice.conversation.session_store import Session, SessionStore
from glassvoice.conversation.action_executor import ActionExecutor
from glassvoice.conversation.orchestrator import ConversationOrchestrator

__all__ = [
    "ConversationOrchestrator",
    "ActionExecutor",
    "EnsembleResolver",
    "EnsembleDecision",
    "ProviderAttempt",
    "IntentClassifier",
    "normalize_intent_name",
    "OrderBuilder",
    "BuilderStep",
    "next_step",
    "Session",
    "SessionStore",
]
