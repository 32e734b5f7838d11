"""
Exception hierarchy for the voice assistant.

Provider failures are recovered from inside the ensemble, action
failures become degraded responses, and nothing here is expected to
escape the orchestrator.
"""

from typing import Any, Optional


class VoiceAssistantError(Exception):
    """Base exception for assistant errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "VOICE_ASSISTANT_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Provider Exceptions
# =========================

class ProviderError(VoiceAssistantError):
    """A provider answered, but the answer was an error or unusable."""

    def __init__(self, provider_id: str, message: str, details: Optional[dict[str, Any]] = None):
        self.provider_id = provider_id
        super().__init__(
            message=f"{provider_id}: {message}",
            error_code="PROVIDER_ERROR",
            details=details,
        )


class ProviderUnavailable(ProviderError):
    """A provider could not be used: unreachable, timed out, unauthenticated,
    rate-limited, not configured, or lacking the requested capability."""

    def __init__(self, provider_id: str, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(provider_id, reason, details)
        self.error_code = "PROVIDER_UNAVAILABLE"
        self.reason = reason


# =========================
# Session / Action Exceptions
# =========================

class SessionNotFoundError(VoiceAssistantError):
    """Raised when a session key is not known to the store."""

    def __init__(self, session_key: str):
        super().__init__(
            message=f"Session not found: {session_key}",
            error_code="SESSION_NOT_FOUND",
            details={"session_key": session_key},
        )


class ActionExecutionError(VoiceAssistantError):
    """Raised by an action handler when a collaborator call fails."""

    def __init__(self, action: str, message: str, details: Optional[dict[str, Any]] = None):
        self.action = action
        super().__init__(
            message=f"{action} failed: {message}",
            error_code="ACTION_FAILED",
            details=details,
        )


class InvalidTransitionError(VoiceAssistantError):
    """Raised when the order builder receives input in a terminal step."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_TRANSITION")
