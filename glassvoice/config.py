"""
Centralized configuration with environment variable overrides.

Provider credentials, model names, session limits, conversation
behaviour and pricing are all configurable here. Nothing is hardcoded
in the orchestrator, the providers or the action handlers.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from glassvoice.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("groq", "anthropic", "openai", "deepgram")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag such as ``true``/``false``/``1``/``0``."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


def _provider_order() -> tuple[str, ...]:
    raw = os.getenv("AI_PROVIDERS", "groq,anthropic,openai")
    return tuple(p.strip().lower() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class AssistantConfig:
    """Persona and business identity."""

    name: str = os.getenv("ASSISTANT_NAME", "LISA")
    business_name: str = os.getenv("BUSINESS_NAME", "Glass Order Management")


@dataclass(frozen=True)
class ProviderConfig:
    """AI backends: enabled order, credentials, models and timeouts."""

    enabled: tuple[str, ...] = field(default_factory=_provider_order)
    groq_api_key: str = os.getenv("GROQ_API_KEY", "")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")
    deepgram_api_key: str = os.getenv("DEEPGRAM_API_KEY", "")
    groq_base_url: str = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    anthropic_base_url: str = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
    deepgram_base_url: str = os.getenv("DEEPGRAM_BASE_URL", "https://api.deepgram.com")
    groq_model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o")
    anthropic_model: str = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022")
    whisper_model: str = os.getenv("WHISPER_MODEL", "whisper-large-v3")
    deepgram_model: str = os.getenv("DEEPGRAM_MODEL", "nova-2")
    intent_temperature: float = _safe_float("INTENT_TEMPERATURE", "0.1")
    reply_temperature: float = _safe_float("REPLY_TEMPERATURE", "0.7")
    reply_max_tokens: int = _safe_int("REPLY_MAX_TOKENS", "150")
    request_timeout_sec: float = _safe_float("PROVIDER_REQUEST_TIMEOUT", "8.0")
    ensemble_timeout_sec: float = _safe_float("ENSEMBLE_TIMEOUT", "5.0")


@dataclass(frozen=True)
class SessionConfig:
    """History bounds and session lifetime."""

    max_turns: int = _safe_int("MAX_HISTORY_TURNS", "20")
    retain_turns: int = _safe_int("RETAIN_HISTORY_TURNS", "10")
    idle_ttl_minutes: float = _safe_float("SESSION_IDLE_TTL_MINUTES", "30")
    cleanup_interval_sec: float = _safe_float("SESSION_CLEANUP_INTERVAL", "60")
    max_conversation_minutes: float = _safe_float("MAX_CONVERSATION_LENGTH", "30")


@dataclass(frozen=True)
class ConversationConfig:
    """Natural-conversation behaviour toggles."""

    enable_filler_words: bool = _safe_bool("ENABLE_FILLER_WORDS", "true")
    enable_thinking_sounds: bool = _safe_bool("ENABLE_THINKING_SOUNDS", "true")
    thinking_threshold_chars: int = _safe_int("THINKING_THRESHOLD_CHARS", "50")
    silence_timeout_ms: int = _safe_int("SILENCE_TIMEOUT_MS", "1500")
    use_generated_replies: bool = _safe_bool("USE_GENERATED_REPLIES", "true")
    context_window: int = _safe_int("CONTEXT_WINDOW_TURNS", "8")
    demo_mode: bool = _safe_bool("DEMO_MODE", "true")


@dataclass(frozen=True)
class PricingConfig:
    """Quote and order pricing."""

    base_price: float = _safe_float("GLASS_BASE_PRICE", "50.0")
    currency: str = os.getenv("CURRENCY", "USD")
    default_thickness_mm: float = _safe_float("DEFAULT_THICKNESS_MM", "6.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    unknown = [p for p in config.providers.enabled if p not in KNOWN_PROVIDERS]
    if unknown:
        raise ValueError(
            f"AI_PROVIDERS contains unknown providers {unknown}; "
            f"known providers: {list(KNOWN_PROVIDERS)}"
        )
    for name, value in [
        ("INTENT_TEMPERATURE", config.providers.intent_temperature),
        ("REPLY_TEMPERATURE", config.providers.reply_temperature),
    ]:
        if not 0.0 <= value <= 2.0:
            raise ValueError(f"{name} must be between 0.0 and 2.0, got {value}")
    if config.providers.reply_max_tokens < 1:
        raise ValueError(
            f"REPLY_MAX_TOKENS must be >= 1, got {config.providers.reply_max_tokens}"
        )
    for name, value in [
        ("PROVIDER_REQUEST_TIMEOUT", config.providers.request_timeout_sec),
        ("ENSEMBLE_TIMEOUT", config.providers.ensemble_timeout_sec),
        ("SESSION_IDLE_TTL_MINUTES", config.session.idle_ttl_minutes),
        ("SESSION_CLEANUP_INTERVAL", config.session.cleanup_interval_sec),
        ("MAX_CONVERSATION_LENGTH", config.session.max_conversation_minutes),
    ]:
        if value <= 0:
            raise ValueError(f"{name} must be > 0, got {value}")

    if config.session.retain_turns < 1:
        raise ValueError(
            f"RETAIN_HISTORY_TURNS must be >= 1, got {config.session.retain_turns}"
        )
    if config.session.retain_turns >= config.session.max_turns:
        raise ValueError(
            "RETAIN_HISTORY_TURNS must be smaller than MAX_HISTORY_TURNS, "
            f"got {config.session.retain_turns} >= {config.session.max_turns}"
        )
    if config.conversation.silence_timeout_ms < 0:
        raise ValueError(
            f"SILENCE_TIMEOUT_MS must be >= 0, got {config.conversation.silence_timeout_ms}"
        )
    if config.conversation.context_window < 1:
        raise ValueError(
            f"CONTEXT_WINDOW_TURNS must be >= 1, got {config.conversation.context_window}"
        )
    if config.pricing.base_price <= 0:
        raise ValueError(f"GLASS_BASE_PRICE must be > 0, got {config.pricing.base_price}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: [%(session_id)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
    logger.info(
        "Configuration loaded for '%s' (providers: %s)",
        config.assistant.business_name, ", ".join(config.providers.enabled) or "none",
    )
    return config


# Singleton instance
settings = load_config()
