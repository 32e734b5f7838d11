"""
Conversation orchestrator: the entry point for every utterance.

Transports (a socket gateway, the console demo) hand each speech event
to ``process`` with a session key. Interim and continuous-speech events
only flip session flags and may return a filler; final utterances run
the full pipeline under the session's lock:

    record turn -> length ceiling -> [active order build | classify -> act]
        -> compose reply -> record turn

Every path returns a VoiceResponse; failures degrade to a spoken
apology instead of propagating to the transport.

Usage:
    orchestrator = ConversationOrchestrator.from_settings()
    response = await orchestrator.process("Create a new order", "sock-1")
    print(response.text)
"""

import random
from typing import Any, Optional

import httpx

from glassvoice.config import ConversationConfig, settings
from glassvoice.conversation.action_executor import ActionExecutor
from glassvoice.conversation.ensemble import EnsembleResolver
from glassvoice.conversation.extractors import is_cancellation
from glassvoice.conversation.intent_classifier import IntentClassifier
from glassvoice.conversation.session_store import Session, SessionStore
from glassvoice.exceptions import ActionExecutionError, SessionNotFoundError
from glassvoice.logging_context import get_session_logger, set_session_id
from glassvoice.prompts.prompt_templates import (
    ERROR_REPLY,
    FRUSTRATED_ERROR_REPLY,
    INTERRUPTION_RESPONSES,
    LONG_CONVERSATION_NOTICE,
    NOT_HEARD_REPLY,
    THINKING_SOUNDS,
    apply_emotion_prefix,
    filler_for_topic,
    pick,
)
from glassvoice.providers import build_providers
from glassvoice.schemas.conversation_schema import ActionResult, Speaker, VoiceResponse
from glassvoice.schemas.intent_schema import Emotion, Intent

logger = get_session_logger(__name__)

VOICE_STATUSES = ("speaking", "listening", "idle")


def _silent() -> VoiceResponse:
    return VoiceResponse(text="", should_speak=False, confidence=0.0)


class ConversationOrchestrator:
    """Routes speech events through classification, actions and reply generation."""

    def __init__(
        self,
        resolver: Optional[EnsembleResolver] = None,
        executor: Optional[ActionExecutor] = None,
        store: Optional[SessionStore] = None,
        config: Optional[ConversationConfig] = None,
        max_conversation_minutes: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.resolver = resolver
        self.classifier = IntentClassifier(resolver)
        self.executor = executor or ActionExecutor.with_demo_data()
        self.store = store or SessionStore()
        self.config = config or settings.conversation
        self.max_conversation_minutes = (
            settings.session.max_conversation_minutes
            if max_conversation_minutes is None else max_conversation_minutes
        )
        self.rng = rng

    @classmethod
    def from_settings(
        cls, client: Optional[httpx.AsyncClient] = None, **kwargs: Any
    ) -> "ConversationOrchestrator":
        """Build the orchestrator with every configured AI provider."""
        providers = build_providers(settings.providers, client)
        resolver = (
            EnsembleResolver(providers, timeout=settings.providers.ensemble_timeout_sec)
            if providers else None
        )
        return cls(resolver=resolver, **kwargs)

    async def start(self) -> None:
        await self.store.start()

    async def aclose(self) -> None:
        """Stop background cleanup and close provider HTTP clients."""
        await self.store.stop()
        if self.resolver is not None:
            await self.resolver.aclose()

    async def __aenter__(self) -> "ConversationOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Speech events
    # ------------------------------------------------------------------ #

    async def process(
        self,
        utterance: str,
        session_key: str,
        *,
        is_final: bool = True,
        is_interim: bool = False,
    ) -> VoiceResponse:
        """Handle one speech event for a session."""
        set_session_id(session_key)
        if not is_final and is_interim:
            return self._interim(utterance or "", session_key)
        if not is_final:
            return self._continuous(session_key)
        async with self.store.locked(session_key) as session:
            return await self._complete_utterance((utterance or "").strip(), session)

    def _interim(self, text: str, session_key: str) -> VoiceResponse:
        # No await on this path: the flag writes are atomic on the event loop.
        session = self.store.get_or_create(session_key)
        session.user_speaking = True
        session.last_speech_at = self.store.clock()
        if self.config.enable_thinking_sounds and len(text) > self.config.thinking_threshold_chars:
            return VoiceResponse(
                text="",
                should_speak=True,
                filler_word=pick(THINKING_SOUNDS, self.rng),
                is_thinking=True,
                confidence=0.5,
            )
        return _silent()

    def _continuous(self, session_key: str) -> VoiceResponse:
        session = self.store.get_or_create(session_key)
        silence_ms = (self.store.clock() - session.last_speech_at) * 1000
        if (
            self.config.enable_filler_words
            and silence_ms > self.config.silence_timeout_ms
            and not session.assistant_speaking
        ):
            return VoiceResponse(
                text="",
                should_speak=True,
                filler_word=filler_for_topic(session.topic, self.rng),
                confidence=0.3,
            )
        return _silent()

    async def _complete_utterance(self, text: str, session: Session) -> VoiceResponse:
        now = self.store.clock()
        session.user_speaking = False
        session.last_speech_at = now
        if not text:
            return VoiceResponse(text=NOT_HEARD_REPLY, confidence=0.5)

        session.add_turn(Speaker.USER, text, now)
        if session.elapsed_minutes(now) > self.max_conversation_minutes:
            logger.info(
                "Conversation passed %.0f minutes; trimming history", self.max_conversation_minutes
            )
            session.truncate_history()
            session.restart_clock(now)
            return self._respond(session, LONG_CONVERSATION_NOTICE, confidence=0.8)

        emotion: Optional[Emotion] = None
        try:
            if session.order_builder is not None:
                return await self._continue_order(text, session)
            intent = await self.classifier.classify(
                text, session.context_lines(self.config.context_window)
            )
            emotion = intent.emotion
            logger.info(
                "Intent %s (%.2f, %s)", intent.name.value, intent.confidence, intent.source
            )
            result = await self.executor.execute(intent, text, session)
            return await self._reply_to_intent(intent, text, result, session)
        except Exception:
            logger.exception("Failed to process utterance")
            reply = FRUSTRATED_ERROR_REPLY if emotion == Emotion.FRUSTRATED else ERROR_REPLY
            return self._respond(session, reply, confidence=0.5)

    async def _continue_order(self, text: str, session: Session) -> VoiceResponse:
        """Route an utterance straight into the active order build."""
        if is_cancellation(text):
            result = self.executor.cancel_order_build(session)
        else:
            result = await self.executor.advance_order(session, text)
        session.topic = "order_creation"
        session.awaiting_input = session.order_builder is not None
        return self._respond(session, result.message or "", action=result.action, data=result.data)

    async def _reply_to_intent(
        self, intent: Intent, text: str, result: ActionResult, session: Session
    ) -> VoiceResponse:
        action, data = result.action, result.data or None
        reply = result.message
        if not reply and self.config.use_generated_replies and self.resolver is not None:
            generated = await self.resolver.first_reply(
                text, intent.name.value, session.context_lines(self.config.context_window), data
            )
            if generated is not None:
                reply = generated.text
                if generated.suggested_action and action is None:
                    marker_result = await self._run_marker(generated.suggested_action, intent, text, session)
                    if marker_result is not None and marker_result.action:
                        action, data = marker_result.action, marker_result.data or None
        if not reply:
            reply = intent.reply or self.classifier.template_for(intent.name)
        reply = apply_emotion_prefix(reply, intent.emotion.value)

        session.topic = intent.topic
        session.awaiting_input = intent.requires_input or session.order_builder is not None
        record = action != "end_conversation"
        return self._respond(
            session, reply, action=action, data=data, confidence=intent.confidence, record=record
        )

    async def _run_marker(
        self, marker: str, intent: Intent, text: str, session: Session
    ) -> Optional[ActionResult]:
        try:
            return await self.executor.execute_marker(marker, intent, text, session)
        except ActionExecutionError as exc:
            logger.warning("Ignoring reply marker: %s", exc.message)
            return None

    def _respond(
        self,
        session: Session,
        text: str,
        action: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        confidence: float = 1.0,
        record: bool = True,
    ) -> VoiceResponse:
        if record and text:
            session.add_turn(Speaker.ASSISTANT, text, self.store.clock())
        session.pending_output = text or None
        return VoiceResponse(text=text, action=action, data=data, confidence=confidence)

    async def process_audio(self, audio: bytes, session_key: str) -> VoiceResponse:
        """Transcribe a final audio chunk with the provider chain, then process it."""
        set_session_id(session_key)
        transcription = None
        if self.resolver is not None:
            transcription = await self.resolver.first_transcription(audio)
        if transcription is None or not transcription.text.strip():
            return VoiceResponse(text=NOT_HEARD_REPLY, confidence=0.0)
        logger.info(
            "Transcribed by %s (%.2f): %s",
            transcription.provider_id, transcription.confidence, transcription.text,
        )
        response = await self.process(transcription.text, session_key)
        response.data = {**(response.data or {}), "transcript": transcription.text}
        return response

    # ------------------------------------------------------------------ #
    # Session control
    # ------------------------------------------------------------------ #

    async def interrupt(self, session_key: str) -> VoiceResponse:
        """User started talking over the assistant."""
        set_session_id(session_key)
        try:
            async with self.store.locked(session_key, create=False):
                self.store.interrupt(session_key)
        except SessionNotFoundError:
            logger.debug("Interrupt for unknown session ignored")
            return _silent()
        return VoiceResponse(text=pick(INTERRUPTION_RESPONSES, self.rng), confidence=0.7)

    async def end_session(self, session_key: str) -> VoiceResponse:
        """Explicit end signal: the session and its history are destroyed."""
        set_session_id(session_key)
        try:
            async with self.store.locked(session_key, create=False) as session:
                stats = session.stats(self.store.clock())
                if session.order_builder is not None:
                    self.executor.cancel_order_build(session)
                self.store.delete(session_key)
        except SessionNotFoundError:
            return VoiceResponse(
                text="", should_speak=False, data={"message": "No active conversation found"}
            )
        logger.info("Conversation ended after %d messages", stats["message_count"])
        return VoiceResponse(
            text="",
            should_speak=False,
            action="end_conversation",
            data={"message": "Conversation ended successfully", "stats": stats},
        )

    async def disconnect(self, session_key: str) -> None:
        """Transport closed; drop whatever state the session had."""
        await self.end_session(session_key)

    def voice_status(self, session_key: str, status: str) -> None:
        """Record what the audio channel is doing: speaking, listening or idle.

        Raises:
            ValueError: If ``status`` is not a known voice status.
        """
        if status not in VOICE_STATUSES:
            raise ValueError(f"Unknown voice status {status!r}; expected one of {VOICE_STATUSES}")
        session = self.store.get(session_key)
        if session is None:
            logger.debug("Voice status for unknown session %s ignored", session_key)
            return
        session.assistant_speaking = status == "speaking"
        session.user_speaking = status == "listening"
        if status != "speaking":
            session.pending_output = None

    def session_stats(self, session_key: str) -> Optional[dict[str, Any]]:
        session = self.store.get(session_key)
        return session.stats(self.store.clock()) if session else None
