"""
Per-connection conversation state with per-key serialized access.

Each session key owns one Session and one asyncio.Lock. Everything that
mutates a session on an await path (final utterances, interrupts, end
signals) runs under that key's lock; different keys never contend.
Turn history is bounded: once it grows past ``max_turns`` it is cut back
to the most recent ``retain_turns`` entries.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Optional

from glassvoice.config import settings
from glassvoice.conversation.order_builder import OrderBuilder
from glassvoice.exceptions import SessionNotFoundError
from glassvoice.schemas.conversation_schema import Speaker, Turn

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Mutable conversational state for one connected user."""
    key: str
    max_turns: int = 20
    retain_turns: int = 10
    turns: list[Turn] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    last_speech_at: float = field(default_factory=time.time)
    user_speaking: bool = False
    assistant_speaking: bool = False
    pending_output: Optional[str] = None
    interruption_count: int = 0
    topic: Optional[str] = None
    awaiting_input: bool = False
    order_builder: Optional[OrderBuilder] = None

    def add_turn(self, speaker: Speaker, text: str, now: Optional[float] = None) -> Turn:
        """Append a turn, trimming to the retained tail once the cap is exceeded."""
        now = time.time() if now is None else now
        turn = Turn(speaker=speaker, text=text, timestamp=now)
        self.turns.append(turn)
        self.last_activity = now
        if len(self.turns) > self.max_turns:
            dropped = len(self.turns) - self.retain_turns
            self.turns = self.turns[-self.retain_turns:]
            logger.debug("Session %s history trimmed by %d turns", self.key, dropped)
        return turn

    def truncate_history(self) -> None:
        self.turns = self.turns[-self.retain_turns:]

    def clear_history(self) -> None:
        self.turns.clear()

    def context_lines(self, limit: int = 8) -> list[str]:
        """Recent turns rendered as "User: ..." / "Assistant: ..." lines."""
        labels = {Speaker.USER: "User", Speaker.ASSISTANT: "Assistant", Speaker.SYSTEM: "System"}
        return [f"{labels[t.speaker]}: {t.text}" for t in self.turns[-limit:]]

    def elapsed_minutes(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return (now - self.started_at) / 60

    def restart_clock(self, now: Optional[float] = None) -> None:
        self.started_at = time.time() if now is None else now

    def stats(self, now: Optional[float] = None) -> dict[str, Any]:
        now = time.time() if now is None else now
        return {
            "session_key": self.key,
            "duration_sec": round(now - self.started_at, 1),
            "message_count": len(self.turns),
            "interruption_count": self.interruption_count,
            "current_topic": self.topic,
            "awaiting_input": self.awaiting_input,
            "order_in_progress": self.order_builder.step.value if self.order_builder else None,
            "is_active": now - self.last_speech_at < 30,
        }


class SessionStore:
    """Owns every Session, keyed by opaque connection key."""

    def __init__(
        self,
        max_turns: Optional[int] = None,
        retain_turns: Optional[int] = None,
        idle_ttl_minutes: Optional[float] = None,
        cleanup_interval_sec: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        cfg = settings.session
        self.max_turns = cfg.max_turns if max_turns is None else max_turns
        self.retain_turns = cfg.retain_turns if retain_turns is None else retain_turns
        if not 0 < self.retain_turns < self.max_turns:
            raise ValueError(
                f"retain_turns must be between 1 and max_turns - 1, "
                f"got {self.retain_turns} with max_turns={self.max_turns}"
            )
        self.idle_ttl_sec = 60 * (cfg.idle_ttl_minutes if idle_ttl_minutes is None else idle_ttl_minutes)
        self.cleanup_interval_sec = (
            cfg.cleanup_interval_sec if cleanup_interval_sec is None else cleanup_interval_sec
        )
        self.clock = clock
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: str) -> bool:
        return key in self._sessions

    def get_or_create(self, key: str) -> Session:
        session = self._sessions.get(key)
        if session is None:
            now = self.clock()
            session = Session(
                key=key,
                max_turns=self.max_turns,
                retain_turns=self.retain_turns,
                started_at=now,
                last_activity=now,
                last_speech_at=now,
            )
            self._sessions[key] = session
            logger.info("Created session: %s", key)
        return session

    def get(self, key: str) -> Optional[Session]:
        return self._sessions.get(key)

    def require(self, key: str) -> Session:
        """Return the session or raise SessionNotFoundError."""
        session = self._sessions.get(key)
        if session is None:
            raise SessionNotFoundError(key)
        return session

    def delete(self, key: str) -> bool:
        session = self._sessions.pop(key, None)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
        if session is not None:
            logger.info("Removed session: %s", key)
        return session is not None

    def list_keys(self) -> list[str]:
        return list(self._sessions.keys())

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def locked(self, key: str, create: bool = True) -> AsyncIterator[Session]:
        """Hold the key's lock and yield its session.

        Raises:
            SessionNotFoundError: If ``create`` is false and the key is unknown.
        """
        async with self.lock_for(key):
            session = self.get_or_create(key) if create else self.require(key)
            yield session

    def interrupt(self, key: str) -> Session:
        """User barged in: silence the assistant and wait for their input.

        Raises:
            SessionNotFoundError: If the key is unknown.
        """
        session = self.require(key)
        session.assistant_speaking = False
        session.pending_output = None
        session.interruption_count += 1
        session.awaiting_input = True
        session.last_activity = self.clock()
        logger.info("Session %s interrupted (%d so far)", key, session.interruption_count)
        return session

    def evict_idle(self, now: Optional[float] = None) -> list[str]:
        """Drop sessions idle longer than the TTL. Sessions in use are skipped."""
        now = self.clock() if now is None else now
        expired = [
            key for key, session in self._sessions.items()
            if now - session.last_activity > self.idle_ttl_sec
            and not (key in self._locks and self._locks[key].locked())
        ]
        for key in expired:
            self.delete(key)
        for key in [k for k, lock in self._locks.items() if k not in self._sessions and not lock.locked()]:
            del self._locks[key]
        if expired:
            logger.info("Evicted %d idle sessions", len(expired))
        return expired

    async def start(self) -> None:
        """Start the periodic idle-session cleanup."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Session store cleanup started (every %.0fs)", self.cleanup_interval_sec)

    async def stop(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Session store cleanup stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval_sec)
            try:
                self.evict_idle()
            except Exception:
                logger.exception("Error during idle session cleanup")
