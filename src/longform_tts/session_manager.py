"""Session manager: concurrent session tracking keyed by client id."""

from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from longform_tts.adapters.tts.base import SpeechSynthesizer
from longform_tts.config import Settings
from longform_tts.logging import get_logger
from longform_tts.pipeline.orchestrator import GenerationOrchestrator
from longform_tts.playback import PlaybackClock
from longform_tts.session import Session

logger = get_logger("session_manager")


class SessionCapacityError(RuntimeError):
    """Raised when a new session would exceed the concurrency cap."""


class SessionManager:
    """Manages concurrent generation sessions with a hard cap.

    Keyed by client id.  Sessions share the synthesizer but nothing
    else; no mutable generation state leaks between them.
    """

    def __init__(self, settings: Settings, synthesizer: SpeechSynthesizer) -> None:
        self._settings = settings
        self._synthesizer = synthesizer
        self._max = settings.max_concurrent_sessions
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    @property
    def synthesizer(self) -> SpeechSynthesizer:
        return self._synthesizer

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def _new_session(self, client_id: str) -> Session:
        session_id = uuid.uuid4().hex[:12]
        playback = PlaybackClock()
        orchestrator = GenerationOrchestrator.from_settings(
            self._settings,
            self._synthesizer,
            player=playback,
            session_id=session_id,
        )
        return Session(
            client_id=client_id,
            orchestrator=orchestrator,
            session_id=session_id,
            playback=playback,
        )

    async def get_or_create(self, client_id: str) -> Session:
        """Return the client's session, creating it if needed.  Raises if at capacity."""
        async with self._lock:
            session = self._sessions.get(client_id)
            if session is not None:
                return session

            if len(self._sessions) >= self._max:
                raise SessionCapacityError(
                    f"Max concurrent sessions ({self._max}) reached. "
                    "Close an existing session first."
                )

            session = self._new_session(client_id)
            self._sessions[client_id] = session
            logger.info(
                "Session created: %s (%s)",
                session.session_id,
                client_id,
                extra={"session_id": session.session_id, "event": "session_created"},
            )
            return session

    async def get(self, client_id: str) -> Optional[Session]:
        """Return the session for the given client, or None."""
        return self._sessions.get(client_id)

    async def remove(self, client_id: str) -> bool:
        """Close and deregister the session.  Returns False if none existed."""
        async with self._lock:
            session = self._sessions.pop(client_id, None)
        if session is None:
            return False
        await session.close()
        logger.info(
            "Session removed: %s (%s)",
            session.session_id,
            client_id,
            extra={"session_id": session.session_id, "event": "session_removed"},
        )
        return True

    async def close_all(self) -> None:
        """Shut down all sessions (for graceful process exit)."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for s in sessions:
            await s.close()
        logger.info("All sessions closed", extra={"event": "all_sessions_closed"})
