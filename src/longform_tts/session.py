"""Per-client Session object with orchestrator, task registry, and cleanup."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from longform_tts.logging import get_logger
from longform_tts.pipeline.instructions import VoiceParams
from longform_tts.pipeline.orchestrator import GenerationOrchestrator, GenerationPlan
from longform_tts.playback import PlaybackClock
from longform_tts.voices import VoiceLibrary

logger = get_logger("session")

GENERATION_TASK = "generation"


class SessionState(Enum):
    ACTIVE = auto()
    CLOSING = auto()
    CLOSED = auto()


@dataclass
class Session:
    """Represents one client's generation workspace.

    Owns the orchestrator, the client's custom voices, the playback
    clock and every background task.  Guarantees deterministic cleanup.
    """

    client_id: str
    orchestrator: GenerationOrchestrator
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: SessionState = SessionState.ACTIVE
    voices: VoiceLibrary = field(default_factory=VoiceLibrary)
    playback: PlaybackClock = field(default_factory=PlaybackClock)

    # Task registry: all long-running tasks registered here for cleanup
    _tasks: dict[str, asyncio.Task[Any]] = field(default_factory=dict)

    # ── Generation ────────────────────────────────────────

    def start_generation(self, text: str, params: VoiceParams) -> GenerationPlan:
        """Begin a generation and run it as a background task.

        Validation errors surface here, before any task is created.
        """
        plan = self.orchestrator.begin(text, params)
        task = asyncio.create_task(self._run(plan), name=f"{self.session_id}-gen-{plan.epoch}")
        self.register_task(f"{GENERATION_TASK}-{plan.epoch}", task)
        return plan

    async def _run(self, plan: GenerationPlan) -> None:
        try:
            await self.orchestrator.run(plan)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Outcome already lives in the orchestrator status
            logger.debug(
                "Generation task ended with %s",
                exc,
                extra={"session_id": self.session_id, "epoch": plan.epoch},
            )
        finally:
            self._tasks.pop(f"{GENERATION_TASK}-{plan.epoch}", None)

    @property
    def generation_tasks(self) -> list[asyncio.Task[Any]]:
        return [t for name, t in self._tasks.items() if name.startswith(GENERATION_TASK)]

    # ── Task registry ─────────────────────────────────────

    def register_task(self, name: str, task: asyncio.Task[Any]) -> None:
        self._tasks[name] = task
        logger.debug(
            "Task registered: %s", name,
            extra={"session_id": self.session_id},
        )

    # ── Cleanup ───────────────────────────────────────────

    async def close(self) -> None:
        """Deterministic cleanup: invalidate generation, cancel and await tasks."""
        if self.state == SessionState.CLOSED:
            return
        self.state = SessionState.CLOSING
        logger.info(
            "Session closing",
            extra={"session_id": self.session_id, "event": "session_close"},
        )

        self.orchestrator.cancel()
        self.playback.stop()

        tasks = dict(self._tasks)
        for task in tasks.values():
            if not task.done():
                task.cancel()

        if tasks:
            results = await asyncio.gather(*tasks.values(), return_exceptions=True)
            for name, result in zip(tasks.keys(), results):
                if isinstance(result, Exception) and not isinstance(
                    result, asyncio.CancelledError
                ):
                    logger.warning(
                        "Task %s raised during cleanup: %s", name, result,
                        extra={"session_id": self.session_id},
                    )
        self._tasks.clear()

        self.state = SessionState.CLOSED
        logger.info(
            "Session closed",
            extra={"session_id": self.session_id, "event": "session_closed"},
        )
