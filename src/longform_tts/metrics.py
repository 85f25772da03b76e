"""Latency metrics collection for generation runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from longform_tts.logging import get_logger

logger = get_logger("metrics")


@dataclass
class GenerationMetrics:
    """Latency metrics for a single generation run."""

    epoch: int = 0
    segment_count: int = 0
    session_id: str = ""

    # Timestamps (monotonic, seconds)
    started_at: float = 0.0
    finished_at: float = 0.0

    # Per-segment synthesis latency, seconds, in segment order
    segment_latencies: list[float] = field(default_factory=list)
    outcome: str = ""

    @staticmethod
    def now() -> float:
        """Return monotonic timestamp for latency measurement."""
        return time.monotonic()

    def start(self) -> None:
        self.started_at = self.now()

    def record_segment(self, started_at: float) -> None:
        self.segment_latencies.append(self.now() - started_at)

    def finish(self, outcome: str) -> None:
        self.finished_at = self.now()
        self.outcome = outcome

    @property
    def total_ms(self) -> float:
        """Start to finish of the whole run in milliseconds."""
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at) * 1000
        return 0.0

    @property
    def first_segment_ms(self) -> float:
        if self.segment_latencies:
            return self.segment_latencies[0] * 1000
        return 0.0

    @property
    def mean_segment_ms(self) -> float:
        if self.segment_latencies:
            return sum(self.segment_latencies) / len(self.segment_latencies) * 1000
        return 0.0

    def summary(self) -> dict[str, Any]:
        return {
            "epoch": self.epoch,
            "outcome": self.outcome,
            "segment_count": self.segment_count,
            "segments_synthesized": len(self.segment_latencies),
            "first_segment_ms": round(self.first_segment_ms, 1),
            "mean_segment_ms": round(self.mean_segment_ms, 1),
            "total_ms": round(self.total_ms, 1),
        }

    def emit(self) -> None:
        """Log the generation metrics summary."""
        summary = self.summary()
        logger.info(
            "Generation metrics: %s in %.1fms",
            summary["outcome"],
            summary["total_ms"],
            extra={
                "session_id": self.session_id,
                "epoch": self.epoch,
                "event": "metrics",
                "metrics": summary,
            },
        )
