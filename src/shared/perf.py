"""
Lightweight performance instrumentation helpers.

These utilities keep runtime profiling concerns decoupled from the business
logic so the pipeline can report per-action timings without touching the
action implementations.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass(frozen=True)
class StageTiming:
    """Immutable record describing one timed pipeline stage."""

    stage: str
    duration_ms: float
    rows_in: int
    rows_out: int


class PerfMonitor:
    """
    Context-style helper for timing multi-stage work.
    """

    def __init__(self, label: str | None = None) -> None:
        self.label = label or ""
        self._start = time.perf_counter()
        self._timings: dict[str, float] = {}

    @contextmanager
    def track(self, stage: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self._timings[stage] = (time.perf_counter() - start) * 1000

    def duration(self, stage: str) -> float:
        """Duration of a recorded stage in milliseconds (0.0 if unknown)."""
        return self._timings.get(stage, 0.0)

    def stop(self) -> tuple[dict[str, float], float]:
        """
        Finish timing and return (stage_timings, total_ms).
        """
        total_ms = (time.perf_counter() - self._start) * 1000
        return self._timings.copy(), total_ms

    def log_summary(self, logger: logging.Logger) -> None:
        """Log every recorded stage at DEBUG level."""
        timings, total_ms = self.stop()
        for stage, duration_ms in timings.items():
            logger.debug("[%s] %s: %.2fms", self.label, stage, duration_ms)
        logger.debug("[%s] total: %.2fms", self.label, total_ms)
