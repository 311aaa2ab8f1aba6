"""Lightweight runtime profiling helpers."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass(slots=True)
class PerfTracker:
    """Accumulates named wall-clock durations and call counts when enabled."""

    enabled: bool = False
    _durations: dict[str, float] = field(default_factory=dict)
    _counts: dict[str, int] = field(default_factory=dict)

    @contextmanager
    def time(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            self._durations[name] = self._durations.get(name, 0.0) + elapsed
            self._counts[name] = self._counts.get(name, 0) + 1

    def reset(self) -> None:
        self._durations.clear()
        self._counts.clear()

    def as_dict(self) -> dict[str, float]:
        """Total seconds and mean milliseconds per call for every timed section."""

        summary: dict[str, float] = {}
        for name, total in sorted(self._durations.items()):
            summary[f"{name}_s"] = float(total)
            summary[f"{name}_mean_ms"] = 1000.0 * float(total) / max(self._counts.get(name, 1), 1)
        return summary
