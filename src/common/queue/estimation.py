# src/common/queue/estimation.py
"""Wait-time estimation.

``estimate_wait`` is the single source of truth: the absolute service time is
derived from its minutes, never computed on its own. Nothing here is cached;
callers recompute on every read.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional


class DurationTracker:
    """Rolling mean of the last ``window`` consultation durations of one doctor."""

    def __init__(self, window: int, min_samples: int, default_minutes: float):
        self.min_samples = min_samples
        self.default_minutes = default_minutes
        self._samples = deque(maxlen=max(window, 1))

    def __len__(self) -> int:
        return len(self._samples)

    def record(self, minutes: Optional[float]) -> None:
        if minutes is None or minutes < 0:
            return
        self._samples.append(minutes)

    def seed(self, durations: Iterable[Optional[float]]) -> None:
        for minutes in durations:
            self.record(minutes)

    def average(self) -> float:
        """Mean of the window, or the default until enough samples exist."""
        if len(self._samples) < self.min_samples:
            return float(self.default_minutes)
        return sum(self._samples) / len(self._samples)


@dataclass(frozen=True)
class WaitEstimate:
    queue_position: Optional[int]  # None = unranked
    patients_ahead: int
    estimated_wait_minutes: int
    estimated_service_time: Optional[datetime]

    @property
    def is_ranked(self) -> bool:
        return self.queue_position is not None


UNRANKED = WaitEstimate(queue_position=None, patients_ahead=0, estimated_wait_minutes=0, estimated_service_time=None)


def estimate_wait(position: Optional[int], average_minutes: float, now: datetime) -> WaitEstimate:
    """Build the estimate for a token at 1-based ``position``."""
    if position is None:
        return UNRANKED
    patients_ahead = position - 1
    wait_minutes = int(round(patients_ahead * average_minutes))
    return WaitEstimate(
        queue_position=position,
        patients_ahead=patients_ahead,
        estimated_wait_minutes=wait_minutes,
        estimated_service_time=now + timedelta(minutes=wait_minutes),
    )
