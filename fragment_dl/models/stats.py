"""
Counters and a sliding-window speed estimate for one download session.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from statistics import mean

SPEED_SAMPLE_INTERVAL_S = 0.5
SPEED_WINDOW = 10


@dataclass
class SessionStats:
    """Fragment counters plus write throughput for a single session."""

    fragments_total: int = 0
    fragments_fetched: int = 0
    fragments_written: int = 0
    retries: int = 0
    bytes_written: int = 0

    # Throughput of ordered writes
    current_speed_bps: float = 0.0
    peak_speed_bps: float = 0.0
    _speed_samples: deque[float] = field(
        default_factory=lambda: deque(maxlen=SPEED_WINDOW), repr=False
    )
    _last_progress_time: float = field(default=0.0, repr=False)
    _last_progress_bytes: int = field(default=0, repr=False)
    _started_at: float = field(default=0.0, repr=False)
    _finished_at: float | None = field(default=None, repr=False)

    def __post_init__(self):
        self._started_at = self._last_progress_time = time.monotonic()

    @property
    def fragments_remaining(self) -> int:
        return self.fragments_total - self.fragments_written

    @property
    def duration_s(self) -> float:
        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self._started_at

    @property
    def average_speed_bps(self) -> float:
        duration = self.duration_s
        return self.bytes_written / duration if duration > 0 else 0.0

    def record_fetched(self) -> None:
        self.fragments_fetched += 1

    def record_retry(self) -> None:
        self.retries += 1

    def record_written(self, size: int) -> None:
        """Counts an ordered write and refreshes the speed estimate."""
        self.fragments_written += 1
        self.bytes_written += size
        self._update_speed()

    def finish(self) -> None:
        self._finished_at = time.monotonic()

    def _update_speed(self) -> None:
        now = time.monotonic()
        window = now - self._last_progress_time
        if window < SPEED_SAMPLE_INTERVAL_S:
            return

        delta = self.bytes_written - self._last_progress_bytes
        if delta > 0:
            self._speed_samples.append(delta / window)
            self.current_speed_bps = mean(self._speed_samples)
            self.peak_speed_bps = max(self.peak_speed_bps, self.current_speed_bps)
        self._last_progress_time = now
        self._last_progress_bytes = self.bytes_written
