"""
Bounded timestamped series - the in-memory time-series store.

Both analyzers keep their raw telemetry here. The series is append-only
and time-ordered, and it trims itself on every append so memory stays
bounded by the retention horizon instead of by uptime.

Concurrency contract:
- One producer thread appends.
- Any number of reader threads take snapshots.
- Readers see either the state before or after any single append.
"""

import math
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Generic, List, Optional, TypeVar

from phonestats.errors import OutOfOrderSample, SeriesError

V = TypeVar('V')


@dataclass(frozen=True)
class Sample(Generic[V]):
    """A single timestamped observation."""
    timestamp: float
    value: V


class BoundedTimestampedSeries(Generic[V]):
    """
    Thread-safe, time-ordered sample store with retention-based eviction.

    Timestamps can be any monotonic unit (nanoseconds for frames, elapsed
    seconds for drift samples) as long as retention uses the same unit.

    Out-of-order appends are rejected with OutOfOrderSample and leave
    the series untouched, so window bounds computed from latest() are
    always the true maximum.
    """

    def __init__(self, retention: float):
        if not math.isfinite(retention) or retention <= 0:
            raise SeriesError(f'Retention must be positive and finite, got {retention}')
        self._retention = retention
        self._samples: Deque[Sample[V]] = deque()
        self._lock = threading.Lock()

    @property
    def retention(self) -> float:
        return self._retention

    def append(self, timestamp: float, value: V) -> int:
        """
        Append a sample to the tail and evict expired samples from the head.

        Returns the number of evicted samples.
        """
        with self._lock:
            if self._samples and timestamp < self._samples[-1].timestamp:
                raise OutOfOrderSample(timestamp, self._samples[-1].timestamp)

            self._samples.append(Sample(timestamp, value))

            cutoff = timestamp - self._retention
            evicted = 0
            while self._samples[0].timestamp < cutoff:
                self._samples.popleft()
                evicted += 1
            return evicted

    def snapshot(self) -> List[Sample[V]]:
        """Point-in-time copy of all retained samples, oldest first."""
        with self._lock:
            return list(self._samples)

    def window(self, start: float) -> List[Sample[V]]:
        """Snapshot of samples with timestamp >= start."""
        return [s for s in self.snapshot() if s.timestamp >= start]

    def latest(self) -> Optional[Sample[V]]:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def earliest(self) -> Optional[Sample[V]]:
        with self._lock:
            return self._samples[0] if self._samples else None

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def __repr__(self) -> str:
        return f'<BoundedTimestampedSeries n={len(self)} retention={self._retention}>'
