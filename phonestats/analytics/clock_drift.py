"""
Clock drift tracking against GNSS time.

Each GNSS fix carries a satellite-derived wall-clock time. Comparing it
with the local system clock at the moment the fix was received gives the
clock's offset from true time; tracking that offset over monotonic
elapsed time gives the drift rate.

Drift values are stored relative to a reference: the first sample after
(re)start is stored as 0.0 and later samples have the reference drift
subtracted. The reference's stored drift is always 0.0, so later samples
end up equal to their raw gps - system difference.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from phonestats.config import config
from phonestats.errors import OutOfOrderSample
from phonestats.models.series import BoundedTimestampedSeries

logger = logging.getLogger(__name__)

RATE_WINDOW_NAMES = ('one_min', 'five_min', 'twenty_min', 'total')


@dataclass(frozen=True)
class DriftPoint:
    """Drift relative to the reference sample at a point in elapsed time."""
    elapsed_seconds: float
    drift_ms: float

    def to_dict(self) -> dict:
        return {
            'elapsed_seconds': self.elapsed_seconds,
            'drift_ms': self.drift_ms,
        }


@dataclass(frozen=True)
class DriftRate:
    """
    Drift rate over a window.

    window_seconds is the span actually covered by the samples used,
    which can be shorter than the window that was requested.
    """
    drift_ms_per_minute: float
    window_seconds: float

    def to_dict(self) -> dict:
        return {
            'drift_ms_per_minute': self.drift_ms_per_minute,
            'window_seconds': self.window_seconds,
        }


class ClockDriftTracker:
    """
    Tracks system clock drift relative to GNSS time.

    ingest() is called from a single ingestion thread; queries can run
    concurrently from any thread.
    """

    def __init__(
        self,
        retention_seconds: Optional[float] = None,
        min_span_seconds: Optional[float] = None,
        rate_windows_seconds: Optional[Sequence[float]] = None,
        clock: Callable[[], int] = time.monotonic_ns,
    ):
        self.min_span_seconds = (
            config.clock_drift.min_span_seconds if min_span_seconds is None else min_span_seconds
        )
        self.rate_windows_seconds = tuple(
            rate_windows_seconds or config.clock_drift.rate_windows_seconds
        )
        if len(self.rate_windows_seconds) > len(RATE_WINDOW_NAMES):
            raise ValueError(
                f'At most {len(RATE_WINDOW_NAMES)} rate windows are reported, '
                f'got {len(self.rate_windows_seconds)}'
            )
        self._clock = clock

        self._series: BoundedTimestampedSeries[float] = BoundedTimestampedSeries(
            retention_seconds or config.clock_drift.retention_seconds
        )
        self._running = False
        self._has_fix = False
        self._start_ns: Optional[int] = None
        self._reference_drift_ms = 0.0
        self._rejected = 0

        self._state_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_fix(self) -> bool:
        return self._has_fix

    @property
    def rejected_count(self) -> int:
        return self._rejected

    @property
    def sample_count(self) -> int:
        return len(self._series)

    @property
    def start_monotonic_ns(self) -> Optional[int]:
        return self._start_ns

    def start(self, start_monotonic_ns: Optional[int] = None) -> None:
        """
        Start accepting fixes.

        The start reference is only taken once per release cycle, so
        elapsed time keeps increasing across stop/start.
        """
        with self._state_lock:
            if self._running:
                return
            if self._start_ns is None:
                self._start_ns = self._clock() if start_monotonic_ns is None else start_monotonic_ns
            self._running = True
        logger.info('Clock drift tracker started')

    def stop(self) -> None:
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._has_fix = False
        logger.info('Clock drift tracker stopped')

    def release(self) -> None:
        """Stop, discard all samples and forget the start reference."""
        self.stop()
        with self._state_lock:
            self._series.clear()
            self._start_ns = None
            self._reference_drift_ms = 0.0
            self._rejected = 0
        logger.info('Clock drift tracker released')

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def ingest(
        self,
        gps_epoch_ms: Optional[int],
        monotonic_receipt_ns: int,
        system_epoch_ms_at_receipt: int,
    ) -> bool:
        """
        Ingest one GNSS fix.

        Fixes without GNSS time (gps_epoch_ms of 0 or None) are dropped.
        Returns True if a drift sample was stored.
        """
        with self._state_lock:
            if not self._running:
                return False
            if not gps_epoch_ms:
                return False

            self._has_fix = True
            elapsed = (monotonic_receipt_ns - self._start_ns) / 1e9

            if len(self._series) == 0:
                drift = 0.0
                self._reference_drift_ms = drift
            else:
                raw_drift = float(gps_epoch_ms) - float(system_epoch_ms_at_receipt)
                drift = raw_drift - self._reference_drift_ms

            try:
                self._series.append(elapsed, drift)
            except OutOfOrderSample as e:
                self._rejected += 1
                logger.debug(f'Rejecting out-of-order fix: {e}')
                return False

            return True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def drift_series(self, range_seconds: Optional[float] = None) -> List[DriftPoint]:
        """
        Snapshot of drift points, oldest first.

        With range_seconds, only points within that span of the latest
        point are returned.
        """
        samples = self._series.snapshot()
        if range_seconds is not None and samples:
            cutoff = samples[-1].timestamp - range_seconds
            samples = [s for s in samples if s.timestamp >= cutoff]
        return [DriftPoint(s.timestamp, s.value) for s in samples]

    def current_drift(self) -> Optional[DriftPoint]:
        latest = self._series.latest()
        if latest is None:
            return None
        return DriftPoint(latest.timestamp, latest.value)

    def drift_rate(self, window_seconds: float) -> Optional[DriftRate]:
        """
        Drift rate in ms per minute over a trailing window.

        Uses the first sample inside the window and the latest sample.
        Pass math.inf to measure from the earliest retained sample.
        Returns None when the window has fewer than two distinct samples
        or they are less than min_span_seconds apart.
        """
        samples = self._series.snapshot()
        if len(samples) < 2:
            return None

        latest = samples[-1]
        cutoff = latest.timestamp - window_seconds

        start_index = next(
            (i for i, s in enumerate(samples) if s.timestamp >= cutoff),
            None,
        )
        if start_index is None or start_index == len(samples) - 1:
            return None

        start = samples[start_index]
        span = latest.timestamp - start.timestamp
        if span < self.min_span_seconds:
            return None

        rate = (latest.value - start.value) / span * 60.0
        return DriftRate(drift_ms_per_minute=rate, window_seconds=span)

    def drift_rates(self) -> Dict[str, Optional[DriftRate]]:
        """Drift rates for the reported windows (1min, 5min, 20min, total)."""
        return {
            name: self.drift_rate(window)
            for name, window in zip(RATE_WINDOW_NAMES, self.rate_windows_seconds)
        }
