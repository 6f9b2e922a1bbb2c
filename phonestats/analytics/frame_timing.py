"""
Frame timing analysis using NumPy.

Turns a stream of camera frame-capture timestamps into rolling frame-rate
statistics over several trailing windows (10s, 1min, 5min, 20min).

Rates are computed per frame pair (instantaneous rate = 1e9 / interval_ns)
rather than frames / window duration. The min and max of those rates expose
frame-pacing outliers that an average over the window would hide.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from phonestats.config import config
from phonestats.errors import OutOfOrderSample
from phonestats.models.series import BoundedTimestampedSeries

logger = logging.getLogger(__name__)

NS_PER_SECOND = 1_000_000_000

# FpsStats fields, shortest window first
FPS_WINDOW_NAMES = ('ten_sec', 'one_min', 'five_min', 'twenty_min')


@dataclass(frozen=True)
class WindowStats:
    """
    Instantaneous frame-rate statistics for one trailing window.

    Interval helpers invert the rates: the fastest rate is the shortest
    frame interval and vice versa.
    """
    min_fps: float
    max_fps: float
    mean_fps: float
    sample_count: int

    @property
    def min_interval_ns(self) -> float:
        return NS_PER_SECOND / self.max_fps

    @property
    def mean_interval_ns(self) -> float:
        return NS_PER_SECOND / self.mean_fps

    @property
    def max_interval_ns(self) -> float:
        return NS_PER_SECOND / self.min_fps

    def to_dict(self) -> dict:
        return {
            'min_fps': self.min_fps,
            'max_fps': self.max_fps,
            'mean_fps': self.mean_fps,
            'sample_count': self.sample_count,
            'interval_ns': {
                'min': self.min_interval_ns,
                'mean': self.mean_interval_ns,
                'max': self.max_interval_ns,
            },
        }


@dataclass(frozen=True)
class FpsStats:
    """Cumulative frame count plus per-window statistics."""
    frame_count: int
    ten_sec: Optional[WindowStats]
    one_min: Optional[WindowStats]
    five_min: Optional[WindowStats]
    twenty_min: Optional[WindowStats]

    def to_dict(self) -> dict:
        def _window(stats: Optional[WindowStats]) -> Optional[dict]:
            return stats.to_dict() if stats else None

        return {
            'frame_count': self.frame_count,
            'windows': {
                '10s': _window(self.ten_sec),
                '1m': _window(self.one_min),
                '5m': _window(self.five_min),
                '20m': _window(self.twenty_min),
            },
        }


def compute_window_stats(timestamps_ns: np.ndarray) -> Optional[WindowStats]:
    """
    Reduce a set of frame timestamps to min/max/mean instantaneous rate.

    Zero-length intervals (duplicate timestamps) have no defined rate
    and are excluded. Returns None when no valid interval remains.
    """
    if len(timestamps_ns) < 2:
        return None

    deltas = np.diff(np.sort(timestamps_ns))
    deltas = deltas[deltas > 0]
    if len(deltas) == 0:
        return None

    rates = NS_PER_SECOND / deltas.astype(np.float64)
    return WindowStats(
        min_fps=float(np.min(rates)),
        max_fps=float(np.max(rates)),
        mean_fps=float(np.mean(rates)),
        sample_count=len(rates),
    )


class FrameTimingAnalyzer:
    """
    Rolling frame-rate analyzer for one camera stream.

    record() is called from a single ingestion thread; stats() can be
    called from any thread at any time. Stats are recomputed from a
    series snapshot on every call.
    """

    def __init__(
        self,
        retention_seconds: Optional[float] = None,
        windows_seconds: Optional[Sequence[float]] = None,
    ):
        retention_seconds = retention_seconds or config.frame_timing.retention_seconds
        self.windows_seconds = tuple(windows_seconds or config.frame_timing.windows_seconds)
        if len(self.windows_seconds) > len(FPS_WINDOW_NAMES):
            raise ValueError(
                f'At most {len(FPS_WINDOW_NAMES)} windows are reported, '
                f'got {len(self.windows_seconds)}'
            )

        self._series: BoundedTimestampedSeries[None] = BoundedTimestampedSeries(
            int(retention_seconds * NS_PER_SECOND)
        )
        self._frame_count = 0
        self._rejected = 0
        self._running = False

        # Held by record() and the lifecycle methods, never by readers
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def rejected_count(self) -> int:
        return self._rejected

    @property
    def sample_count(self) -> int:
        return len(self._series)

    def start(self) -> None:
        with self._state_lock:
            if self._running:
                return
            self._running = True
        logger.info('Frame timing analyzer started')

    def stop(self) -> None:
        """Stop accepting frames. Accumulated data is kept."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
        logger.info(f'Frame timing analyzer stopped after {self._frame_count} frames')

    def release(self) -> None:
        """Stop and discard all accumulated data."""
        self.stop()
        with self._state_lock:
            self._series.clear()
            self._frame_count = 0
            self._rejected = 0
        logger.info('Frame timing analyzer released')

    def record(self, timestamp_ns: Optional[int]) -> bool:
        """
        Record one frame-capture timestamp (monotonic nanoseconds).

        Returns False if the frame was dropped: analyzer not running,
        missing/zero timestamp, or timestamp older than the latest frame.
        """
        with self._state_lock:
            if not self._running:
                return False

            if not timestamp_ns or timestamp_ns < 0:
                logger.debug(f'Dropping frame with invalid timestamp {timestamp_ns!r}')
                return False

            try:
                self._series.append(int(timestamp_ns), None)
            except OutOfOrderSample as e:
                self._rejected += 1
                logger.debug(f'Rejecting out-of-order frame: {e}')
                return False

            self._frame_count += 1
            return True

    def _timestamps(self) -> np.ndarray:
        return np.array([s.timestamp for s in self._series.snapshot()], dtype=np.int64)

    def window_stats(self, window_seconds: float) -> Optional[WindowStats]:
        """Statistics for a single trailing window of arbitrary length."""
        timestamps = self._timestamps()
        if len(timestamps) < 2:
            return None
        return self._stats_for_window(timestamps, window_seconds)

    def _stats_for_window(
        self,
        timestamps: np.ndarray,
        window_seconds: float,
    ) -> Optional[WindowStats]:
        if math.isnan(window_seconds) or window_seconds <= 0:
            return None
        # Windows at or past the retention horizon cover every retained frame
        if window_seconds * NS_PER_SECOND >= self._series.retention:
            return compute_window_stats(timestamps)

        latest = timestamps[-1]
        window_ns = int(window_seconds * NS_PER_SECOND)
        return compute_window_stats(timestamps[timestamps >= latest - window_ns])

    def stats(self) -> Optional[FpsStats]:
        """
        Compute statistics for all configured windows.

        Returns None until at least two frames have been recorded.
        All windows are computed from the same snapshot, so a shorter
        window always covers a subset of a longer window's frames.
        """
        frame_count = self._frame_count
        timestamps = self._timestamps()
        if len(timestamps) < 2:
            return None

        results = [
            self._stats_for_window(timestamps, window)
            for window in self.windows_seconds
        ]
        # Pad so custom window tuples shorter than four still map cleanly
        results += [None] * (len(FPS_WINDOW_NAMES) - len(results))

        return FpsStats(
            frame_count=frame_count,
            ten_sec=results[0],
            one_min=results[1],
            five_min=results[2],
            twenty_min=results[3],
        )
