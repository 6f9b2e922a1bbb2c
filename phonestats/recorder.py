"""
Snapshot recorder - polls a diagnostics session and stores the results.

Recorder cycle (every interval_seconds, ~1 Hz):
1. Query: FpsStats, latest drift point and drift rates
2. Store: one FpsSnapshot row and one DriftSnapshot row
3. Cleanup: every N cycles, delete rows past the retention age

Queries go through the session's read-only API, so the recorder never
contends with ingestion beyond the series snapshot copies.
"""

import logging
import threading
import time
from typing import Optional, Tuple

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from phonestats.config import config
from phonestats.models.base import SessionLocal, get_session
from phonestats.models.snapshot import DriftSnapshot, FpsSnapshot, get_retention_cutoff
from phonestats.session import DiagnosticsSession

logger = logging.getLogger(__name__)


def build_fps_snapshot(session: DiagnosticsSession) -> Optional[FpsSnapshot]:
    """Convert the current FpsStats into a row, or None if not ready."""
    stats = session.fps_stats()
    if stats is None:
        return None

    row = FpsSnapshot(frame_count=stats.frame_count)
    windows = {
        '10s': stats.ten_sec,
        '1m': stats.one_min,
        '5m': stats.five_min,
        '20m': stats.twenty_min,
    }
    for suffix, window in windows.items():
        if window is None:
            continue
        setattr(row, f'fps_{suffix}_min', window.min_fps)
        setattr(row, f'fps_{suffix}_mean', window.mean_fps)
        setattr(row, f'fps_{suffix}_max', window.max_fps)
    return row


def build_drift_snapshot(session: DiagnosticsSession) -> Optional[DriftSnapshot]:
    """Convert the current drift state into a row, or None if no data yet."""
    current = session.current_drift()
    if current is None:
        return None

    rates = session.drift_rates()

    def _rate(name: str) -> Optional[float]:
        rate = rates.get(name)
        return rate.drift_ms_per_minute if rate else None

    return DriftSnapshot(
        has_fix=session.drift_tracker.has_fix,
        elapsed_seconds=current.elapsed_seconds,
        drift_ms=current.drift_ms,
        rate_1m=_rate('one_min'),
        rate_5m=_rate('five_min'),
        rate_20m=_rate('twenty_min'),
        rate_total=_rate('total'),
    )


class SnapshotRecorder:
    """
    Background poller that persists session statistics.

    Can run as a background thread or be driven one cycle at a time
    with record_once().
    """

    def __init__(
        self,
        session: DiagnosticsSession,
        session_factory: Optional[sessionmaker] = None,
        interval_seconds: Optional[float] = None,
        retention_hours: Optional[int] = None,
    ):
        self.session = session
        self.session_factory = session_factory or SessionLocal
        self.interval_seconds = interval_seconds or config.recorder.interval_seconds
        self.retention_hours = retention_hours or config.recorder.retention_hours

        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._cycle_count = 0
        self._rows_written = 0
        self._error_count = 0
        self._last_record_time: float = 0

    def record_once(self) -> int:
        """
        Execute one recorder cycle.

        Returns count of rows written, or -1 on error.
        """
        try:
            rows = [
                row for row in (
                    build_fps_snapshot(self.session),
                    build_drift_snapshot(self.session),
                )
                if row is not None
            ]

            with get_session(self.session_factory) as db:
                db.add_all(rows)

                self._cycle_count += 1
                if self._cycle_count % config.recorder.cleanup_every_cycles == 0:
                    self.cleanup(db)

            self._rows_written += len(rows)
            self._last_record_time = time.time()
            return len(rows)

        except Exception as e:
            self._error_count += 1
            logger.error(f'Snapshot recording error: {e}')
            return -1

    def cleanup(self, db) -> Tuple[int, int]:
        """
        Remove snapshots older than the retention period.

        Returns (fps_deleted, drift_deleted).
        """
        cutoff = get_retention_cutoff(self.retention_hours)
        fps_deleted = db.execute(
            delete(FpsSnapshot).where(FpsSnapshot.recorded_at < cutoff)
        ).rowcount
        drift_deleted = db.execute(
            delete(DriftSnapshot).where(DriftSnapshot.recorded_at < cutoff)
        ).rowcount

        if fps_deleted or drift_deleted:
            logger.info(
                f'Cleanup: removed {fps_deleted} fps snapshots, '
                f'{drift_deleted} drift snapshots'
            )
        return fps_deleted, drift_deleted

    def run_continuous(self) -> None:
        """
        Run the recorder loop.

        This method blocks - use start_background() for non-blocking.
        """
        self._running = True
        logger.info(f'Starting snapshot recorder (interval={self.interval_seconds}s)')

        while not self._stop_event.is_set():
            self.record_once()
            self._stop_event.wait(self.interval_seconds)

        self._running = False
        logger.info('Snapshot recorder stopped')

    def start_background(self) -> None:
        """Start the recorder in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Recorder already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            name='snapshot-recorder',
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=config.ingestion.join_timeout_seconds)
            self._thread = None

    @property
    def stats(self) -> dict:
        return {
            'running': self._running,
            'cycle_count': self._cycle_count,
            'rows_written': self._rows_written,
            'error_count': self._error_count,
            'last_record_time': self._last_record_time,
            'interval_seconds': self.interval_seconds,
            'retention_hours': self.retention_hours,
        }
