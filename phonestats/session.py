"""
Diagnostics session - explicit owner of the analyzers and their channels.

One session per running service. It is created by whoever runs the
service (the Flask app factory, a replay script, a test) and passed to
the code that needs it.

    session = DiagnosticsSession()
    session.start()
    session.submit_frame(time.monotonic_ns())
    session.fps_stats()
    session.release()
"""

import logging
import threading
from typing import Dict, List, Optional

from phonestats.analytics.clock_drift import ClockDriftTracker, DriftPoint, DriftRate
from phonestats.analytics.frame_timing import FpsStats, FrameTimingAnalyzer
from phonestats.ingestion.channel import IngestionChannel
from phonestats.ingestion.messages import FrameEvent, LocationFix

logger = logging.getLogger(__name__)


class DiagnosticsSession:
    """
    Wires sensor channels to analyzers and exposes the query surface.

    Lifecycle: start() -> stop() -> start() ... -> release().
    stop() returns only after both channels have exited, so no sample
    is ingested after it.
    """

    def __init__(
        self,
        frame_analyzer: Optional[FrameTimingAnalyzer] = None,
        drift_tracker: Optional[ClockDriftTracker] = None,
        channel_capacity: Optional[int] = None,
    ):
        self.frame_analyzer = frame_analyzer or FrameTimingAnalyzer()
        self.drift_tracker = drift_tracker or ClockDriftTracker()

        self.frame_channel: IngestionChannel[FrameEvent] = IngestionChannel(
            'frames',
            lambda event: self.frame_analyzer.record(event.timestamp_ns),
            capacity=channel_capacity,
        )
        self.location_channel: IngestionChannel[LocationFix] = IngestionChannel(
            'location',
            lambda fix: self.drift_tracker.ingest(
                fix.gps_epoch_ms,
                fix.monotonic_receipt_ns,
                fix.system_epoch_ms,
            ),
            capacity=channel_capacity,
        )

        self._lifecycle_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.frame_analyzer.is_running or self.drift_tracker.is_running

    def start(self) -> None:
        with self._lifecycle_lock:
            self.frame_analyzer.start()
            self.drift_tracker.start()
            self.frame_channel.start()
            self.location_channel.start()
        logger.info('Diagnostics session started')

    def stop(self) -> None:
        """Stop ingestion, keeping accumulated data. Idempotent."""
        with self._lifecycle_lock:
            self.frame_channel.stop()
            self.location_channel.stop()
            self.frame_analyzer.stop()
            self.drift_tracker.stop()

    def release(self) -> None:
        """Stop and discard all data. A later start() begins from scratch."""
        self.stop()
        with self._lifecycle_lock:
            self.frame_analyzer.release()
            self.drift_tracker.release()
        logger.info('Diagnostics session released')

    def __enter__(self) -> 'DiagnosticsSession':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # -------------------------------------------------------------------------
    # Ingestion (called from sensor callback threads)
    # -------------------------------------------------------------------------

    def submit_frame(self, timestamp_ns: int) -> bool:
        return self.frame_channel.submit(FrameEvent(timestamp_ns))

    def submit_frame_event(self, event: FrameEvent) -> bool:
        return self.frame_channel.submit(event)

    def submit_fix(self, fix: LocationFix) -> bool:
        return self.location_channel.submit(fix)

    def drain(self) -> None:
        """Block until all queued messages have been applied."""
        self.frame_channel.drain()
        self.location_channel.drain()

    # -------------------------------------------------------------------------
    # Queries (called from the polling context)
    # -------------------------------------------------------------------------

    def fps_stats(self) -> Optional[FpsStats]:
        return self.frame_analyzer.stats()

    def drift_series(self, range_seconds: Optional[float] = None) -> List[DriftPoint]:
        return self.drift_tracker.drift_series(range_seconds)

    def current_drift(self) -> Optional[DriftPoint]:
        return self.drift_tracker.current_drift()

    def drift_rates(self) -> Dict[str, Optional[DriftRate]]:
        return self.drift_tracker.drift_rates()

    @property
    def stats(self) -> dict:
        """Session status for health endpoints."""
        return {
            'running': self.is_running,
            'frames': {
                'running': self.frame_analyzer.is_running,
                'frame_count': self.frame_analyzer.frame_count,
                'retained_samples': self.frame_analyzer.sample_count,
                'rejected': self.frame_analyzer.rejected_count,
                'channel': self.frame_channel.stats,
            },
            'location': {
                'running': self.drift_tracker.is_running,
                'has_fix': self.drift_tracker.has_fix,
                'retained_samples': self.drift_tracker.sample_count,
                'rejected': self.drift_tracker.rejected_count,
                'channel': self.location_channel.stats,
            },
        }
