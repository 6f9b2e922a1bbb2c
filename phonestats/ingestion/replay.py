"""
Replay sources - feed recorded telemetry logs into a session.

Useful for analyzing a capture taken elsewhere (e.g. exported from a
phone) with the same statistics the live service reports.

Frame log CSV:   timestamp_ns
Fix log CSV:     gps_epoch_ms,monotonic_receipt_ns,system_epoch_ms
"""

import csv
import logging
import time
from pathlib import Path
from typing import Callable, Iterator, Optional

from phonestats.ingestion.messages import FrameEvent, LocationFix

logger = logging.getLogger(__name__)


def read_frame_log(csv_path: Path) -> Iterator[FrameEvent]:
    """Yield frame events from a CSV log, skipping malformed rows."""
    with open(csv_path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                yield FrameEvent(int(row['timestamp_ns']))
            except (KeyError, TypeError, ValueError):
                logger.debug(f'{csv_path}:{line_no}: skipping malformed frame row')


def read_fix_log(csv_path: Path) -> Iterator[LocationFix]:
    """Yield location fixes from a CSV log, skipping malformed rows."""
    with open(csv_path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            fix = LocationFix.from_mapping(row)
            if fix is None:
                logger.debug(f'{csv_path}:{line_no}: skipping malformed fix row')
                continue
            yield fix


def replay(
    events,
    submit: Callable[[object], bool],
    timestamp_ns: Callable[[object], int],
    realtime: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Push events into a channel, optionally paced by their own timestamps.

    Returns the count of events the channel accepted.
    """
    accepted = 0
    previous: Optional[int] = None

    for event in events:
        if realtime:
            current = timestamp_ns(event)
            if previous is not None and current > previous:
                sleep((current - previous) / 1e9)
            previous = current

        if submit(event):
            accepted += 1

    return accepted


def replay_frames(csv_path: Path, session, realtime: bool = False) -> int:
    """Replay a frame log into a DiagnosticsSession's frame channel."""
    csv_path = Path(csv_path)
    if not csv_path.exists():
        logger.error(f'Frame log not found: {csv_path}')
        return 0

    logger.info(f'Replaying frames from {csv_path}')
    accepted = replay(
        read_frame_log(csv_path),
        session.submit_frame_event,
        lambda e: e.timestamp_ns,
        realtime=realtime,
    )
    logger.info(f'Replayed {accepted} frames')
    return accepted


def replay_fixes(csv_path: Path, session, realtime: bool = False) -> int:
    """Replay a fix log into a DiagnosticsSession's location channel."""
    csv_path = Path(csv_path)
    if not csv_path.exists():
        logger.error(f'Fix log not found: {csv_path}')
        return 0

    logger.info(f'Replaying fixes from {csv_path}')
    accepted = replay(
        read_fix_log(csv_path),
        session.submit_fix,
        lambda e: e.monotonic_receipt_ns,
        realtime=realtime,
    )
    logger.info(f'Replayed {accepted} fixes')
    return accepted
