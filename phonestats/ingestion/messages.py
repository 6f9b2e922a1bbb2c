"""
Messages pushed by sensor sources into ingestion channels.

Frame sources deliver capture timestamps on the monotonic clock.
Location sources deliver GNSS fixes stamped with the monotonic and
system clocks at the moment of receipt.
"""

import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class FrameEvent:
    """A camera frame capture, monotonic nanoseconds."""
    timestamp_ns: int


@dataclass(frozen=True)
class LocationFix:
    """
    A GNSS fix as seen by the device.

    gps_epoch_ms of 0 means the receiver had no time solution yet.
    """
    gps_epoch_ms: int
    monotonic_receipt_ns: int
    system_epoch_ms: int

    @classmethod
    def received(cls, gps_epoch_ms: int) -> 'LocationFix':
        """Stamp a fix with the local clocks at the moment of receipt."""
        return cls(
            gps_epoch_ms=gps_epoch_ms,
            monotonic_receipt_ns=time.monotonic_ns(),
            system_epoch_ms=time.time_ns() // 1_000_000,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Optional['LocationFix']:
        """
        Parse a fix from a dict (JSON body or CSV row).

        Returns None if a field is missing or not an integer.
        """
        try:
            return cls(
                gps_epoch_ms=int(data.get('gps_epoch_ms') or 0),
                monotonic_receipt_ns=int(data['monotonic_receipt_ns']),
                system_epoch_ms=int(data['system_epoch_ms']),
            )
        except (KeyError, TypeError, ValueError):
            return None

    @property
    def has_time(self) -> bool:
        return bool(self.gps_epoch_ms)
