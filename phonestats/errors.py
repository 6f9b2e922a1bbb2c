"""
Exception types for PhoneStats.

Insufficient data is never an exception here: analyzers return None for
"not ready yet". These types cover contract violations and misconfiguration.
"""


class PhoneStatsError(Exception):
    """Base exception for all PhoneStats errors."""


class SeriesError(PhoneStatsError):
    """Invalid operation on a bounded timestamped series."""


class OutOfOrderSample(SeriesError):
    """Appended timestamp is older than the newest sample in the series."""

    def __init__(self, timestamp, latest):
        super().__init__(f'Timestamp {timestamp} precedes latest sample {latest}')
        self.timestamp = timestamp
        self.latest = latest


class ChannelClosed(PhoneStatsError):
    """Message submitted to an ingestion channel that is not running."""


class ConfigError(PhoneStatsError):
    """Invalid configuration value in the environment."""
