"""
Configuration management for PhoneStats.

Loads settings from environment variables with sensible defaults.
Window lengths and retention horizons live here so the analyzers,
the API and the recorder agree on them.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

from phonestats.errors import ConfigError

load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, raising ConfigError if malformed."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f'{name} must be a number, got {raw!r}') from None
    if not math.isfinite(value):
        raise ConfigError(f'{name} must be finite, got {raw!r}')
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {raw!r}') from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class FrameTimingConfig:
    """Frame timing analyzer settings."""
    retention_seconds: float = field(
        default_factory=lambda: _env_float('FPS_RETENTION_SECONDS', 1200.0)
    )
    # 10s, 1min, 5min, 20min - the longest one must fit in retention
    windows_seconds: Tuple[float, ...] = (10.0, 60.0, 300.0, 1200.0)


@dataclass(frozen=True)
class ClockDriftConfig:
    """Clock drift tracker settings."""
    retention_seconds: float = field(
        default_factory=lambda: _env_float('DRIFT_RETENTION_SECONDS', 1800.0)
    )
    # 1min, 5min, 20min, total
    rate_windows_seconds: Tuple[float, ...] = (60.0, 300.0, 1200.0, math.inf)
    min_span_seconds: float = 1.0


@dataclass(frozen=True)
class IngestionConfig:
    """Ingestion channel settings."""
    channel_capacity: int = field(
        default_factory=lambda: _env_int('CHANNEL_CAPACITY', 1024)
    )
    join_timeout_seconds: float = 5.0


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration for the snapshot recorder."""
    url: str = field(
        default_factory=lambda: os.getenv('DATABASE_URL', 'sqlite:///phonestats.db')
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class RecorderConfig:
    """Snapshot recorder settings."""
    enabled: bool = field(default_factory=lambda: _env_bool('RECORDER_ENABLED', False))
    interval_seconds: float = field(
        default_factory=lambda: _env_float('POLL_INTERVAL_SECONDS', 1.0)
    )
    retention_hours: int = field(default_factory=lambda: _env_int('RETENTION_HOURS', 24))
    cleanup_every_cycles: int = 300  # Every ~5 minutes at 1s polling


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    frame_timing: FrameTimingConfig
    clock_drift: ClockDriftConfig
    ingestion: IngestionConfig
    database: DatabaseConfig
    recorder: RecorderConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    frame_timing = FrameTimingConfig()
    if max(frame_timing.windows_seconds) > frame_timing.retention_seconds:
        raise ConfigError(
            'FPS_RETENTION_SECONDS must cover the longest frame timing window '
            f'({max(frame_timing.windows_seconds):.0f}s)'
        )

    ingestion = IngestionConfig()
    if ingestion.channel_capacity <= 0:
        raise ConfigError('CHANNEL_CAPACITY must be positive')

    return AppConfig(
        frame_timing=frame_timing,
        clock_drift=ClockDriftConfig(),
        ingestion=ingestion,
        database=DatabaseConfig(),
        recorder=RecorderConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
