"""Shared pytest configuration and fixtures for the PhoneStats test suite."""

import os
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep the module-level engine away from the working directory
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('RECORDER_ENABLED', '0')

from phonestats.analytics.clock_drift import ClockDriftTracker  # noqa: E402
from phonestats.analytics.frame_timing import FrameTimingAnalyzer  # noqa: E402
from phonestats.models.base import create_db_engine, init_db, make_session_factory  # noqa: E402
from phonestats.session import DiagnosticsSession  # noqa: E402

NS = 1_000_000_000

# Arbitrary wall-clock epoch for drift fixtures (2023-11-14T22:13:20Z)
SYSTEM_EPOCH_MS = 1_700_000_000_000


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def frame_analyzer():
    """A started frame timing analyzer with default windows."""
    analyzer = FrameTimingAnalyzer()
    analyzer.start()
    yield analyzer
    analyzer.release()


@pytest.fixture
def drift_tracker():
    """A started drift tracker whose start reference is monotonic 0."""
    tracker = ClockDriftTracker()
    tracker.start(start_monotonic_ns=0)
    yield tracker
    tracker.release()


@pytest.fixture
def session():
    """A started diagnostics session, released after the test."""
    diagnostics = DiagnosticsSession(channel_capacity=100_000)
    diagnostics.start()
    yield diagnostics
    diagnostics.release()


@pytest.fixture
def db_factory(tmp_path):
    """Session factory bound to a fresh SQLite file."""
    db_engine = create_db_engine(f'sqlite:///{tmp_path / "snapshots.db"}')
    init_db(db_engine)
    yield make_session_factory(db_engine)
    db_engine.dispose()


@pytest.fixture
def ingest_drift():
    """
    Ingest a fix received at elapsed_seconds whose gps - system difference
    is raw_drift_ms.
    """
    def _ingest(tracker, elapsed_seconds, raw_drift_ms):
        receipt_ns = tracker.start_monotonic_ns + int(round(elapsed_seconds * NS))
        return tracker.ingest(
            SYSTEM_EPOCH_MS + int(elapsed_seconds * 1000) + raw_drift_ms,
            receipt_ns,
            SYSTEM_EPOCH_MS + int(elapsed_seconds * 1000),
        )
    return _ingest
