"""
PhoneStats Telemetry Package.

Rolling frame-timing and GNSS clock-drift statistics, served over a
Flask JSON API.

Modules:
    models/      In-memory bounded series and SQLAlchemy snapshot tables
    analytics/   NumPy frame-rate statistics and clock drift tracking
    ingestion/   Bounded ingestion channels, sensor messages, log replay
    api/         REST endpoints for statistics, status and session control
    session.py   Explicit owner of analyzers and their channels
    recorder.py  Background poller persisting snapshots
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
