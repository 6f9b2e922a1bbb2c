"""
Data models for PhoneStats.

- series: in-memory bounded timestamped series used by the analyzers
- snapshot: SQLAlchemy tables for recorded statistics
"""

from phonestats.models.base import Base, engine, SessionLocal, init_db, get_session
from phonestats.models.series import BoundedTimestampedSeries, Sample
from phonestats.models.snapshot import DriftSnapshot, FpsSnapshot, get_retention_cutoff

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'get_session',
    'BoundedTimestampedSeries',
    'Sample',
    'DriftSnapshot',
    'FpsSnapshot',
    'get_retention_cutoff',
]
