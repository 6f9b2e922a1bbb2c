"""
Snapshot models - recorded query results over time.

The analyzers only keep 20-30 minutes of raw samples in memory. The
recorder polls them once per second and stores the aggregated result
here, so a long session can be reviewed afterwards.

Both tables are append-only and cleaned up by retention age.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from phonestats.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FpsSnapshot(Base):
    """
    One polled FpsStats result.

    Window columns are NULL when that window had insufficient data.
    """

    __tablename__ = 'fps_snapshots'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=_utcnow,
        index=True,
        comment='Poll time (UTC)'
    )

    frame_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Cumulative frames since session start'
    )

    # 10 second window
    fps_10s_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_10s_mean: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_10s_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # 1 minute window
    fps_1m_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_1m_mean: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_1m_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # 5 minute window
    fps_5m_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_5m_mean: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_5m_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # 20 minute window
    fps_20m_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_20m_mean: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fps_20m_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return f'<FpsSnapshot {self.recorded_at} frames={self.frame_count}>'


class DriftSnapshot(Base):
    """One polled drift state: latest point plus rates per window."""

    __tablename__ = 'drift_snapshots'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=_utcnow,
        index=True,
        comment='Poll time (UTC)'
    )

    has_fix: Mapped[bool] = mapped_column(Boolean, default=False)

    elapsed_seconds: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Elapsed time of latest drift point'
    )

    drift_ms: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Latest drift relative to reference (ms)'
    )

    # Drift rates in ms/minute
    rate_1m: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rate_5m: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rate_20m: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rate_total: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index('ix_drift_snapshots_fix_time', 'has_fix', 'recorded_at'),
    )

    def __repr__(self) -> str:
        return f'<DriftSnapshot {self.recorded_at} drift={self.drift_ms}>'


def get_retention_cutoff(hours: int) -> datetime:
    """Rows recorded before this time should be deleted."""
    return _utcnow() - timedelta(hours=hours)
