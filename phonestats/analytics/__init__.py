"""
Analytics module for PhoneStats.

Reduces raw telemetry streams into rolling-window statistics:
- Frame timing: instantaneous frame-rate min/mean/max per window
- Clock drift: drift of the system clock against GNSS time and its rate
"""

from phonestats.analytics.clock_drift import ClockDriftTracker, DriftPoint, DriftRate
from phonestats.analytics.frame_timing import FpsStats, FrameTimingAnalyzer, WindowStats

__all__ = [
    'ClockDriftTracker',
    'DriftPoint',
    'DriftRate',
    'FpsStats',
    'FrameTimingAnalyzer',
    'WindowStats',
]
