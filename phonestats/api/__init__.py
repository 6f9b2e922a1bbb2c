"""
API module for PhoneStats.

Provides REST endpoints for:
- Frame timing statistics
- Clock drift series and rates
- Session status and control
"""

from phonestats.api.drift import drift_bp
from phonestats.api.fps import fps_bp
from phonestats.api.metrics import metrics_bp

__all__ = ['drift_bp', 'fps_bp', 'metrics_bp']
