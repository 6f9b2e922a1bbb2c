"""
Metrics and session control API endpoints.

Provides endpoints for:
- GET /api/metrics/status - Session, channel and recorder status
- GET /api/metrics/device - Host device information
- POST /api/metrics/session/<action> - start / stop / release the session
"""

import logging
import platform
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app

from phonestats.config import config

logger = logging.getLogger(__name__)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')

SESSION_ACTIONS = ('start', 'stop', 'release')


@metrics_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Analyzer and channel status for both streams
    - Recorder statistics (if enabled)
    - Configuration info
    """
    start_time = time.perf_counter()

    session = current_app.config['DIAGNOSTICS_SESSION']
    session_stats = session.stats

    recorder = current_app.config.get('SNAPSHOT_RECORDER')
    recorder_stats = recorder.stats if recorder else {'running': False}

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'status': 'running' if session_stats['running'] else 'stopped',
        'session': session_stats,
        'recorder': recorder_stats,
        'config': {
            'fps_windows_seconds': list(config.frame_timing.windows_seconds),
            'fps_retention_seconds': config.frame_timing.retention_seconds,
            'drift_retention_seconds': config.clock_drift.retention_seconds,
            'channel_capacity': config.ingestion.channel_capacity,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@metrics_bp.route('/device', methods=['GET'])
def get_device_info():
    """Get information about the host running the service."""
    uname = platform.uname()
    return jsonify({
        'system': uname.system,
        'release': uname.release,
        'version': uname.version,
        'machine': uname.machine,
        'node': uname.node,
        'python_version': platform.python_version(),
    })


@metrics_bp.route('/session/<action>', methods=['POST'])
def control_session(action: str):
    """
    Start, stop or release the diagnostics session.

    stop keeps accumulated data; release discards it.
    """
    if action not in SESSION_ACTIONS:
        return jsonify({'error': f'Unknown action: {action}'}), 404

    session = current_app.config['DIAGNOSTICS_SESSION']
    getattr(session, action)()
    logger.info(f'Session {action} requested via API')

    return jsonify({
        'success': True,
        'action': action,
        'running': session.is_running,
    })
