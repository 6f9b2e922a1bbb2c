"""
Frame timing API endpoints.

Provides endpoints for:
- GET /api/fps - Rolling frame-rate statistics
- GET /api/fps/window - Statistics for an arbitrary window
- POST /api/fps/frames - Submit frame timestamps from a remote producer
"""

import logging
import math
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, current_app

from phonestats.errors import ChannelClosed

logger = logging.getLogger(__name__)

fps_bp = Blueprint('fps', __name__, url_prefix='/api/fps')

MAX_FRAMES_PER_REQUEST = 10_000


def _session():
    return current_app.config['DIAGNOSTICS_SESSION']


@fps_bp.route('', methods=['GET'])
def get_fps_stats():
    """
    Get rolling frame-rate statistics.

    stats is null until at least two frames have been recorded; each
    window is null until it holds two frames with distinct timestamps.
    """
    start_time = time.perf_counter()
    session = _session()

    stats = session.fps_stats()

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'running': session.frame_analyzer.is_running,
        'stats': stats.to_dict() if stats else None,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@fps_bp.route('/window', methods=['GET'])
def get_window_stats():
    """
    Get statistics for a single trailing window.

    Query parameters:
    - seconds: window length (required, positive)
    """
    try:
        seconds = float(request.args.get('seconds', ''))
    except ValueError:
        return jsonify({'error': 'seconds must be a number'}), 400
    if not math.isfinite(seconds) or seconds <= 0:
        return jsonify({'error': 'seconds must be a positive finite number'}), 400

    stats = _session().frame_analyzer.window_stats(seconds)
    return jsonify({
        'window_seconds': seconds,
        'stats': stats.to_dict() if stats else None,
    })


@fps_bp.route('/frames', methods=['POST'])
def submit_frames():
    """
    Submit frame-capture timestamps.

    Body: {"timestamps_ns": [int, ...]} in capture order.
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('timestamps_ns'), list):
        return jsonify({'error': 'timestamps_ns list required'}), 400

    timestamps = data['timestamps_ns']
    if len(timestamps) > MAX_FRAMES_PER_REQUEST:
        return jsonify({'error': f'At most {MAX_FRAMES_PER_REQUEST} timestamps per request'}), 400
    if not all(isinstance(t, int) and not isinstance(t, bool) for t in timestamps):
        return jsonify({'error': 'timestamps_ns must contain integers'}), 400

    session = _session()
    try:
        queued = sum(1 for t in timestamps if session.submit_frame(t))
    except ChannelClosed:
        return jsonify({'error': 'Session is not running'}), 409

    return jsonify({
        'received': len(timestamps),
        'queued': queued,
        'dropped': len(timestamps) - queued,
    })
