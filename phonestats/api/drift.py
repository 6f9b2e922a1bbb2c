"""
Clock drift API endpoints.

Provides endpoints for:
- GET /api/drift - Drift series and current drift
- GET /api/drift/rates - Drift rates over 1min, 5min, 20min and total
- POST /api/drift/fixes - Submit GNSS fixes from a remote producer
"""

import logging
import math
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, current_app

from phonestats.errors import ChannelClosed
from phonestats.ingestion.messages import LocationFix

logger = logging.getLogger(__name__)

drift_bp = Blueprint('drift', __name__, url_prefix='/api/drift')

# Graph range limits, 1 to 30 minutes
MIN_RANGE_SECONDS = 60.0
MAX_RANGE_SECONDS = 1800.0


def _session():
    return current_app.config['DIAGNOSTICS_SESSION']


@drift_bp.route('', methods=['GET'])
def get_drift():
    """
    Get the drift series.

    Query parameters:
    - range_seconds: only return points this close to the latest one
      (clamped to 60..1800, default all retained points)
    """
    start_time = time.perf_counter()
    session = _session()

    range_seconds = None
    raw_range = request.args.get('range_seconds')
    if raw_range is not None:
        try:
            range_seconds = float(raw_range)
        except ValueError:
            return jsonify({'error': 'range_seconds must be a number'}), 400
        if math.isnan(range_seconds):
            return jsonify({'error': 'range_seconds must be a number'}), 400
        range_seconds = min(max(range_seconds, MIN_RANGE_SECONDS), MAX_RANGE_SECONDS)

    series = session.drift_series(range_seconds)
    current = session.current_drift()

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'running': session.drift_tracker.is_running,
        'has_fix': session.drift_tracker.has_fix,
        'current': current.to_dict() if current else None,
        'series': [point.to_dict() for point in series],
        'count': len(series),
        'range_seconds': range_seconds,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@drift_bp.route('/rates', methods=['GET'])
def get_drift_rates():
    """Get drift rates (ms/minute) for each reported window."""
    session = _session()
    rates = session.drift_rates()

    return jsonify({
        'running': session.drift_tracker.is_running,
        'has_fix': session.drift_tracker.has_fix,
        'rates': {
            name: rate.to_dict() if rate else None
            for name, rate in rates.items()
        },
    })


@drift_bp.route('/fixes', methods=['POST'])
def submit_fixes():
    """
    Submit GNSS fixes.

    Body: {"fixes": [{"gps_epoch_ms": int, "monotonic_receipt_ns": int,
                      "system_epoch_ms": int}, ...]}
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('fixes'), list):
        return jsonify({'error': 'fixes list required'}), 400

    fixes = []
    for i, raw in enumerate(data['fixes']):
        fix = LocationFix.from_mapping(raw) if isinstance(raw, dict) else None
        if fix is None:
            return jsonify({'error': f'Invalid fix at index {i}'}), 400
        fixes.append(fix)

    session = _session()
    try:
        queued = sum(1 for fix in fixes if session.submit_fix(fix))
    except ChannelClosed:
        return jsonify({'error': 'Session is not running'}), 409

    return jsonify({
        'received': len(fixes),
        'queued': queued,
        'dropped': len(fixes) - queued,
    })
