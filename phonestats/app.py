"""
PhoneStats Flask Application.

Main entry point for the telemetry service. Initializes:
- Diagnostics session (frame timing + clock drift)
- Snapshot recorder (optional)
- API routes

Usage:
    python -m phonestats.app

Or with gunicorn:
    gunicorn 'phonestats.app:create_app()'
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from phonestats.api import drift_bp, fps_bp, metrics_bp
from phonestats.config import config
from phonestats.models import init_db
from phonestats.recorder import SnapshotRecorder
from phonestats.session import DiagnosticsSession

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    session: Optional[DiagnosticsSession] = None,
    start_session: bool = True,
    recorder: Optional[SnapshotRecorder] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        session: Diagnostics session to serve (a new one if None).
        start_session: Whether to start the session's ingestion channels.
                       Set to False for testing.
        recorder: Snapshot recorder to run. If None and the recorder is
                  enabled in config, one is created for the session.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    app.register_blueprint(fps_bp)
    app.register_blueprint(drift_bp)
    app.register_blueprint(metrics_bp)

    session = session or DiagnosticsSession()
    if start_session:
        session.start()
    app.config['DIAGNOSTICS_SESSION'] = session

    if recorder is None and config.recorder.enabled:
        logger.info('Initializing snapshot database...')
        init_db()
        recorder = SnapshotRecorder(session)
    if recorder is not None:
        recorder.start_background()
    app.config['SNAPSHOT_RECORDER'] = recorder

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(400)
    def bad_request(e):
        return {'error': 'Bad request'}, 400

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {'error': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))
    logger.info(f'Starting PhoneStats on http://localhost:{port}')

    try:
        app.run(
            host='0.0.0.0',
            port=port,
            debug=config.debug,
            use_reloader=False,  # Reloader would start a second session
        )
    finally:
        recorder = app.config.get('SNAPSHOT_RECORDER')
        if recorder:
            recorder.stop()
        app.config['DIAGNOSTICS_SESSION'].release()


if __name__ == '__main__':
    run_development_server()
