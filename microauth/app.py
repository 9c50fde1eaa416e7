"""
Flask application hosted behind token authorization.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify


logger = logging.getLogger(__name__)


def create_app(name: str = "microauth") -> Flask:
    """Create a Flask app with a health endpoint, error handlers and security headers."""
    app = Flask(name)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Liveness endpoint, usually excluded from authorization."""
        return jsonify({
            'status': 'healthy',
            'service': name,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'error': 'Not found',
            'message': 'The requested endpoint does not exist'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': 'Method not allowed',
            'message': 'The requested method is not allowed for this endpoint'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({
            'error': 'Internal server error',
            'message': 'An unexpected error occurred'
        }), 500

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers.pop('Server', None)
        return response

    return app


_default_lock = threading.Lock()
_default_app: Optional[Flask] = None


def default_app() -> Flask:
    """
    Return the process-wide Flask app served when no handler is given.

    Routes registered on it are served by ``serve_tls``/``serve`` calls
    that pass ``handler=None``.
    """
    global _default_app
    with _default_lock:
        if _default_app is None:
            _default_app = create_app()
        return _default_app
