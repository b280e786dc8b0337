"""
Per-request logging and response headers
"""
import time
import uuid
import logging

from flask import g, request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'


def setup_middleware(app):
    """Tag each request with an id, log its outcome and harden responses"""

    @app.before_request
    def start_request():
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        g.request_started = time.monotonic()

    @app.after_request
    def finish_request(response):
        response.headers[REQUEST_ID_HEADER] = g.get('request_id', '')
        started = g.get('request_started')
        if started is not None and not app.testing:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.info(f"{request.method} {request.path} {response.status_code} "
                        f"{elapsed_ms:.0f}ms [{g.request_id}] {request.remote_addr}")

        # API responses carry per-user report data
        if request.path.startswith('/api/'):
            response.headers.setdefault('Cache-Control', 'no-store')
        response.headers['X-Content-Type-Options'] = 'nosniff'
        if not app.debug:
            response.headers['X-Frame-Options'] = 'DENY'
            response.headers['Referrer-Policy'] = 'no-referrer'
            if request.is_secure:
                response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response
