"""
CORS for the browser client
"""
from flask_cors import CORS


def init_cors(app):
    """
    Allow the configured origins on /api/*.
    Content-Disposition is exposed so downloads keep their file name.
    """
    origins = app.config.get('CORS_ORIGINS') or ['*']
    CORS(app,
         resources={r"/api/*": {"origins": origins}},
         methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'X-Request-ID'],
         expose_headers=['Content-Disposition', 'X-Request-ID'],
         max_age=app.config.get('CORS_MAX_AGE', 86400))

    app.logger.info(f"CORS enabled for {', '.join(origins)}")
