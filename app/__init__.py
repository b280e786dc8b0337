from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, bcrypt, jwt, celery, FlaskAppContextTask
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None, config_overrides=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from app.config import config
        app.config.from_object(config.get(config_name, config['default']))
    else:
        from app.config import get_config
        app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production':
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    jwt.init_app(app)

    # Initialize CORS
    from app.utils.cors import init_cors
    init_cors(app)

    # Initialize Celery
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer=app.config['CELERY_TASK_SERIALIZER'],
        accept_content=app.config['CELERY_ACCEPT_CONTENT'],
        result_serializer=app.config['CELERY_RESULT_SERIALIZER'],
        timezone=app.config['CELERY_TIMEZONE'],
        enable_utc=app.config['CELERY_ENABLE_UTC'],
        task_always_eager=app.config['CELERY_TASK_ALWAYS_EAGER'],
        beat_schedule=app.config['CELERY_BEAT_SCHEDULE'],
    )
    # Workers run tasks inside this app's context
    FlaskAppContextTask.flask_app = app

    register_jwt_handlers(app)
    register_error_handlers(app)

    from app.middleware import setup_middleware
    setup_middleware(app)

    # Setup logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    from app.cli import register_cli
    register_cli(app)

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from .models import User, Report, AuditLog  # noqa: F401

        # Register blueprints
        from .routes import auth_bp, images_bp, uploads_bp, reports_bp, health_bp
        app.register_blueprint(health_bp)
        app.register_blueprint(auth_bp)
        app.register_blueprint(images_bp)
        app.register_blueprint(uploads_bp)
        # Stored image references are /uploads/<name>; serve them as given
        app.register_blueprint(uploads_bp, url_prefix=app.config.get('UPLOAD_URL_PREFIX', '/uploads'),
                               name='stored_uploads')
        app.register_blueprint(reports_bp)

    return app


def register_jwt_handlers(app):
    """Resolve tokens to users and answer every auth failure with a JSON 401"""
    from app.models import User

    @jwt.user_lookup_loader
    def load_user(_jwt_header, jwt_data):
        identity = jwt_data.get('sub')
        try:
            user = db.session.get(User, int(identity))
        except (TypeError, ValueError):
            return None
        if not user or not user.is_active:
            return None
        return user

    @jwt.user_lookup_error_loader
    def user_lookup_error(_jwt_header, jwt_data):
        return jsonify({
            'success': False,
            'error': 'User not found'
        }), 401

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({
            'success': False,
            'error': 'No authentication token, access denied'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({
            'success': False,
            'error': 'Token is not valid'
        }), 401

    @jwt.expired_token_loader
    def expired_token(_jwt_header, jwt_data):
        return jsonify({
            'success': False,
            'error': 'Token has expired'
        }), 401

    @jwt.needs_fresh_token_loader
    def stale_token(_jwt_header, jwt_data):
        return jsonify({
            'success': False,
            'error': 'Fresh token required'
        }), 401

    @jwt.revoked_token_loader
    def revoked_token(_jwt_header, jwt_data):
        return jsonify({
            'success': False,
            'error': 'Token has been revoked'
        }), 401


def register_error_handlers(app):
    """Global JSON error handlers"""

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(413)
    def too_large(error):
        max_mb = app.config.get('MAX_IMAGE_SIZE', 5 * 1024 * 1024) // (1024 * 1024)
        return jsonify({
            'success': False,
            'error': f'File too large. Maximum size is {max_mb}MB.'
        }), 413

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal Server Error: {error}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({
                'success': False,
                'error': e.description
            }), e.code
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Internal server error' if not app.debug else f'An error occurred: {str(e)}'
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500
