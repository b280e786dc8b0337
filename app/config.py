import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # JWT
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_HOURS = int(os.getenv('JWT_ACCESS_TOKEN_HOURS', '24'))
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=JWT_ACCESS_TOKEN_HOURS)
    JWT_TOKEN_LOCATION = ['headers']
    JWT_HEADER_TYPE = 'Bearer'

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///xray_reports.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Uploads
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'uploads')
    UPLOAD_URL_PREFIX = '/uploads'
    MAX_IMAGE_SIZE = int(os.getenv('MAX_IMAGE_SIZE', str(5 * 1024 * 1024)))  # 5MB
    # Request body cap sits above the image cap so oversized images get a JSON 413 from the route
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(6 * 1024 * 1024)))
    ALLOWED_IMAGE_TYPES = ('image/jpeg', 'image/png', 'image/jpg')

    # External classifier
    CLASSIFIER_API_URL = os.getenv('CLASSIFIER_API_URL', 'http://localhost:7860/analyse')
    CLASSIFIER_API_TOKEN = os.getenv('CLASSIFIER_API_TOKEN')
    CLASSIFIER_TIMEOUT = float(os.getenv('CLASSIFIER_TIMEOUT', '60'))  # seconds
    CLASSIFIER_FIELD_NAME = 'images'

    # Analysis workflow
    ANALYSIS_CONFIDENCE = 0.95
    ANALYSIS_EXECUTOR = os.getenv('ANALYSIS_EXECUTOR', 'celery')  # celery, thread
    ANALYSIS_STALE_AFTER = int(os.getenv('ANALYSIS_STALE_AFTER', '900'))  # seconds
    REPORT_ID_MAX_ATTEMPTS = int(os.getenv('REPORT_ID_MAX_ATTEMPTS', '10'))

    # Celery Configuration
    CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_ACCEPT_CONTENT = ['json']
    CELERY_TASK_SERIALIZER = 'json'
    CELERY_RESULT_SERIALIZER = 'json'
    CELERY_TIMEZONE = 'UTC'
    CELERY_ENABLE_UTC = True
    CELERY_TASK_ALWAYS_EAGER = False
    CELERY_BEAT_SCHEDULE = {
        'expire-stale-reports': {
            'task': 'tasks.expire_stale_reports',
            'schedule': 300.0,
        },
    }

    # CORS
    CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', '*').split(',') if o.strip()]
    CORS_MAX_AGE = 86400

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Ensure SECRET_KEY is set
    SECRET_KEY = os.getenv('SECRET_KEY')
    if os.getenv('FLASK_ENV') == 'production' and (
            not SECRET_KEY or SECRET_KEY == 'dev-secret-key-change-in-production'):
        raise ValueError("SECRET_KEY environment variable must be set in production and must not be the default value")
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY

    # Database connection pool for production
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
    }

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite://')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    CELERY_TASK_ALWAYS_EAGER = True
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CLASSIFIER_API_URL = 'http://classifier.test/analyse'
    CLASSIFIER_TIMEOUT = 5


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
