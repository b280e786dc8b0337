from .auth import auth_bp
from .images import images_bp, uploads_bp
from .reports import reports_bp
from .health import health_bp

__all__ = ['auth_bp', 'images_bp', 'uploads_bp', 'reports_bp', 'health_bp']
