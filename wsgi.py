"""
Production entry point: gunicorn -w 4 -b 0.0.0.0:5000 wsgi:application
Set FLASK_ENV=production and a real SECRET_KEY.
"""
from app import create_app

application = create_app()
