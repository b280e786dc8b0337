from datetime import datetime
from app.extensions import db


class TimestampMixin:
    """created_at / updated_at columns; updated_at refreshes on every UPDATE"""
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
