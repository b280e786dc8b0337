from app.extensions import db, bcrypt
from .base import TimestampMixin

USER_TYPES = ('user', 'doctor')
PRIVILEGED_USER_TYPES = ('doctor',)

# Older accounts were created as 'patient' before the role was renamed
LEGACY_USER_TYPES = {'patient': 'user'}


def normalize_user_type(value):
    """Map incoming role names ('Doctor', 'User', 'patient') onto USER_TYPES.

    Returns None for anything unrecognised.
    """
    if not value:
        return None
    value = str(value).strip().lower()
    value = LEGACY_USER_TYPES.get(value, value)
    return value if value in USER_TYPES else None


def is_privileged(user_type):
    """Check if a role may see condition tags"""
    return user_type in PRIVILEGED_USER_TYPES


class User(db.Model, TimestampMixin):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Role - 'user' or 'doctor'
    user_type = db.Column(db.String(20), nullable=False, default='user', index=True)

    # Status
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Last login tracking
    last_login = db.Column(db.DateTime, nullable=True)
    login_count = db.Column(db.Integer, default=0)

    reports = db.relationship('Report', backref='owner', lazy='dynamic')

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check if provided password matches hash"""
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'userType': self.user_type,
            'isActive': self.is_active,
            'lastLogin': self.last_login.isoformat() if self.last_login else None,
            'loginCount': self.login_count,
        }

    def __repr__(self):
        return f"<User {self.email} - {self.user_type}>"
