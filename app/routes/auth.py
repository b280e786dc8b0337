from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
    current_user,
)
from sqlalchemy.exc import IntegrityError
from app.models import User
from app.models.user import normalize_user_type
from app.extensions import db
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _token_response(user, status_code=200):
    """Issue access + refresh tokens for a user"""
    identity = str(user.id)
    additional_claims = {
        "email": user.email,
        "user_type": user.user_type,
    }
    access_token = create_access_token(
        identity=identity,
        additional_claims=additional_claims,
        fresh=True,
    )
    refresh_token = create_refresh_token(identity=identity)
    expires_in = int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds())

    return jsonify({
        'success': True,
        'data': user.to_dict(),
        'access_token': access_token,
        'refresh_token': refresh_token,
        'token_type': 'bearer',
        'expires_in': expires_in
    }), status_code


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """
    Register a new account and return JWT tokens

    Body:
        name, email, password (required)
        userType: 'user' or 'doctor' (default: user)
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({
            'success': False,
            'error': 'Request body must be JSON'
        }), 400

    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not name or not email or not password:
        return jsonify({
            'success': False,
            'error': 'Name, email and password required'
        }), 400

    if '@' not in email or len(email) > 120:
        return jsonify({
            'success': False,
            'error': 'Invalid email address'
        }), 400

    if len(password) < 6:
        return jsonify({
            'success': False,
            'error': 'Password must be at least 6 characters'
        }), 400

    user_type = normalize_user_type(data.get('userType') or 'user')
    if not user_type:
        return jsonify({
            'success': False,
            'error': 'Invalid userType. Must be: user or doctor'
        }), 400

    if User.query.filter_by(email=email).first():
        return jsonify({
            'success': False,
            'error': 'An account with this email already exists'
        }), 409

    user = User(name=name, email=email, user_type=user_type)
    user.set_password(password)
    user.last_login = datetime.utcnow()
    user.login_count = 1
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'An account with this email already exists'
        }), 409

    logger.info(f"New {user.user_type} account: {user.email}")
    return _token_response(user, 201)


@auth_bp.route('/signin', methods=['POST'])
def signin():
    """Sign in - authenticates a user and returns JWT tokens"""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({
            'success': False,
            'error': 'Request body must be JSON'
        }), 400

    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    if not email or not password:
        return jsonify({
            'success': False,
            'error': 'Email and password required'
        }), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({
            'success': False,
            'error': 'Invalid email or password'
        }), 401

    if not user.is_active:
        return jsonify({
            'success': False,
            'error': 'Account is deactivated'
        }), 403

    # Update login tracking
    user.last_login = datetime.utcnow()
    user.login_count = (user.login_count or 0) + 1
    db.session.commit()

    return _token_response(user)


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    """Get the signed-in user"""
    return jsonify({
        'success': True,
        'data': current_user.to_dict()
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """Refresh access token using refresh token"""
    identity = get_jwt_identity()
    new_access_token = create_access_token(
        identity=identity,
        additional_claims={
            "email": current_user.email,
            "user_type": current_user.user_type,
        },
        fresh=False  # refreshed tokens are not fresh
    )
    return jsonify({
        'success': True,
        'access_token': new_access_token,
        'token_type': 'bearer',
        'expires_in': int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds())
    }), 200
