"""Pytest configuration and fixtures."""

import io
from datetime import timedelta
from unittest.mock import patch

import pytest
from PIL import Image
from flask_jwt_extended import create_access_token

from app import create_app
from app.extensions import db
from app.models import User
from app.services.classifier_client import ClassificationResult

REPORT_ID_PATTERN = r"^RPT\d{8}_\d{3,}$"


@pytest.fixture
def app(tmp_path):
    """App on a throwaway SQLite file and upload folder."""
    app = create_app('testing', {
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def _create_user(app, email, user_type):
    with app.app_context():
        user = User(name=email.split('@')[0].title(), email=email, user_type=user_type)
        user.set_password('secret123')
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture
def user_id(app) -> int:
    return _create_user(app, 'alice@example.com', 'user')


@pytest.fixture
def other_user_id(app) -> int:
    return _create_user(app, 'bob@example.com', 'user')


@pytest.fixture
def doctor_id(app) -> int:
    return _create_user(app, 'house@example.com', 'doctor')


def token_for(app, user_id, expires_delta=None) -> str:
    with app.app_context():
        return create_access_token(identity=str(user_id), expires_delta=expires_delta)


def bearer(token) -> dict:
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def user_headers(app, user_id) -> dict:
    return bearer(token_for(app, user_id))


@pytest.fixture
def other_headers(app, other_user_id) -> dict:
    return bearer(token_for(app, other_user_id))


@pytest.fixture
def doctor_headers(app, doctor_id) -> dict:
    return bearer(token_for(app, doctor_id))


@pytest.fixture
def expired_headers(app, user_id) -> dict:
    return bearer(token_for(app, user_id, expires_delta=timedelta(seconds=-10)))


def make_image_bytes(fmt='JPEG') -> bytes:
    buf = io.BytesIO()
    Image.new('L', (16, 16), color=128).save(buf, fmt)
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes('JPEG')


def upload(client, headers, content, filename='chest.jpg', mimetype='image/jpeg'):
    return client.post(
        '/api/images/upload',
        data={'image': (io.BytesIO(content), filename, mimetype)},
        headers=headers,
        content_type='multipart/form-data',
    )


@pytest.fixture
def classifier():
    """Stand-in for the remote classifier; returns a caption and one tag."""
    with patch('app.services.analysis_service.classify_image') as mock_classify:
        mock_classify.return_value = ClassificationResult(
            caption='Enlarged cardiac silhouette.',
            tags=['Cardiomegaly'],
        )
        yield mock_classify
