"""Tests for signup, signin and token handling."""

import pytest

from app.extensions import db
from app.models import User
from tests.conftest import bearer


def _signup(client, **overrides):
    payload = {'name': 'Grace', 'email': 'grace@example.com', 'password': 'secret123'}
    payload.update(overrides)
    return client.post('/api/auth/signup', json=payload)


def test_signup_returns_tokens(client):
    response = _signup(client)
    assert response.status_code == 201
    data = response.get_json()
    assert data['success'] is True
    assert data['access_token']
    assert data['refresh_token']
    assert data['token_type'] == 'bearer'
    assert data['data']['email'] == 'grace@example.com'
    assert data['data']['userType'] == 'user'


@pytest.mark.parametrize('user_type,expected', [
    ('Doctor', 'doctor'),
    ('doctor', 'doctor'),
    ('User', 'user'),
    ('patient', 'user'),
])
def test_signup_normalizes_user_type(client, user_type, expected):
    response = _signup(client, userType=user_type)
    assert response.get_json()['data']['userType'] == expected


def test_signup_rejects_unknown_user_type(client):
    assert _signup(client, userType='admin').status_code == 400


@pytest.mark.parametrize('overrides', [
    {'name': ''},
    {'email': 'not-an-email'},
    {'password': '123'},
])
def test_signup_validation(client, overrides):
    assert _signup(client, **overrides).status_code == 400


def test_signup_duplicate_email(client):
    _signup(client)
    response = _signup(client, email='Grace@Example.com')
    assert response.status_code == 409


def test_signin(client):
    _signup(client)
    response = client.post('/api/auth/signin', json={'email': 'grace@example.com', 'password': 'secret123'})
    assert response.status_code == 200
    token = response.get_json()['access_token']

    me = client.get('/api/auth/me', headers=bearer(token))
    assert me.status_code == 200
    assert me.get_json()['data']['name'] == 'Grace'


def test_signin_wrong_password(client):
    _signup(client)
    response = client.post('/api/auth/signin', json={'email': 'grace@example.com', 'password': 'nope'})
    assert response.status_code == 401


def test_signin_unknown_email(client):
    response = client.post('/api/auth/signin', json={'email': 'ghost@example.com', 'password': 'secret123'})
    assert response.status_code == 401


def test_signin_deactivated_account(app, client, user_id):
    with app.app_context():
        db.session.get(User, user_id).is_active = False
        db.session.commit()
    response = client.post('/api/auth/signin', json={'email': 'alice@example.com', 'password': 'secret123'})
    assert response.status_code == 403


def test_deactivated_account_token_rejected(app, client, user_id, user_headers):
    with app.app_context():
        db.session.get(User, user_id).is_active = False
        db.session.commit()
    assert client.get('/api/auth/me', headers=user_headers).status_code == 401


def test_me_with_expired_token(client, expired_headers):
    response = client.get('/api/auth/me', headers=expired_headers)
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Token has expired'


def test_refresh(client):
    refresh_token = _signup(client).get_json()['refresh_token']
    response = client.post('/api/auth/refresh', headers=bearer(refresh_token))
    assert response.status_code == 200
    access_token = response.get_json()['access_token']
    assert client.get('/api/auth/me', headers=bearer(access_token)).status_code == 200


def test_refresh_rejects_access_token(client):
    access_token = _signup(client).get_json()['access_token']
    assert client.post('/api/auth/refresh', headers=bearer(access_token)).status_code == 401
