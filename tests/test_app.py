"""Tests for health checks, app-wide handlers and CLI commands."""

from datetime import datetime, timedelta

from app.extensions import db
from app.models import Report, User
from app.services.report_service import create_report


def test_liveness(client):
    response = client.get('/health/live')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'alive'


def test_readiness_counts_pending(app, client, user_id):
    with app.app_context():
        create_report(db.session.get(User, user_id), '/uploads/a.jpg')

    data = client.get('/health/ready').get_json()
    assert data['status'] == 'ready'
    assert data['checks']['database'] == 'connected'
    assert data['checks']['pending_reports'] == 1


def test_request_id_is_echoed(client):
    response = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert response.headers['X-Request-ID'] == 'abc123'
    assert client.get('/health').headers['X-Request-ID']


def test_api_responses_are_not_cached(client, user_headers):
    response = client.get('/api/reports', headers=user_headers)
    assert response.headers['Cache-Control'] == 'no-store'


def test_unknown_endpoint_is_json(client):
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_method_not_allowed_is_json(client):
    response = client.put('/api/reports')
    assert response.status_code == 405
    assert response.get_json()['success'] is False


def test_expire_pending_command(app, user_id):
    with app.app_context():
        report = create_report(db.session.get(User, user_id), '/uploads/old.jpg')
        report.created_at = datetime.utcnow() - timedelta(hours=1)
        db.session.commit()
        pk = report.id

    result = app.test_cli_runner().invoke(args=['expire-pending', '--max-age', '60'])
    assert 'Expired 1 pending report(s).' in result.output
    with app.app_context():
        assert db.session.get(Report, pk).status == 'error'


def test_normalize_user_types_command(app):
    with app.app_context():
        legacy = User(name='Old', email='old@example.com', user_type='patient')
        legacy.set_password('secret123')
        db.session.add(legacy)
        db.session.commit()

    result = app.test_cli_runner().invoke(args=['normalize-user-types'])
    assert 'Updated 1 user(s).' in result.output
    with app.app_context():
        assert User.query.filter_by(email='old@example.com').one().user_type == 'user'
