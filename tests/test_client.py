"""Tests for the report API client."""

from unittest.mock import MagicMock

import pytest
import requests

from app.client import AnalysisTimeoutError, ReportClient, ReportClientError
from tests.conftest import token_for


def _response(payload=None, status_code=200, text=''):
    response = MagicMock()
    response.status_code = status_code
    response.reason = 'Error' if status_code >= 400 else 'OK'
    response.json.return_value = payload
    response.text = text
    return response


def _session(*responses):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return session


def _client(session, **kwargs):
    kwargs.setdefault('sleep', MagicMock())
    return ReportClient('http://api.test/', 'token-123', session=session, **kwargs)


def test_sets_bearer_header():
    session = _session()
    _client(session)
    assert session.headers['Authorization'] == 'Bearer token-123'


def test_wait_for_result_polls_until_terminal():
    session = _session(
        _response({'status': 'pending'}),
        _response({'status': 'pending'}),
        _response({'status': 'completed', 'class': 'Clear lungs.'}),
    )
    sleep = MagicMock()
    client = _client(session, poll_interval=0.5, sleep=sleep)

    result = client.wait_for_result('RPT20240101_001')
    assert result['class'] == 'Clear lungs.'
    assert sleep.call_count == 2
    sleep.assert_called_with(0.5)
    method, url = session.request.call_args[0]
    assert method == 'GET'
    assert url == 'http://api.test/api/images/status/RPT20240101_001'


def test_wait_for_result_returns_error_payload():
    session = _session(_response({'status': 'error', 'reportText': 'An error occurred'}))
    assert _client(session).wait_for_result('RPT20240101_001')['status'] == 'error'


def test_wait_for_result_gives_up_after_max_attempts():
    session = _session(*[_response({'status': 'pending'}) for _ in range(3)])
    sleep = MagicMock()
    client = _client(session, max_attempts=3, sleep=sleep)

    with pytest.raises(AnalysisTimeoutError) as excinfo:
        client.wait_for_result('RPT20240101_001')
    assert excinfo.value.attempts == 3
    assert session.request.call_count == 3
    assert sleep.call_count == 2


def test_wait_for_result_respects_deadline():
    session = _session(_response({'status': 'pending'}))
    client = _client(session, poll_interval=5, timeout=1)

    with pytest.raises(AnalysisTimeoutError):
        client.wait_for_result('RPT20240101_001')
    assert session.request.call_count == 1


def test_http_error_raises_with_status_code():
    session = _session(_response({'success': False, 'error': 'Report not found'}, status_code=404))
    with pytest.raises(ReportClientError) as excinfo:
        _client(session).get_report('RPT20240101_001')
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == 'Report not found'


def test_connection_error_raises():
    session = _session(requests.ConnectionError('refused'))
    with pytest.raises(ReportClientError) as excinfo:
        _client(session).list_reports()
    assert excinfo.value.status_code is None


def test_list_reports_passes_status_filter():
    session = _session(_response([]))
    assert _client(session).list_reports(status='pending') == []
    assert session.request.call_args[1]['params'] == {'status': 'pending'}


def test_analyze_uploads_then_polls(tmp_path):
    image = tmp_path / 'scan.png'
    image.write_bytes(b'png')
    session = _session(
        _response({'success': True, 'reportId': 'RPT20240101_007', 'imageUrl': '/uploads/x.png'}, 201),
        _response({'status': 'completed', 'class': 'Clear.'}),
    )

    result = _client(session).analyze(str(image))
    assert result == {'status': 'completed', 'class': 'Clear.', 'reportId': 'RPT20240101_007'}
    upload_call = session.request.call_args_list[0]
    assert upload_call[0] == ('POST', 'http://api.test/api/images/upload')
    filename, _, mimetype = upload_call[1]['files']['image']
    assert (filename, mimetype) == ('scan.png', 'image/png')


class FlaskSession:
    """Routes ReportClient requests into the Flask test client"""

    def __init__(self, test_client):
        self.test_client = test_client
        self.headers = {}

    def request(self, method, url, params=None, files=None, json=None, timeout=None):
        path = url.replace('http://api.test', '', 1)
        kwargs = {'headers': dict(self.headers), 'query_string': params}
        if files:
            kwargs['data'] = {name: (fh, filename, mimetype) for name, (filename, fh, mimetype) in files.items()}
            kwargs['content_type'] = 'multipart/form-data'
        if json is not None:
            kwargs['json'] = json
        response = self.test_client.open(path, method=method, **kwargs)

        adapted = MagicMock()
        adapted.status_code = response.status_code
        adapted.reason = response.status
        adapted.text = response.get_data(as_text=True)
        adapted.json.side_effect = lambda: response.get_json()
        return adapted


def test_end_to_end_against_app(app, client, doctor_id, jpeg_bytes, classifier, tmp_path):
    image = tmp_path / 'chest.jpg'
    image.write_bytes(jpeg_bytes)
    report_client = ReportClient('http://api.test', token_for(app, doctor_id),
                                 session=FlaskSession(client), sleep=MagicMock())

    result = report_client.analyze(str(image))
    assert result['status'] == 'completed'
    assert result['tags'] == ['Cardiomegaly']

    report_id = result['reportId']
    assert report_client.save_report(report_id)['finalizedAt'] is not None
    assert report_id in report_client.download_report(report_id)
    assert [r['reportId'] for r in report_client.list_reports()] == [report_id]

    report_client.delete_report(report_id)
    with pytest.raises(ReportClientError) as excinfo:
        report_client.get_status(report_id)
    assert excinfo.value.status_code == 404
