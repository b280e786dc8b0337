"""
HTTP client for the report API.

ReportClient wraps upload, status polling and report management. The
server owns every report; the client only holds what the last response
said.

    client = ReportClient('http://localhost:5000', token)
    result = client.analyze('chest.jpg')
"""
import os
import time
import logging
import mimetypes
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ('completed', 'error')


class ReportClientError(Exception):
    """The API answered with an error status"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AnalysisTimeoutError(ReportClientError):
    """The report did not reach a terminal state in time"""

    def __init__(self, report_id, attempts, elapsed):
        super().__init__(
            f"Report {report_id} still pending after {attempts} polls ({elapsed:.1f}s)"
        )
        self.report_id = report_id
        self.attempts = attempts
        self.elapsed = elapsed


class ReportClient:
    """
    Client for the X-ray report API.

    Args:
        base_url: Server root, e.g. http://localhost:5000
        token: Bearer access token
        poll_interval: Seconds between status polls while pending
        max_attempts: Status polls before giving up
        timeout: Optional overall deadline in seconds for wait_for_result
        request_timeout: Per-request HTTP timeout in seconds
        session: Optional requests.Session
    """

    def __init__(self, base_url: str, token: str, poll_interval: float = 2.0,
                 max_attempts: int = 150, timeout: Optional[float] = None,
                 request_timeout: float = 30.0, session: Optional[requests.Session] = None,
                 sleep=time.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.base_url = base_url.rstrip('/')
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.session.headers['Authorization'] = f'Bearer {token}'
        self._sleep = sleep

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        kwargs.setdefault('timeout', self.request_timeout)
        try:
            response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as e:
            raise ReportClientError(f"Request to {path} failed: {e}")

        if response.status_code >= 400:
            try:
                body = response.json()
                message = body.get('error') or body.get('message') or response.reason
            except ValueError:
                message = response.reason
            raise ReportClientError(message, status_code=response.status_code)
        return response

    def upload_image(self, image_path: str) -> Dict[str, Any]:
        """Upload an image; returns {reportId, imageUrl, ...}"""
        mimetype = mimetypes.guess_type(image_path)[0] or 'application/octet-stream'
        with open(image_path, 'rb') as fh:
            response = self._request(
                'POST', '/api/images/upload',
                files={'image': (os.path.basename(image_path), fh, mimetype)},
            )
        return response.json()

    def get_status(self, report_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/images/status/{report_id}').json()

    def wait_for_result(self, report_id: str) -> Dict[str, Any]:
        """
        Poll the status endpoint until the report is completed or errored.

        Returns:
            dict: The terminal status payload

        Raises:
            AnalysisTimeoutError: after max_attempts polls or past the deadline
        """
        started = time.monotonic()
        for attempt in range(1, self.max_attempts + 1):
            payload = self.get_status(report_id)
            status = payload.get('status')
            if status in TERMINAL_STATUSES:
                logger.info(f"Report {report_id} finished with status {status} after {attempt} poll(s)")
                return payload

            elapsed = time.monotonic() - started
            if attempt == self.max_attempts:
                break
            if self.timeout is not None and elapsed + self.poll_interval > self.timeout:
                raise AnalysisTimeoutError(report_id, attempt, elapsed)
            self._sleep(self.poll_interval)

        raise AnalysisTimeoutError(report_id, self.max_attempts, time.monotonic() - started)

    def analyze(self, image_path: str) -> Dict[str, Any]:
        """Upload an image and wait for its analysis; adds reportId to the result"""
        upload = self.upload_image(image_path)
        result = self.wait_for_result(upload['reportId'])
        return dict(result, reportId=upload['reportId'])

    def list_reports(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {'status': status} if status else None
        return self._request('GET', '/api/reports', params=params).json()

    def get_report(self, report_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/reports/{report_id}').json()

    def save_report(self, report_id: str) -> Dict[str, Any]:
        return self._request('POST', '/api/reports', json={'reportId': report_id}).json()['report']

    def export_report(self, report_id: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/reports/{report_id}/export').json()['report']

    def download_report(self, report_id: str) -> str:
        return self._request('GET', f'/api/reports/{report_id}/download').text

    def delete_report(self, report_id: str) -> None:
        self._request('DELETE', f'/api/reports/{report_id}')
