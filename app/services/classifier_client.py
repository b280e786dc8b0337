"""
Client for the external chest X-ray classifier.

The classifier is an HTTP service that takes one image and a mode flag and
answers {"status": "success", "result": {"caption": ..., "tags": [...]}}.
Everything it returns is validated here before it reaches a report.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class ClassifierError(Exception):
    """The classifier could not produce a usable result"""


@dataclass
class ClassificationResult:
    caption: str
    tags: List[str] = field(default_factory=list)


def classifier_mode(user_type: str) -> str:
    return 'doctor' if user_type == 'doctor' else 'user'


def parse_classifier_response(payload) -> ClassificationResult:
    """
    Validate a decoded classifier response.

    Raises:
        ClassifierError: on non-success status or malformed result
    """
    if not isinstance(payload, dict):
        raise ClassifierError('Malformed classifier response')

    if payload.get('status') != 'success':
        detail = payload.get('error') or payload.get('message') or 'Unknown error'
        raise ClassifierError(f"Analysis failed: {detail}")

    result = payload.get('result')
    if not isinstance(result, dict):
        raise ClassifierError('Classifier response has no result')

    caption = result.get('caption')
    if not isinstance(caption, str) or not caption.strip():
        raise ClassifierError('Classifier response has no caption')

    tags = result.get('tags') or []
    if not isinstance(tags, list):
        raise ClassifierError('Classifier tags must be a list')

    return ClassificationResult(
        caption=caption.strip(),
        tags=[tag.strip() for tag in tags if isinstance(tag, str) and tag.strip()],
    )


def classify_image(image_path: str, user_type: str, session: Optional[requests.Session] = None) -> ClassificationResult:
    """
    Send an image to the classifier and return its validated result.

    Args:
        image_path: Absolute path of the stored upload
        user_type: Role of the uploader, selects the classifier mode
        session: Optional requests session (tests, connection reuse)

    Raises:
        ClassifierError: on any transport, HTTP or payload problem
    """
    api_url = current_app.config.get('CLASSIFIER_API_URL')
    if not api_url:
        raise ClassifierError('Classifier API URL is not configured')
    if not os.path.exists(image_path):
        raise ClassifierError('Image file not found')

    timeout = current_app.config.get('CLASSIFIER_TIMEOUT', 60)
    field_name = current_app.config.get('CLASSIFIER_FIELD_NAME', 'images')
    headers = {}
    token = current_app.config.get('CLASSIFIER_API_TOKEN')
    if token:
        headers['Authorization'] = f'Bearer {token}'

    mode = classifier_mode(user_type)
    http = session or requests
    logger.info(f"Calling classifier {api_url} (mode={mode})")

    try:
        with open(image_path, 'rb') as fh:
            response = http.post(
                api_url,
                params={'mode': mode},
                files={field_name: (os.path.basename(image_path), fh)},
                headers=headers,
                timeout=timeout,
            )
        response.raise_for_status()
        payload = response.json()
    except requests.Timeout:
        raise ClassifierError(f'Classifier did not respond within {timeout} seconds')
    except requests.HTTPError as e:
        raise ClassifierError(f'Classifier returned HTTP {e.response.status_code}')
    except ValueError:
        raise ClassifierError('Classifier returned invalid JSON')
    except requests.RequestException as e:
        raise ClassifierError(f'Classifier request failed: {e}')

    return parse_classifier_response(payload)
