"""Tests for the analysis dispatcher."""

import os
import threading
from unittest.mock import patch

from sqlalchemy import Text
from sqlalchemy.exc import DataError

from app.extensions import db
from app.models import Report, User
from app.services.analysis_service import INTERNAL_FAILURE_REASON, dispatch_analysis, run_analysis
from app.services.classifier_client import ClassificationResult, ClassifierError
from app.services.report_service import complete_report, create_report
from app.utils.uploads import resolve_upload_path


def _pending_report(app, user_id, with_file=True):
    with app.app_context():
        report = create_report(db.session.get(User, user_id), '/uploads/scan.jpg')
        if with_file:
            path = resolve_upload_path(report.image)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'wb') as fh:
                fh.write(b'image')
        return report.id


def _status(app, pk):
    with app.app_context():
        report = db.session.get(Report, pk)
        return report.status, report.class_label, list(report.tags), report.report_text


def test_run_analysis_completes(app, doctor_id, classifier):
    pk = _pending_report(app, doctor_id)
    with app.app_context():
        assert run_analysis(pk) == 'completed'

    status, label, tags, text = _status(app, pk)
    assert status == 'completed'
    assert label == 'Enlarged cardiac silhouette.'
    assert tags == ['Cardiomegaly']
    assert 'Identified Conditions' in text
    path_arg, user_type_arg = classifier.call_args[0]
    assert path_arg.endswith('scan.jpg')
    assert user_type_arg == 'doctor'


def test_run_analysis_classifier_error(app, user_id, classifier):
    classifier.side_effect = ClassifierError('Classifier returned HTTP 502')
    pk = _pending_report(app, user_id)
    with app.app_context():
        assert run_analysis(pk) == 'error'

    status, label, tags, text = _status(app, pk)
    assert status == 'error'
    assert label == 'Error analyzing image'
    assert tags == []
    assert 'Classifier returned HTTP 502' in text


def test_run_analysis_unexpected_exception(app, user_id, classifier):
    classifier.side_effect = RuntimeError('boom')
    pk = _pending_report(app, user_id)
    with app.app_context():
        assert run_analysis(pk) == 'error'

    status, _, _, text = _status(app, pk)
    assert status == 'error'
    assert 'boom' not in text
    assert INTERNAL_FAILURE_REASON in text


def test_run_analysis_skips_terminal_report(app, user_id, classifier):
    pk = _pending_report(app, user_id)
    with app.app_context():
        complete_report(pk, 'Already done.', [])
        assert run_analysis(pk) == 'skipped'
    classifier.assert_not_called()
    assert _status(app, pk)[1] == 'Already done.'


def test_run_analysis_missing_report(app, classifier):
    with app.app_context():
        assert run_analysis(9999) == 'skipped'
    classifier.assert_not_called()


def test_report_deleted_during_analysis_is_not_recreated(app, user_id, classifier):
    pk = _pending_report(app, user_id)

    def delete_then_answer(image_path, user_type):
        with app.app_context():
            db.session.delete(db.session.get(Report, pk))
            db.session.commit()
        return ClassificationResult(caption='Late.', tags=[])

    classifier.side_effect = delete_then_answer
    with app.app_context():
        assert run_analysis(pk) == 'skipped'
        assert Report.query.count() == 0


def test_dispatch_with_eager_celery(app, user_id, classifier):
    pk = _pending_report(app, user_id)
    with app.app_context():
        dispatch_analysis(db.session.get(Report, pk))
    assert _status(app, pk)[0] == 'completed'


def test_dispatch_with_thread(app, user_id, classifier):
    app.config['ANALYSIS_EXECUTOR'] = 'thread'
    pk = _pending_report(app, user_id)
    with app.app_context():
        worker = dispatch_analysis(db.session.get(Report, pk))
    assert isinstance(worker, threading.Thread)
    worker.join(timeout=10)
    assert _status(app, pk)[0] == 'completed'


def test_dispatch_failure_marks_report_error(app, user_id, classifier):
    app.config['ANALYSIS_EXECUTOR'] = 'thread'
    pk = _pending_report(app, user_id)
    with app.app_context(), patch('app.services.analysis_service.threading.Thread.start',
                                  side_effect=RuntimeError("can't start new thread")):
        assert dispatch_analysis(db.session.get(Report, pk)) is None

    status, _, _, text = _status(app, pk)
    assert status == 'error'
    assert 'could not be scheduled' in text
    classifier.assert_not_called()


def test_database_error_text_is_not_shown_to_owner(app, user_id, classifier):
    pk = _pending_report(app, user_id)
    db_error = DataError('UPDATE reports SET class_label=%(class_label)s', {'class_label': 'x'},
                         Exception('value too long for type character varying(500)'))
    with app.app_context(), patch('app.services.analysis_service.complete_report', side_effect=db_error):
        assert run_analysis(pk) == 'error'

    status, label, _, text = _status(app, pk)
    assert status == 'error'
    assert label == 'Error analyzing image'
    assert INTERNAL_FAILURE_REASON in text
    assert 'UPDATE' not in text
    assert 'varying' not in text


def test_long_caption_is_stored_whole(app, user_id, classifier):
    caption = 'Diffuse bilateral interstitial opacities. ' * 20
    classifier.return_value = ClassificationResult(caption=caption.strip(), tags=[])
    pk = _pending_report(app, user_id)
    with app.app_context():
        assert run_analysis(pk) == 'completed'

    assert _status(app, pk)[1] == caption.strip()
    assert isinstance(Report.__table__.c.class_label.type, Text)
