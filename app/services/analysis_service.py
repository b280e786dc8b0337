"""
Analysis dispatcher
Runs the external classifier for a pending report and records the outcome.
Nothing raised while analysing escapes: every failure becomes the report's
error state.
"""
import logging
import threading

from flask import current_app

from app.extensions import db
from app.models import Report
from app.models.report import STATUS_PENDING
from app.services.classifier_client import ClassifierError, classify_image
from app.services.report_service import complete_report, fail_report
from app.utils.uploads import resolve_upload_path

logger = logging.getLogger(__name__)

# Shown to the owner when the failure is ours rather than the classifier's
INTERNAL_FAILURE_REASON = 'Internal error while processing the analysis'


def run_analysis(report_pk: int) -> str:
    """
    Classify the image of a pending report and move it to a terminal state.

    Args:
        report_pk: Internal report key

    Returns:
        str: Resulting status ('completed', 'error'), or 'skipped' when the
        report is gone or no longer pending
    """
    try:
        report = db.session.get(Report, report_pk)
        if report is None or report.status != STATUS_PENDING:
            logger.info(f"Skipping analysis for report {report_pk}: not pending")
            return 'skipped'

        report_id = report.report_id
        user_type = report.user_type
        image_path = resolve_upload_path(report.image)
        # Release the connection while the classifier runs
        db.session.close()

        logger.info(f"Starting image analysis for report {report_id} (user type: {user_type})")
        if not image_path:
            raise ClassifierError('Stored image reference is invalid')

        result = classify_image(image_path, user_type)
        if complete_report(report_pk, result.caption, result.tags):
            logger.info(f"Analysis completed for report {report_id}")
            return 'completed'
        return 'skipped'

    except ClassifierError as e:
        logger.warning(f"Analysis failed for report {report_pk}: {e}")
        return _record_failure(report_pk, str(e))

    except Exception as e:
        # Database and programming errors stay in the log, not in the report text
        logger.error(f"Error analyzing image for report {report_pk}: {e}", exc_info=True)
        return _record_failure(report_pk, INTERNAL_FAILURE_REASON)


def _record_failure(report_pk: int, reason: str) -> str:
    try:
        db.session.rollback()
        if fail_report(report_pk, reason):
            return 'error'
        return 'skipped'
    except Exception as e:
        logger.error(f"Could not record analysis failure for report {report_pk}: {e}", exc_info=True)
        db.session.rollback()
        return 'error'


def _run_in_thread(app, report_pk: int) -> None:
    with app.app_context():
        run_analysis(report_pk)


def dispatch_analysis(report: Report):
    """
    Start analysis of a freshly created report without waiting for it.

    Uses Celery by default; ANALYSIS_EXECUTOR='thread' runs it on a daemon
    thread instead. If the work cannot be scheduled at all the report is
    moved to error so it never stays pending.

    Returns:
        The Celery AsyncResult or the started Thread, or None if scheduling failed
    """
    report_pk = report.id
    executor = current_app.config.get('ANALYSIS_EXECUTOR', 'celery')

    try:
        if executor == 'thread':
            app = current_app._get_current_object()
            worker = threading.Thread(
                target=_run_in_thread,
                args=(app, report_pk),
                name=f"analysis-{report_pk}",
                daemon=True,
            )
            worker.start()
            logger.info(f"Analysis started in thread for report {report_pk}")
            return worker

        from tasks.analysis_tasks import analyze_image_task
        task = analyze_image_task.delay(report_pk)
        logger.info(f"Analysis queued: Report ID {report_pk}, Task ID {task.id}")
        return task

    except Exception as e:
        logger.error(f"Failed to dispatch analysis for report {report_pk}: {e}", exc_info=True)
        _record_failure(report_pk, 'Analysis could not be scheduled')
        return None
