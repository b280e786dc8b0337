"""
Report Service
Business logic for the report lifecycle: id allocation, state transitions,
report text rendering and owner-scoped queries
"""
import logging
import random
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Iterable

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models import Report, User
from app.models.report import (
    STATUS_PENDING,
    STATUS_COMPLETED,
    STATUS_ERROR,
    PENDING_CLASS_LABEL,
)
from app.models.user import is_privileged
from app.utils.uploads import remove_upload

logger = logging.getLogger(__name__)

ERROR_CLASS_LABEL = 'Error analyzing image'
ERROR_TAG = 'Error analyzing image'


class ReportIdAllocationError(Exception):
    """No free report id could be allocated within the retry budget"""


REPORT_ID_DIGITS = 3
# Failed candidates allowed at one suffix width before widening
ATTEMPTS_PER_WIDTH = 3


def generate_report_id(today: Optional[datetime] = None, digits: int = REPORT_ID_DIGITS) -> str:
    """
    Generate a candidate report id: RPT<YYYYMMDD>_<NNN>

    The 3-digit suffix is 000-998. Wider suffixes start at 10**(digits-1)
    so they never read as a padded shorter one.
    """
    today = today or datetime.now()
    if digits <= REPORT_ID_DIGITS:
        sequential = random.randint(0, 998)
        digits = REPORT_ID_DIGITS
    else:
        sequential = random.randint(10 ** (digits - 1), 10 ** digits - 1)
    return f"RPT{today.strftime('%Y%m%d')}_{sequential:0{digits}d}"


def create_report(owner: User, image_url: str, max_attempts: Optional[int] = None) -> Report:
    """
    Create and commit a pending report for an upload.

    The unique index on report_id decides collisions: a candidate that loses
    the race raises IntegrityError, the transaction is rolled back and a new
    candidate is tried. Every ATTEMPTS_PER_WIDTH collisions the suffix gains
    a digit, so a busy day moves on to RPT<date>_NNNN and beyond instead of
    exhausting the 3-digit space. Must be called with no other pending
    changes on the session.

    Args:
        owner: User who uploaded the image
        image_url: Relative URL of the stored image
        max_attempts: Retry budget (default REPORT_ID_MAX_ATTEMPTS)

    Returns:
        Report: Committed report in pending state
    """
    if max_attempts is None:
        max_attempts = current_app.config.get('REPORT_ID_MAX_ATTEMPTS', 10)

    owner_id = owner.id
    user_type = owner.user_type

    for attempt in range(1, max_attempts + 1):
        digits = REPORT_ID_DIGITS + (attempt - 1) // ATTEMPTS_PER_WIDTH
        report = Report(
            user_id=owner_id,
            report_id=generate_report_id(digits=digits),
            image=image_url,
            status=STATUS_PENDING,
            class_label=PENDING_CLASS_LABEL,
            confidence=0.0,
            tags=[],
            user_type=user_type,
        )
        db.session.add(report)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info(f"Report id collision on attempt {attempt}/{max_attempts} ({digits}-digit suffix), retrying")
            continue
        return report

    raise ReportIdAllocationError(f"Could not allocate a unique report id after {max_attempts} attempts")


def render_report_text(caption: str, tags: Optional[Iterable[str]], user_type: str) -> str:
    """Render the narrative report text for a role"""
    if is_privileged(user_type):
        tags = list(tags or [])
        conditions = '\n'.join(f"- {tag}" for tag in tags) if tags else 'No specific conditions identified'
        return (
            "Detailed Chest X-Ray Analysis Report\n"
            "\n"
            "Findings:\n"
            f"{caption}\n"
            "\n"
            "Identified Conditions:\n"
            f"{conditions}\n"
            "\n"
            "Note: This is an AI-assisted analysis. Please review and verify all findings."
        )
    return (
        "Chest X-Ray Analysis Report\n"
        "\n"
        "Findings:\n"
        f"{caption}\n"
        "\n"
        "Note: This is an AI-generated analysis and should be reviewed by a medical professional."
    )


def _transition(report_pk: int, values: Dict[str, Any]) -> bool:
    """
    Apply a terminal transition to a pending report.

    The UPDATE only matches rows still pending, so terminal states are never
    overwritten and a deleted report is not recreated.
    """
    values = dict(values, updated_at=datetime.utcnow())
    result = db.session.execute(
        update(Report)
        .where(Report.id == report_pk, Report.status == STATUS_PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    if result.rowcount == 0:
        logger.warning(f"Report {report_pk} is no longer pending (deleted or already terminal); "
                       f"skipping transition to {values['status']}")
        return False
    return True


def complete_report(report_pk: int, caption: str, tags: Optional[Iterable[str]] = None) -> bool:
    """
    pending -> completed

    Tags are kept only for privileged roles.

    Returns:
        bool: True if the report transitioned
    """
    report = db.session.get(Report, report_pk)
    if report is None:
        logger.warning(f"Report {report_pk} was deleted before analysis completed")
        return False
    user_type = report.user_type
    visible_tags = [str(tag) for tag in (tags or [])] if is_privileged(user_type) else []

    return _transition(report_pk, {
        'status': STATUS_COMPLETED,
        'class_label': caption,
        'confidence': current_app.config.get('ANALYSIS_CONFIDENCE', 0.95),
        'tags': visible_tags,
        'report_text': render_report_text(caption, visible_tags, user_type),
    })


def fail_report(report_pk: int, reason: str) -> bool:
    """
    pending -> error

    Returns:
        bool: True if the report transitioned
    """
    report = db.session.get(Report, report_pk)
    if report is None:
        logger.warning(f"Report {report_pk} was deleted before analysis failed: {reason}")
        return False

    return _transition(report_pk, {
        'status': STATUS_ERROR,
        'class_label': ERROR_CLASS_LABEL,
        'confidence': 0.0,
        'tags': [ERROR_TAG] if is_privileged(report.user_type) else [],
        'report_text': f"An error occurred while analyzing the image: {reason}. Please try again.",
    })


def ensure_report_text(report: Report) -> bool:
    """
    Backfill report_text for a completed report that has none.

    Returns:
        bool: True if text was generated and saved
    """
    if report.status != STATUS_COMPLETED or report.report_text:
        return False
    tags = report.tags if is_privileged(report.user_type) else []
    report.report_text = render_report_text(report.class_label, tags, report.user_type)
    db.session.commit()
    logger.info(f"Backfilled report text for {report.report_id}")
    return True


def find_report(identifier: str) -> Optional[Report]:
    """Get report by external report id, falling back to the internal key"""
    report = Report.query.filter_by(report_id=identifier).first()
    if report is None and str(identifier).isdigit():
        report = db.session.get(Report, int(identifier))
    return report


def get_report_for_owner(report_id: str, user_id: int) -> Optional[Report]:
    """Get report by external id, only if owned by user_id"""
    return Report.query.filter_by(report_id=report_id, user_id=user_id).first()


def list_reports(user_id: int, status: Optional[str] = None) -> List[Report]:
    """List a user's reports, newest first"""
    query = Report.query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Report.created_at.desc(), Report.id.desc()).all()


def delete_report(report: Report) -> bool:
    """
    Delete a report, then its image file.

    The row goes first: if the commit fails the report keeps its image.
    A file that cannot be removed afterwards is only logged.
    """
    report_id = report.report_id
    image_url = report.image
    db.session.delete(report)
    db.session.commit()
    logger.info(f"Deleted report: {report_id}")

    if image_url:
        try:
            if remove_upload(image_url):
                logger.info(f"Deleted image file for report {report_id}")
        except OSError as e:
            logger.error(f"Failed to delete image file for report {report_id}: {e}")
    return True


def finalize_report(report: Report) -> Report:
    """Mark a terminal report as saved by its owner (idempotent)"""
    if report.finalized_at is None:
        report.finalized_at = datetime.utcnow()
        db.session.commit()
        logger.info(f"Report {report.report_id} finalized")
    return report


def export_payload(report: Report) -> Dict[str, Any]:
    """Full report payload for client-side rendering"""
    return {
        'id': report.id,
        'reportId': report.report_id,
        'image': report.image,
        'status': report.status,
        'class': report.class_label,
        'confidence': report.confidence,
        'tags': list(report.tags or []),
        'userType': report.user_type,
        'reportText': report.report_text,
        'createdAt': report.created_at.isoformat() if report.created_at else None,
    }


def expire_stale_reports(max_age_seconds: Optional[int] = None) -> int:
    """
    Move reports stuck in pending for longer than max_age_seconds to error.

    Returns:
        int: Number of reports transitioned
    """
    if max_age_seconds is None:
        max_age_seconds = current_app.config.get('ANALYSIS_STALE_AFTER', 900)
    cutoff = datetime.utcnow() - timedelta(seconds=max_age_seconds)

    stale_ids = [
        pk for (pk,) in db.session.query(Report.id)
        .filter(Report.status == STATUS_PENDING, Report.created_at < cutoff)
        .all()
    ]

    expired = 0
    for pk in stale_ids:
        if fail_report(pk, f"Analysis did not finish within {max_age_seconds} seconds"):
            expired += 1

    if expired:
        logger.warning(f"Expired {expired} stale pending report(s)")
    return expired
