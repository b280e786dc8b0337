"""
Report audit trail
"""
import logging

from flask import has_request_context, request

from app.extensions import db
from app.models.audit_log import AuditLog, REPORT_ACTIONS

logger = logging.getLogger(__name__)


def audit_report(action, report_id, user_id=None, details=None):
    """
    Record an action on a report in its own commit.

    A failed write is logged and rolled back; it never fails the request
    that triggered it.
    """
    if action not in REPORT_ACTIONS:
        raise ValueError(f"Unknown report action: {action}")

    remote_addr = request.remote_addr if has_request_context() else None
    try:
        db.session.add(AuditLog(
            report_id=report_id,
            action=action,
            user_id=user_id,
            remote_addr=remote_addr,
            details=details or None,
        ))
        db.session.commit()
    except Exception as e:
        logger.warning(f"Could not audit {action} of report {report_id}: {e}")
        db.session.rollback()
