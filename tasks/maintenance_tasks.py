"""
Celery tasks for report maintenance
"""
import logging
from datetime import datetime
from app.extensions import celery, db
from app.services.report_service import expire_stale_reports

logger = logging.getLogger(__name__)


@celery.task(name='tasks.expire_stale_reports')
def expire_stale_reports_task(max_age_seconds=None):
    """
    Move reports that have been pending for too long to error

    Returns:
        dict: Sweep results
    """
    try:
        expired = expire_stale_reports(max_age_seconds)
        return {
            'success': True,
            'expired_count': expired,
            'timestamp': datetime.utcnow().isoformat()
        }
    except Exception as e:
        logger.error(f"Error expiring stale reports: {e}", exc_info=True)
        db.session.rollback()
        return {'success': False, 'error': str(e)}
