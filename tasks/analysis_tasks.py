"""
Celery tasks for X-ray analysis
"""
import logging
from app.extensions import celery
from app.services.analysis_service import run_analysis

logger = logging.getLogger(__name__)


@celery.task(bind=True, name='tasks.analyze_image')
def analyze_image_task(self, report_pk):
    """
    Classify the image of a pending report (async via Celery)

    Args:
        report_pk: Internal report key

    Returns:
        dict: Analysis outcome
    """
    if not self.request.is_eager:
        self.update_state(state='PROCESSING', meta={'step': 'Calling classifier'})
    status = run_analysis(report_pk)
    return {
        'success': status == 'completed',
        'report_id': report_pk,
        'status': status
    }
