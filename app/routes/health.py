"""
Liveness and readiness probes
"""
from datetime import datetime

from flask import Blueprint, jsonify, current_app

from app.extensions import db
from app.models import Report
from app.models.report import STATUS_PENDING

health_bp = Blueprint('health', __name__, url_prefix='/health')

SERVICE_NAME = 'xray-report-backend'


def _now():
    return datetime.utcnow().isoformat()


@health_bp.route('', methods=['GET'])
@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Process is up; touches nothing else"""
    return jsonify({'status': 'alive', 'service': SERVICE_NAME, 'timestamp': _now()}), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Database reachable, plus the size of the analysis backlog.
    Answers 503 while the database is unavailable.
    """
    checks = {
        'executor': current_app.config.get('ANALYSIS_EXECUTOR'),
        'classifier': bool(current_app.config.get('CLASSIFIER_API_URL')),
    }
    try:
        checks['pending_reports'] = Report.query.filter_by(status=STATUS_PENDING).count()
        checks['database'] = 'connected'
        ready = True
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Readiness check failed: {e}")
        checks['database'] = 'unavailable'
        ready = False

    return jsonify({
        'status': 'ready' if ready else 'not_ready',
        'checks': checks,
        'timestamp': _now(),
    }), 200 if ready else 503
