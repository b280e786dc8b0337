from functools import wraps
from flask import jsonify
from flask_jwt_extended import current_user
from app.services.report_service import get_report_for_owner


def owned_report_required(f):
    """
    Resolve the <report_id> URL argument to a report owned by the caller.
    Usage: @jwt_required() then @owned_report_required; the view gets `report`.

    Foreign reports answer 404 like missing ones, so ids of other users
    cannot be guessed at.
    """
    @wraps(f)
    def decorated_function(report_id, *args, **kwargs):
        report = get_report_for_owner(report_id, current_user.id)
        if not report:
            return jsonify({
                'success': False,
                'error': 'Report not found'
            }), 404
        return f(report, *args, **kwargs)
    return decorated_function
