"""
Reports API Routes
Owner-scoped listing, saving, exporting, downloading and deletion of reports
"""
import io
import logging

from flask import Blueprint, request, jsonify, send_file, current_app
from flask_jwt_extended import jwt_required, current_user

from app.extensions import db
from app.models.report import REPORT_STATUSES
from app.services.report_service import (
    delete_report,
    ensure_report_text,
    export_payload,
    finalize_report,
    get_report_for_owner,
    list_reports,
)
from app.utils.audit import audit_report
from app.utils.decorators import owned_report_required

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


@reports_bp.route('', methods=['GET'])
@jwt_required()
def list_reports_endpoint():
    """
    List the caller's reports, newest first

    Query params:
        status: Filter by status (pending, completed, error)
    """
    status = request.args.get('status')
    if status and status not in REPORT_STATUSES:
        return jsonify({
            'success': False,
            'error': 'Invalid status. Must be: pending, completed, or error'
        }), 400

    try:
        reports = list_reports(current_user.id, status=status)
        logger.info(f"Found {len(reports)} reports for user {current_user.id}")
        return jsonify([report.to_dict() for report in reports])

    except Exception as e:
        logger.error(f"Error listing reports: {e}", exc_info=True)
        error_msg = 'Error fetching reports' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@reports_bp.route('', methods=['POST'])
@jwt_required()
def save_report():
    """
    Save an analysed report

    Body:
        reportId: External report id (required)
    """
    data = request.get_json(silent=True) or {}
    report_id = data.get('reportId')
    if not report_id or not isinstance(report_id, str):
        return jsonify({
            'success': False,
            'error': 'reportId is required'
        }), 400

    try:
        report = get_report_for_owner(report_id, current_user.id)
        if not report:
            return jsonify({
                'success': False,
                'error': 'Report not found'
            }), 404

        if not report.is_terminal:
            return jsonify({
                'success': False,
                'error': 'Report is still being analyzed'
            }), 400

        ensure_report_text(report)
        finalize_report(report)
        audit_report('finalize', report.report_id, user_id=current_user.id)

        return jsonify({
            'success': True,
            'message': 'Report saved successfully',
            'report': report.to_dict()
        })

    except Exception as e:
        logger.error(f"Error saving report {report_id}: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Error saving report' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@reports_bp.route('/<report_id>', methods=['GET'])
@jwt_required()
@owned_report_required
def get_report(report):
    """Get report details by report id"""
    return jsonify(report.to_dict())


@reports_bp.route('/<report_id>/download', methods=['GET'])
@jwt_required()
@owned_report_required
def download_report(report):
    """Download the report text as a plain-text attachment"""
    try:
        if not report.is_terminal:
            return jsonify({
                'success': False,
                'error': f'Report is not ready. Status: {report.status}'
            }), 400

        ensure_report_text(report)
        audit_report('download', report.report_id, user_id=current_user.id)

        content = (
            f"Report ID: {report.report_id}\n"
            f"Date: {report.created_at.strftime('%Y-%m-%d %H:%M')} UTC\n"
            f"Status: {report.status}\n"
            f"\n{report.report_text or ''}\n"
        )
        return send_file(
            io.BytesIO(content.encode('utf-8')),
            mimetype='text/plain',
            as_attachment=True,
            download_name=f"{report.report_id}.txt"
        )

    except Exception as e:
        logger.error(f"Error downloading report {report.report_id}: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Error downloading report' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@reports_bp.route('/<report_id>/export', methods=['POST'])
@jwt_required()
@owned_report_required
def export_report(report):
    """Export the full report payload for client-side rendering"""
    try:
        ensure_report_text(report)
        audit_report('export', report.report_id, user_id=current_user.id)
        return jsonify({
            'success': True,
            'message': 'Report export successful',
            'report': export_payload(report)
        })

    except Exception as e:
        logger.error(f"Export error for report {report.report_id}: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Error exporting report' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@reports_bp.route('/<report_id>', methods=['DELETE'])
@jwt_required()
@owned_report_required
def delete_report_endpoint(report):
    """Delete a report and its image file"""
    report_id = report.report_id
    try:
        delete_report(report)
        audit_report('delete', report_id, user_id=current_user.id)
        return jsonify({'success': True, 'message': 'Report deleted successfully'})

    except Exception as e:
        logger.error(f"Error deleting report {report_id}: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Error deleting report' if not current_app.debug else str(e)
        return jsonify({'success': False, 'error': error_msg}), 500
