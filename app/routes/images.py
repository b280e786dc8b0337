"""
Image API Routes
Handles X-ray upload, analysis status polling and serving stored images
"""
import logging
import os

from flask import Blueprint, request, jsonify, current_app, send_from_directory
from flask_jwt_extended import jwt_required, current_user

from app.extensions import db
from app.services.analysis_service import dispatch_analysis
from app.services.report_service import (
    ReportIdAllocationError,
    create_report,
    ensure_report_text,
    find_report,
)
from app.utils.audit import audit_report
from app.utils.uploads import (
    UploadValidationError,
    validate_image_upload,
    save_upload,
    remove_upload,
    resolve_upload_path,
)

logger = logging.getLogger(__name__)

images_bp = Blueprint('images', __name__, url_prefix='/api/images')
uploads_bp = Blueprint('uploads', __name__, url_prefix='/api/uploads')


@images_bp.route('/upload', methods=['POST'])
@jwt_required()
def upload_image():
    """
    Upload an X-ray and start its analysis

    Form:
        image: JPEG or PNG file (required)

    The response is sent as soon as the pending report exists; poll
    /api/images/status/<reportId> for the result.
    """
    file = request.files.get('image')
    try:
        validate_image_upload(file)
    except UploadValidationError as e:
        return jsonify({
            'success': False,
            'error': e.message
        }), e.status_code

    image_url = None
    try:
        _, image_url = save_upload(file)
        report = create_report(current_user, image_url)
    except ReportIdAllocationError as e:
        logger.error(f"Report id allocation failed for user {current_user.id}: {e}")
        _discard_upload(image_url)
        return jsonify({
            'success': False,
            'error': 'Error uploading image'
        }), 500
    except Exception as e:
        logger.error(f"Upload error for user {current_user.id}: {e}", exc_info=True)
        db.session.rollback()
        _discard_upload(image_url)
        error_msg = 'Error uploading image' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500

    report_id = report.report_id
    logger.info(f"Report {report_id} created for user {current_user.id} ({image_url})")
    audit_report('create', report_id, user_id=current_user.id, details={'image': image_url})

    dispatch_analysis(report)

    return jsonify({
        'success': True,
        'message': 'Image uploaded successfully',
        'reportId': report_id,
        'imageUrl': image_url
    }), 201


def _discard_upload(image_url):
    if not image_url:
        return
    try:
        remove_upload(image_url)
    except OSError as e:
        logger.error(f"Failed to remove orphaned upload {image_url}: {e}")


@images_bp.route('/status/<report_id>', methods=['GET'])
@jwt_required()
def analysis_status(report_id):
    """
    Get the analysis state of a report

    Accepts the external report id or the internal key. Safe to call
    repeatedly; a completed report missing its text gets it generated once.
    """
    try:
        report = find_report(report_id)
        if not report:
            return jsonify({
                'success': False,
                'error': 'Report not found'
            }), 404

        if report.user_id != current_user.id:
            logger.warning(f"User {current_user.id} denied access to report {report.report_id}")
            return jsonify({
                'success': False,
                'error': 'You do not have permission to access this report'
            }), 403

        ensure_report_text(report)

        return jsonify(report.to_status_dict())

    except Exception as e:
        logger.error(f"Status check error for report {report_id}: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Error checking analysis status' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@uploads_bp.route('/<filename>', methods=['GET'])
def get_uploaded_image(filename):
    """Serve a stored X-ray image"""
    file_path = resolve_upload_path(filename)
    if not file_path or not os.path.exists(file_path):
        return jsonify({
            'success': False,
            'error': 'Image not found'
        }), 404
    return send_from_directory(os.path.dirname(file_path), os.path.basename(file_path))
