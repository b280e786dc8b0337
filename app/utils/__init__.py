from .audit import audit_report

from .uploads import (
    UploadValidationError,
    validate_image_upload,
    save_upload,
    resolve_upload_path,
    remove_upload,
)

__all__ = [
    # Audit
    "audit_report",
    # Uploads
    "UploadValidationError",
    "validate_image_upload",
    "save_upload",
    "resolve_upload_path",
    "remove_upload",
]
