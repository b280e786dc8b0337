"""
Upload storage helpers: validation, saving and removing X-ray images
"""
import os
import uuid
import logging
from typing import Optional, Tuple

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
    'image/png': '.png',
}


class UploadValidationError(Exception):
    """Uploaded file rejected; carries the HTTP status to answer with"""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_upload_folder() -> str:
    folder = os.path.abspath(current_app.config.get('UPLOAD_FOLDER', 'uploads'))
    os.makedirs(folder, exist_ok=True, mode=0o755)
    return folder


def _stream_size(file: FileStorage) -> int:
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def validate_image_upload(file: Optional[FileStorage]) -> None:
    """
    Check an uploaded file against the allow-list, the size cap and Pillow.

    Raises:
        UploadValidationError: when the file must be rejected
    """
    if file is None or not file.filename:
        raise UploadValidationError('No image file provided')

    allowed = current_app.config.get('ALLOWED_IMAGE_TYPES', tuple(MIME_EXTENSIONS))
    if file.mimetype not in allowed:
        raise UploadValidationError('Invalid file type. Only JPEG, PNG and JPG are allowed.')

    size = _stream_size(file)
    if size == 0:
        raise UploadValidationError('Uploaded file is empty')
    max_size = current_app.config.get('MAX_IMAGE_SIZE', 5 * 1024 * 1024)
    if size > max_size:
        raise UploadValidationError(
            f'File too large. Maximum size is {max_size // (1024 * 1024)}MB.', status_code=413
        )

    try:
        with Image.open(file.stream) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.info(f"Rejected upload {file.filename!r}: not a readable image ({e})")
        raise UploadValidationError('File is not a valid image')
    finally:
        file.stream.seek(0)


def save_upload(file: FileStorage) -> Tuple[str, str]:
    """
    Store an upload under a server-generated unique name.

    Returns:
        tuple: (absolute file path, relative image URL)
    """
    ext = os.path.splitext(secure_filename(file.filename or ''))[1].lower()
    if ext not in ('.jpg', '.jpeg', '.png'):
        ext = MIME_EXTENSIONS.get(file.mimetype, '.jpg')
    filename = f"{uuid.uuid4().hex}{ext}"

    file_path = os.path.join(get_upload_folder(), filename)
    file.save(file_path)

    prefix = current_app.config.get('UPLOAD_URL_PREFIX', '/uploads').rstrip('/')
    return file_path, f"{prefix}/{filename}"


def resolve_upload_path(image_url: str) -> Optional[str]:
    """
    Map a stored image URL back to a file inside the upload folder.
    Returns None for anything that would escape it.
    """
    if not image_url:
        return None
    filename = os.path.basename(image_url.rstrip('/'))
    if not filename or filename != secure_filename(filename):
        logger.warning(f"Invalid image reference: {image_url}")
        return None

    folder = os.path.abspath(current_app.config.get('UPLOAD_FOLDER', 'uploads'))
    file_path = os.path.abspath(os.path.join(folder, filename))
    if not file_path.startswith(folder + os.sep):
        logger.warning(f"Invalid file path attempt: {image_url}")
        return None
    return file_path


def remove_upload(image_url: str) -> bool:
    """
    Remove a stored image. Returns False if there was nothing to remove.

    Raises:
        OSError: if the file exists but cannot be removed
    """
    file_path = resolve_upload_path(image_url)
    if not file_path or not os.path.exists(file_path):
        return False
    os.remove(file_path)
    return True
