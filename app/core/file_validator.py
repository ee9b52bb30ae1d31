"""
Upload validation and log sanitization utilities.

Only the declared MIME type and byte size are checked here; uploaded media is
never decoded by this service.
"""

import re
import logging

from app.config import settings
from app.core.errors import PayloadTooLargeError, UnsupportedFileTypeError
from app.core.media_classifier import is_supported_mime

logger = logging.getLogger(__name__)


def validate_upload(filename: str, mime_type: str, filesize: int = None) -> bool:
    """Check the declared MIME type against the allow-list and, when known, the size ceiling."""
    if not is_supported_mime(mime_type):
        logger.info(f"[VALIDATE] Rejected {filename}: unsupported type {mime_type}")
        raise UnsupportedFileTypeError(mime_type)

    if filesize is not None and filesize > settings.max_upload_bytes:
        raise PayloadTooLargeError(
            f"File size exceeds the maximum limit of {settings.max_upload_mb}MB."
        )

    return True


def sanitize_log_message(message: str) -> str:
    """Strip sensitive file paths from log messages."""
    msg = re.sub(r'\/[^\s]+\/tmp[a-zA-Z0-9_]+', '[TEMP_FILE]', message)
    msg = re.sub(r'\/[^\s]+\/([^\/\s]+)', r'.../\1', msg)
    return msg
