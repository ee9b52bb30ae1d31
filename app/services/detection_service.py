"""
Detection request helpers: input resolution (file > image_url > text),
multipart spooling to a temp file, and memory usage logging.
"""

import json
import logging
import os
import tempfile

import psutil
from fastapi import Request
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.config import settings
from app.core.errors import (
    InvalidImageUrlError,
    InvalidJsonError,
    InvalidMultipartError,
    NoInputError,
    PayloadTooLargeError,
    TooManyFilesError,
)
from app.core.file_validator import sanitize_log_message, validate_upload
from app.core.media_classifier import is_valid_image_url
from app.detection.ledger import RequestLedger
from app.schemas.detection import DetectionRequest, FileUpload, RawText, RemoteUrl

logger = logging.getLogger(__name__)

FILE_FIELDS = ("file_data", "file")


def log_memory(stage: str) -> None:
    """Log current process and system memory usage. Only runs when DEBUG logging is active."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    process = psutil.Process(os.getpid())
    mem_info = process.memory_info()
    sys_mem = psutil.virtual_memory()
    logger.debug(
        f"[MEMORY] {stage} | "
        f"PID: {os.getpid()} | "
        f"Process RSS: {mem_info.rss / 1024 / 1024:.2f} MB | "
        f"System Available: {sys_mem.available / 1024 / 1024:.2f} MB / {sys_mem.total / 1024 / 1024:.2f} MB"
    )


async def spool_upload(upload: UploadFile, ledger: RequestLedger) -> str:
    """
    Stream a multipart part into a named temp file registered on `ledger`.

    Aborts with PayloadTooLargeError as soon as the ceiling is crossed; the
    partial file is removed by the ledger.
    """
    suffix = os.path.splitext(upload.filename or "")[1].lower()
    chunk_size = settings.upload_read_chunk_bytes
    written = 0

    with tempfile.NamedTemporaryFile(delete=False, prefix="detect_", suffix=suffix) as tmp_file:
        temp_path = ledger.add_temp_file(tmp_file.name)
        while True:
            chunk = await upload.read(chunk_size)
            if not chunk:
                break
            written += len(chunk)
            if written > settings.max_upload_bytes:
                raise PayloadTooLargeError(
                    f"File size exceeds the maximum limit of {settings.max_upload_mb}MB."
                )
            tmp_file.write(chunk)

    logger.info(sanitize_log_message(f"[UPLOAD] Spooled {upload.filename} ({written} bytes) to {temp_path}"))
    return temp_path


async def read_form(request: Request) -> FormData:
    """
    Parse a multipart or urlencoded body, capped at `max_upload_files` parts.

    Starlette reports parser failures as a bare HTTPException (or as
    MultiPartException outside an app); both become 400 input errors here.
    """
    try:
        return await request.form(max_files=settings.max_upload_files)
    except (StarletteHTTPException, MultiPartException) as e:
        detail = getattr(e, "detail", None) or getattr(e, "message", None) or str(e)
        logger.info(f"[UPLOAD] Rejected form body: {detail}")
        if "Too many files" in detail:
            raise TooManyFilesError(settings.max_upload_files) from e
        raise InvalidMultipartError(detail) from e


def _first_upload(form) -> UploadFile | None:
    for field in FILE_FIELDS:
        value = form.get(field)
        if isinstance(value, UploadFile):
            return value
    return None


async def _read_fields(request: Request) -> tuple[UploadFile | None, dict]:
    content_type = request.headers.get("content-type", "")

    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        form = await read_form(request)
        fields = {
            key: value for key, value in form.items()
            if key in ("image_url", "text") and isinstance(value, str)
        }
        return _first_upload(form), fields

    if "application/json" in content_type:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise InvalidJsonError()
        return None, payload if isinstance(payload, dict) else {}

    return None, {}


async def read_detection_request(request: Request, ledger: RequestLedger) -> DetectionRequest:
    """
    Resolve the inbound request into exactly one DetectionRequest variant.

    First match wins: file part > image_url > text. Every rejection here
    happens before the media store or the model is contacted.
    """
    upload, fields = await _read_fields(request)

    if upload is not None:
        filename = upload.filename or "uploaded_file"
        mime_type = upload.content_type or "application/octet-stream"
        validate_upload(filename, mime_type, getattr(upload, "size", None))
        temp_path = await spool_upload(upload, ledger)
        return FileUpload(local_path=temp_path, mime_type=mime_type, filename=filename)

    image_url = fields.get("image_url")
    if image_url:
        if not is_valid_image_url(image_url):
            raise InvalidImageUrlError()
        return RemoteUrl(url=image_url)

    text = fields.get("text")
    if text:
        return RawText(content=text if isinstance(text, str) else json.dumps(text))

    raise NoInputError()
