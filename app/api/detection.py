"""
Detection routes: /detect, /detect/health, /detect/supported-types.

POST /detect accepts multipart/form-data with a 'file_data' (or 'file') part,
or JSON / form fields { "image_url": "https://..." } or { "text": "..." }.
Precedence when several are present: file > image_url > text.

Diagnostic routes (/detect/test-connection, /detect/test-upload) live on a
separate router that app/main.py mounts only when diagnostics are enabled.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from app.config import settings
from app.core.dependencies import enforce_rate_limit, get_detector, get_store
from app.core.errors import DetectionServiceError, NoInputError
from app.core.file_validator import validate_upload
from app.core.media_classifier import SUPPORTED_EXTENSIONS
from app.detection.ledger import RequestLedger
from app.detection.pipeline import detect_media
from app.integrations.cloudinary_store import CloudinaryStore
from app.integrations.inference.client import InferenceClient
from app.schemas.detection import (
    DetectionResponse,
    ErrorResponse,
    HealthResponse,
    SupportedTypesResponse,
)
from app.services.detection_service import (
    log_memory,
    read_detection_request,
    read_form,
    spool_upload,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Detection"])
diagnostics_router = APIRouter(tags=["Diagnostics"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post(
    "/detect",
    response_model=DetectionResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    dependencies=[Depends(enforce_rate_limit)],
)
async def detect(
    request: Request,
    store: CloudinaryStore = Depends(get_store),
    detector: InferenceClient = Depends(get_detector),
):
    """
    Detect deepfake / synthetic content in an uploaded file, an image URL, or text.
    """
    log_memory("Pre-Detect")
    start_time = time.time()

    try:
        async with RequestLedger(store) as ledger:
            detection_request = await read_detection_request(request, ledger)
            result = await detect_media(detection_request, ledger, store, detector)
    except DetectionServiceError as e:
        if e.status_code < 500:
            logger.info(f"[ROUTE] /detect rejected: {e.error_code} ({e.message})")
            raise
        # Server-side failures share one public code; the specific one is logged
        logger.error(f"[ROUTE] /detect failed: {e.error_code} ({e.message})")
        raise DetectionServiceError(e.message) from e
    except Exception as e:
        logger.exception(f"[ROUTE] /detect failed: {e}")
        raise DetectionServiceError(str(e) or None) from e

    log_memory("Post-Detect")
    logger.info(
        f"[ROUTE] /detect completed in {time.time() - start_time:.2f}s "
        f"({result['media_type']}, deepfake={result['deepfake_probability']})"
    )
    return result


@router.get("/detect/health", response_model=HealthResponse)
async def detection_health(
    store: CloudinaryStore = Depends(get_store),
    detector: InferenceClient = Depends(get_detector),
):
    openai_configured = detector.is_configured
    cloudinary_configured = store.is_configured
    healthy = openai_configured and cloudinary_configured

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "message": (
            "Detection service is operational"
            if healthy
            else "Detection service configuration incomplete"
        ),
        "timestamp": _now(),
        "services": {
            "openai": "configured" if openai_configured else "missing API key",
            "cloudinary": "configured" if cloudinary_configured else "missing configuration",
        },
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


@router.get("/detect/supported-types", response_model=SupportedTypesResponse)
async def supported_types():
    return {
        "supported_types": SUPPORTED_EXTENSIONS,
        "max_file_size": f"{settings.max_upload_mb}MB",
        "max_files": settings.max_upload_files,
    }


# --------------------------------------------------------------------------- #
# Diagnostics                                                                 #
# --------------------------------------------------------------------------- #


@diagnostics_router.get("/detect/test-connection")
async def test_connection(store: CloudinaryStore = Depends(get_store)):
    """Ping the Cloudinary admin API."""
    try:
        ping_result = await store.ping()
    except Exception as e:
        logger.error(f"[DIAG] Cloudinary connection test failed: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "connection_test_failed",
                "message": str(e),
                "details": {
                    "cloudinary_configured": store.is_configured,
                    "error_type": e.__class__.__name__,
                },
            },
        )

    return {
        "success": True,
        "message": "Cloudinary connection successful",
        "ping_result": ping_result,
        "timestamp": _now(),
    }


@diagnostics_router.post("/detect/test-upload")
async def test_upload(request: Request, store: CloudinaryStore = Depends(get_store)):
    """Upload a file to Cloudinary and delete it again straight away."""
    form = await read_form(request)
    upload = form.get("file_data") or form.get("file")
    if not isinstance(upload, UploadFile):
        raise NoInputError("Please provide a file to test upload")

    mime_type = upload.content_type or "application/octet-stream"
    async with RequestLedger(store) as ledger:
        try:
            validate_upload(upload.filename or "uploaded_file", mime_type)
            temp_path = await spool_upload(upload, ledger)
            asset = await store.upload(temp_path, mime_type)
        except Exception as e:
            logger.error(f"[DIAG] Cloudinary upload test failed: {e}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "upload_test_failed",
                    "message": str(e),
                    "details": {
                        "cloudinary_configured": store.is_configured,
                        "file_provided": True,
                    },
                },
            )

        try:
            await store.remove(asset.public_id, asset.resource_type)
            logger.info(f"[DIAG] Test file deleted: {asset.public_id}")
        except Exception as e:
            logger.warning(f"[DIAG] Failed to delete test file: {e}")

    return {
        "success": True,
        "message": "Cloudinary upload test successful",
        "upload_result": asset.model_dump(),
        "test_completed": True,
    }
