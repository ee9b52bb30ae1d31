"""
Top-level detection pipeline: public entry point for the /detect route.

`detect_media` runs one resolved request through:
  1. Cloudinary upload (file uploads only; the public id goes on the ledger)
  2. OpenAI detection call with the fixed instruction prompt
  3. Text extraction + JSON extraction + normalization

A model answer without JSON is a degraded success: the caller still gets a
verdict-shaped body (0 / 100) plus the raw output for diagnosis.
"""

import logging
import time

from app.detection.ledger import RequestLedger
from app.detection.normalizer import extract_json, normalize, uncertain_verdict
from app.integrations.inference.extraction import extract_text
from app.integrations.inference.prompts import build_content_block, build_request_input
from app.schemas.detection import DetectionRequest, FileUpload, RemoteUrl

logger = logging.getLogger(__name__)

PARSE_FAILURE_NOTE = (
    "Model output could not be parsed as JSON. "
    "Ensure the model returns EXACTLY the specified JSON."
)


async def detect_media(detection_request: DetectionRequest, ledger: RequestLedger, store, detector) -> dict:
    """
    Args:
        detection_request: FileUpload, RemoteUrl or RawText, already validated.
        ledger: request-scoped ledger; uploaded objects are recorded on it and
            it is committed only once a response body has been built.
        store: CloudinaryStore (or anything with the same `upload` coroutine).
        detector: InferenceClient (or anything with the same `invoke` coroutine).
    """
    cloudinary_url = None
    cloudinary_public_id = None

    if isinstance(detection_request, FileUpload):
        asset = await store.upload(detection_request.local_path, detection_request.mime_type)
        ledger.add_remote_object(asset.public_id, asset.resource_type)
        cloudinary_url = asset.url
        cloudinary_public_id = asset.public_id
        media_kind = asset.media_kind
        content = asset.url
        provided_source = f"uploaded file (mimetype={detection_request.mime_type})"
    elif isinstance(detection_request, RemoteUrl):
        media_kind = "image"
        content = detection_request.url
        provided_source = "image_url (body)"
    else:
        media_kind = "text"
        content = detection_request.content
        provided_source = "text (body)"

    logger.info(f"[DETECT] Source: {provided_source}, kind={media_kind}")

    start_time = time.time()
    request_input = build_request_input(media_kind, build_content_block(media_kind, content))
    envelope = await detector.invoke(request_input)
    logger.info(f"[DETECT] Model call finished in {time.time() - start_time:.2f}s")

    model_text = extract_text(envelope)
    parsed = extract_json(model_text)

    diagnostics = {
        "raw_model_output": model_text,
        "sdk_raw": envelope,
        "provided_source": provided_source,
        "cloudinary_url": cloudinary_url,
        "cloudinary_public_id": cloudinary_public_id,
    }

    if parsed is None:
        logger.warning(f"[DETECT] No JSON object in model output ({len(model_text)} chars)")
        body = {
            **uncertain_verdict(media_kind).model_dump(),
            **diagnostics,
            "note": PARSE_FAILURE_NOTE,
        }
    else:
        verdict = normalize(parsed, media_kind)
        logger.info(
            f"[DETECT] Verdict: {verdict.media_type} "
            f"deepfake={verdict.deepfake_probability} natural={verdict.natural_probability}"
        )
        body = {**verdict.model_dump(), **diagnostics}

    ledger.commit()
    return body
