"""
Cloudinary media store.

`CloudinaryStore` is created once in the FastAPI lifespan (see app/main.py)
and handed to routes through `app.state`. Credentials are passed explicitly on
every SDK call, so the process-wide `cloudinary.config()` is never touched.

The Cloudinary SDK is blocking; every call runs in a worker thread.
"""

import asyncio
import logging
import os
from typing import Any, Optional

import cloudinary.api
import cloudinary.uploader
import cloudinary.utils
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError

from app.config import Settings, settings as default_settings
from app.core.errors import (
    ConfigurationError,
    DeletionFailedError,
    NotFoundError,
    PayloadTooLargeError,
    StoreCallError,
    UploadFailedError,
)
from app.core.file_validator import sanitize_log_message
from app.core.media_classifier import StorageRoute, classify_mime, resolve_storage_route
from app.schemas.detection import MediaAsset

logger = logging.getLogger(__name__)

# Gateway / request timeouts reported by Cloudinary as HTTP codes
RETRYABLE_HTTP_CODES = {408, 499, 504}


def is_timeout_failure(exc: BaseException) -> bool:
    """Walk the exception chain looking for a transport timeout."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (TimeoutError, asyncio.TimeoutError, Urllib3TimeoutError)):
            return True
        if getattr(current, "http_code", None) in RETRYABLE_HTTP_CODES:
            return True
        current = current.__cause__ or current.__context__
    return False


class CloudinaryStore:
    """Upload / delete / inspect media on Cloudinary."""

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        config: Settings = default_settings,
    ):
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }
        self._config = config

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "CloudinaryStore":
        store = cls(
            config.cloudinary_cloud_name,
            config.cloudinary_api_key,
            config.cloudinary_api_secret,
            config=config,
        )
        if store.is_configured:
            logger.info(f"[STARTUP] Cloudinary store ready (cloud={config.cloudinary_cloud_name})")
        else:
            logger.warning("[STARTUP] Cloudinary credentials missing. File uploads will fail.")
        return store

    @property
    def is_configured(self) -> bool:
        return all(self._credentials.values())

    def _require_config(self) -> None:
        if not self.is_configured:
            raise ConfigurationError(
                "Cloudinary is not properly configured. Please set CLOUDINARY_CLOUD_NAME, "
                "CLOUDINARY_API_KEY, and CLOUDINARY_API_SECRET environment variables."
            )

    async def _call(self, func, *args, **kwargs) -> Any:
        """Run a blocking SDK call off the event loop, translating failures to StoreCallError."""
        try:
            return await asyncio.to_thread(func, *args, **self._credentials, **kwargs)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            raise StoreCallError(message, retryable=is_timeout_failure(e)) from e

    # ------------------------------------------------------------------ #
    # Upload                                                              #
    # ------------------------------------------------------------------ #

    def _upload_options(self, route: StorageRoute, overrides: dict) -> dict:
        options = {
            "folder": route.folder,
            "resource_type": route.resource_type,
            "timeout": self._config.upload_timeout_sec,
            "chunk_size": self._config.upload_chunk_size_bytes,
        }
        # Raw resources reject transformations
        if route.resource_type != "raw":
            options["quality"] = self._config.upload_quality
            options["fetch_format"] = "auto"
        options.update(overrides)
        return options

    async def upload(self, local_path: str, mime_type: str, **options) -> MediaAsset:
        """
        Upload a local file and return the resulting asset.

        Timeout-class failures are retried with linear back-off
        (1 × step, 2 × step, ...) up to `upload_max_attempts` total attempts;
        every other failure aborts immediately. The local file is left alone.
        """
        self._require_config()

        safe_path = sanitize_log_message(local_path)
        if not os.path.exists(local_path):
            raise NotFoundError(f"File not found: {safe_path}")

        size = os.path.getsize(local_path)
        if size > self._config.max_upload_bytes:
            raise PayloadTooLargeError(
                f"File too large: {size / (1024 * 1024):.2f}MB. "
                f"Maximum allowed size is {self._config.max_upload_mb}MB."
            )

        media_kind = classify_mime(mime_type)
        route = resolve_storage_route(media_kind)
        upload_options = self._upload_options(route, options)
        attempts = max(1, self._config.upload_max_attempts)

        last_error: Optional[StoreCallError] = None
        attempt = 0
        for attempt in range(1, attempts + 1):
            logger.info(
                f"[UPLOAD] Attempt {attempt}/{attempts}: {safe_path} "
                f"({media_kind} → {route.folder}, {size} bytes)"
            )
            try:
                result = await self._call(cloudinary.uploader.upload_large, local_path, **upload_options)
            except StoreCallError as e:
                last_error = e
                logger.error(f"[UPLOAD] Attempt {attempt}/{attempts} failed: {e.message}")
                if not e.retryable or attempt == attempts:
                    break
                wait = attempt * self._config.upload_backoff_step_sec
                logger.info(f"[UPLOAD] Timeout, retrying in {wait:.1f}s")
                await asyncio.sleep(wait)
                continue

            logger.info(f"[UPLOAD] Stored {result.get('public_id')} at {result.get('secure_url')}")
            return MediaAsset(
                url=result["secure_url"],
                public_id=result["public_id"],
                media_kind=media_kind,
                resource_type=result.get("resource_type", route.resource_type),
                original_filename=result.get("original_filename"),
                format=result.get("format"),
                byte_size=result.get("bytes"),
            )

        raise UploadFailedError(
            f"Cloudinary upload failed after {attempt} attempt(s): {last_error.message}"
        )

    # ------------------------------------------------------------------ #
    # Delete / inspect                                                    #
    # ------------------------------------------------------------------ #

    async def remove(self, public_id: str, resource_type: Optional[str] = None) -> dict:
        """Delete a remote object. Failures surface as DeletionFailedError."""
        self._require_config()
        try:
            result = await self._call(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type or "image",
                invalidate=True,
            )
        except StoreCallError as e:
            raise DeletionFailedError(f"Cloudinary deletion failed: {e.message}") from e

        outcome = (result or {}).get("result")
        if outcome not in ("ok", "not found"):
            raise DeletionFailedError(f"Cloudinary deletion failed: unexpected result {outcome!r}")
        if outcome == "not found":
            logger.warning(f"[DELETE] {public_id} was already gone")
        return result

    async def get_info(self, public_id: str, resource_type: str = "image") -> dict:
        self._require_config()
        return await self._call(cloudinary.api.resource, public_id, resource_type=resource_type)

    async def ping(self) -> dict:
        self._require_config()
        return await self._call(cloudinary.api.ping)

    # ------------------------------------------------------------------ #
    # URL construction (no network)                                       #
    # ------------------------------------------------------------------ #

    def build_display_url(self, public_id: str, **transform) -> str:
        self._require_config()
        options = {
            "secure": True,
            "quality": self._config.upload_quality,
            "fetch_format": "auto",
            **transform,
        }
        url, _ = cloudinary.utils.cloudinary_url(
            public_id, cloud_name=self._credentials["cloud_name"], **options
        )
        return url

    def build_thumbnail_url(self, public_id: str, width: int = 300, height: int = 300) -> str:
        return self.build_display_url(public_id, width=width, height=height, crop="fill")
