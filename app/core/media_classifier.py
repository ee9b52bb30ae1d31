"""
Media classification: MIME type / URL → media kind → Cloudinary routing.

All functions are pure and total; none of them raise.
"""

import os
from typing import Literal, NamedTuple
from urllib.parse import urlparse

from app.config import settings

MediaKind = Literal["image", "video", "audio", "text", "unknown"]

MEDIA_KINDS: tuple[str, ...] = ("image", "video", "audio", "text")

SUPPORTED_MIME_TYPES = frozenset([
    # Images
    "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "image/bmp", "image/svg+xml",
    # Videos
    "video/mp4", "video/mov", "video/avi", "video/mkv", "video/webm", "video/flv",
    # Audio
    "audio/mpeg", "audio/wav", "audio/ogg", "audio/aac", "audio/flac", "audio/mp4",
    # Documents
    "application/pdf", "text/plain",
])

SUPPORTED_EXTENSIONS: dict[str, list[str]] = {
    "images": ["jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"],
    "videos": ["mp4", "mov", "avi", "mkv", "webm", "flv"],
    "audio": ["mp3", "wav", "ogg", "aac", "flac", "m4a"],
    "documents": ["pdf", "txt"],
}

IMAGE_URL_EXTENSIONS = tuple(f".{ext}" for ext in SUPPORTED_EXTENSIONS["images"])


class StorageRoute(NamedTuple):
    folder: str
    resource_type: str


def classify_mime(mime_type: str) -> MediaKind:
    """Map a MIME type to a media kind by prefix."""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    return "unknown"


def is_supported_mime(mime_type: str) -> bool:
    return (mime_type or "").lower() in SUPPORTED_MIME_TYPES


def is_valid_image_url(url: str) -> bool:
    """True when `url` is an absolute URL whose path ends in an image extension."""
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.path.lower().endswith(IMAGE_URL_EXTENSIONS)


def resolve_storage_route(media_kind: str) -> StorageRoute:
    if media_kind == "video":
        resource_type = "video"
    elif media_kind == "image":
        resource_type = "image"
    else:
        resource_type = "raw"
    return StorageRoute(folder=f"{settings.cloudinary_root_folder}/{media_kind}s", resource_type=resource_type)


def file_extension(filename: str) -> str:
    """Lower-case extension without the dot ('' when there is none)."""
    return os.path.splitext(filename or "")[1].lstrip(".").lower()
