from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional, Union

from app.core.media_classifier import MediaKind


# --------------------------------------------------------------------------- #
# Request variants: exactly one is produced per /detect call                  #
# --------------------------------------------------------------------------- #


class FileUpload(BaseModel):
    kind: Literal["file"] = "file"
    local_path: str
    mime_type: str
    filename: str = "uploaded_file"


class RemoteUrl(BaseModel):
    kind: Literal["url"] = "url"
    url: str


class RawText(BaseModel):
    kind: Literal["text"] = "text"
    content: str


DetectionRequest = Union[FileUpload, RemoteUrl, RawText]


# --------------------------------------------------------------------------- #
# Store / verdict models                                                      #
# --------------------------------------------------------------------------- #


class MediaAsset(BaseModel):
    """An uploaded Cloudinary object. `public_id` is needed to delete it again."""
    url: str
    public_id: str
    media_kind: MediaKind
    resource_type: str
    original_filename: Optional[str] = None
    format: Optional[str] = None
    byte_size: Optional[int] = None


class Reasoning(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_analysis: str = "not available"
    deepfake_indicators: str = "not available"
    authentic_indicators: str = "not available"
    overall: str = "not available"


class DetectionVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    media_type: MediaKind
    deepfake_probability: int = Field(ge=0, le=100)
    natural_probability: int = Field(ge=0, le=100)
    reasoning: Reasoning


class DetectionResponse(DetectionVerdict):
    raw_model_output: str
    sdk_raw: Any = None
    provided_source: Optional[str] = None
    cloudinary_url: Optional[str] = None
    cloudinary_public_id: Optional[str] = None
    note: Optional[str] = None


# --------------------------------------------------------------------------- #
# Auxiliary routes                                                            #
# --------------------------------------------------------------------------- #


class ErrorResponse(BaseModel):
    error: str
    message: str


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    message: str
    timestamp: str
    services: Dict[str, str]


class SupportedTypesResponse(BaseModel):
    supported_types: Dict[str, List[str]]
    max_file_size: str
    max_files: int
