from app.schemas.detection import (
    DetectionRequest,
    DetectionResponse,
    DetectionVerdict,
    ErrorResponse,
    FileUpload,
    HealthResponse,
    MediaAsset,
    RawText,
    Reasoning,
    RemoteUrl,
    SupportedTypesResponse,
)

__all__ = [
    "DetectionRequest",
    "DetectionResponse",
    "DetectionVerdict",
    "ErrorResponse",
    "FileUpload",
    "HealthResponse",
    "MediaAsset",
    "RawText",
    "Reasoning",
    "RemoteUrl",
    "SupportedTypesResponse",
]
