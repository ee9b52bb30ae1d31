"""
Error taxonomy for the detection service.

Every error carries the HTTP status it maps to and a stable `error_code`
discriminator. The handlers registered in app/main.py render them as
`{"error": <code>, "message": <text>}`.
"""


class DetectionServiceError(Exception):
    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message())
        self.message = str(self)

    @classmethod
    def default_message(cls) -> str:
        return "Unexpected server error."

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


# --------------------------------------------------------------------------- #
# Input errors (400), raised before any side effect                           #
# --------------------------------------------------------------------------- #


class InputError(DetectionServiceError):
    status_code = 400
    error_code = "invalid_input"


class NoInputError(InputError):
    error_code = "no_input"

    @classmethod
    def default_message(cls) -> str:
        return "Provide a file (file_data) or JSON body with `text` or `image_url`."


class InvalidImageUrlError(InputError):
    error_code = "invalid_image_url"

    @classmethod
    def default_message(cls) -> str:
        return (
            "Please provide a valid image URL with supported format "
            "(jpg, jpeg, png, gif, webp, bmp, svg)."
        )


class UnsupportedFileTypeError(InputError):
    error_code = "unsupported_file_type"

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"File type {mime_type} is not supported for detection.")


class InvalidJsonError(InputError):
    error_code = "invalid_json"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid JSON body."


class InvalidMultipartError(InputError):
    error_code = "invalid_multipart"

    @classmethod
    def default_message(cls) -> str:
        return "Malformed multipart/form-data body."


class TooManyFilesError(InputError):
    error_code = "too_many_files"

    def __init__(self, max_files: int):
        self.max_files = max_files
        super().__init__(f"Too many files uploaded. Maximum {max_files} files allowed.")


class PayloadTooLargeError(InputError):
    error_code = "file_too_large"


class RateLimitedError(DetectionServiceError):
    status_code = 429
    error_code = "rate_limited"

    def __init__(self, message: str = None, retry_after: int = None, headers: dict = None):
        super().__init__(message)
        self.retry_after = retry_after
        self.headers = dict(headers or {})
        if retry_after is not None:
            self.headers["Retry-After"] = str(retry_after)

    @classmethod
    def default_message(cls) -> str:
        return "Too many requests from this IP, please try again later."


# --------------------------------------------------------------------------- #
# Collaborator errors                                                         #
# --------------------------------------------------------------------------- #


class ConfigurationError(DetectionServiceError):
    error_code = "configuration_error"


class NotFoundError(DetectionServiceError):
    error_code = "not_found"


class StoreCallError(DetectionServiceError):
    """A single failed call to the media store. `retryable` is set by the store client."""

    error_code = "store_call_failed"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class UploadFailedError(DetectionServiceError):
    error_code = "upload_failed"


class DeletionFailedError(DetectionServiceError):
    error_code = "deletion_failed"


class DetectionCallFailedError(DetectionServiceError):
    error_code = "detection_call_failed"
