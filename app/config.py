"""
Central application configuration.

Every tunable value lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    OPENAI_MODEL=o4-mini uvicorn app.main:app    # one-off model swap
    export MAX_UPLOAD_MB=50                        # staging override

A `.env` file at the project root is loaded automatically.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # OPENAI_API_KEY == openai_api_key
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # OpenAI (detection model)                                            #
    # ------------------------------------------------------------------ #
    openai_api_key: Optional[str] = Field(
        None, description="API key for the Responses API; detection is disabled without it"
    )
    openai_model: str = Field(
        "o3", description="Model identifier used for every detection call"
    )
    openai_max_output_tokens: int = Field(
        800, description="Output-token budget per detection call"
    )
    openai_timeout_sec: float = Field(
        120.0, description="HTTP timeout for a single detection call (seconds)"
    )
    raw_output_truncate_chars: int = Field(
        2_000, description="Max characters kept when an envelope is stringified as a fallback"
    )

    # ------------------------------------------------------------------ #
    # Cloudinary (media storage)                                          #
    # ------------------------------------------------------------------ #
    cloudinary_cloud_name: Optional[str] = Field(None, description="Cloudinary cloud name")
    cloudinary_api_key: Optional[str] = Field(None, description="Cloudinary API key")
    cloudinary_api_secret: Optional[str] = Field(None, description="Cloudinary API secret")
    cloudinary_root_folder: str = Field(
        "vera/detection", description="Root folder; uploads land in <root>/<kind>s"
    )

    # ------------------------------------------------------------------ #
    # Uploads                                                             #
    # ------------------------------------------------------------------ #
    max_upload_mb: int = Field(
        100, description="Max MB for a single uploaded file"
    )
    max_upload_files: int = Field(
        5, description="Max files per multipart request (advertised limit)"
    )
    upload_timeout_sec: int = Field(
        120, description="Transport timeout for a single Cloudinary upload (seconds)"
    )
    upload_chunk_size_bytes: int = Field(
        6_000_000, description="Chunk size for chunked Cloudinary uploads"
    )
    upload_max_attempts: int = Field(
        3, description="Total upload attempts when the failure is a timeout"
    )
    upload_backoff_step_sec: float = Field(
        2.0, description="Linear back-off step: attempt N waits N × step seconds"
    )
    upload_quality: int = Field(
        95, description="Quality applied to image/video uploads and generated URLs"
    )
    upload_read_chunk_kb: int = Field(
        1_024, description="Chunk size (KB) when spooling a multipart part to disk"
    )

    # ------------------------------------------------------------------ #
    # Rate Limiting                                                       #
    # ------------------------------------------------------------------ #
    rate_limit_request_window_sec: int = Field(
        900, description="Fixed window for the per-IP request budget (15 min)"
    )
    rate_limit_max_requests: int = Field(
        100, description="Max requests allowed within the rate-limit window"
    )
    rate_limit_memory_limit: int = Field(
        1000, description="Max keys before in-memory rate-limit map is pruned"
    )
    upstash_redis_host: Optional[str] = Field(
        None, description="Upstash REST URL; in-memory rate limiting when unset"
    )
    upstash_redis_password: Optional[str] = Field(
        None, description="Upstash REST token"
    )

    # ------------------------------------------------------------------ #
    # HTTP surface                                                        #
    # ------------------------------------------------------------------ #
    cors_origins: list[str] = Field(
        ["http://localhost:3000", "https://vera-seven.vercel.app"],
        description="Origins allowed by the CORS middleware",
    )
    enable_diagnostics: bool = Field(
        True, description="Expose /detect/test-connection and /detect/test-upload"
    )

    # ------------------------------------------------------------------ #
    # Derived properties                                                  #
    # ------------------------------------------------------------------ #
    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def upload_read_chunk_bytes(self) -> int:
        return self.upload_read_chunk_kb * 1024

    @property
    def upload_timeout_ms(self) -> int:
        return self.upload_timeout_sec * 1000

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def cloudinary_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )


# Single shared instance, import this everywhere.
settings = Settings()
