"""
OpenAI Responses API client for deepfake detection.

`InferenceClient` is created once in the FastAPI lifespan and handed to the
detection route through `app.state`. `invoke` is the only network call; it
does not retry (SDK retries are disabled too) and wraps every provider
failure in DetectionCallFailedError.
"""

import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from app.config import Settings, settings as default_settings
from app.core.errors import ConfigurationError, DetectionCallFailedError

logger = logging.getLogger(__name__)


class InferenceClient:
    def __init__(self, api_key: Optional[str], config: Settings = default_settings):
        self._config = config
        self._client: Optional[AsyncOpenAI] = None
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                timeout=config.openai_timeout_sec,
                max_retries=0,
            )

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "InferenceClient":
        client = cls(config.openai_api_key, config=config)
        if client.is_configured:
            logger.info(f"[STARTUP] OpenAI client ready (model={config.openai_model})")
        else:
            logger.warning("[STARTUP] OPENAI_API_KEY not set. Detection calls will fail.")
        return client

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def model(self) -> str:
        return self._config.openai_model

    async def invoke(self, request_input: list[dict], **options) -> Any:
        """Run one detection call and return the raw envelope as plain data."""
        if self._client is None:
            raise ConfigurationError(
                "OpenAI API key not configured. Please set OPENAI_API_KEY environment variable."
            )

        params = {
            "model": self._config.openai_model,
            "input": request_input,
            "max_output_tokens": self._config.openai_max_output_tokens,
            **options,
        }
        try:
            response = await self._client.responses.create(**params)
        except Exception as e:
            logger.error(f"[OPENAI] Detection call failed: {e}")
            raise DetectionCallFailedError(f"OpenAI API call failed: {e}") from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                f"[OPENAI] model={params['model']} "
                f"input_tokens={getattr(usage, 'input_tokens', '?')} "
                f"output_tokens={getattr(usage, 'output_tokens', '?')}"
            )

        if hasattr(response, "model_dump"):
            return response.model_dump(mode="json")
        return response

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
