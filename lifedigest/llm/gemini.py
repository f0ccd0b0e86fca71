"""
Gemini client for extractor prompts.

One GeminiClient is created per extractor in initialize() and reused for every
run. Calls go through Vertex AI's async API, so several extractors can wait on
the model concurrently inside one event loop.

Retries up to LLM_MAX_RETRIES times with exponential backoff. Vertex AI
exceptions (DeadlineExceeded, ServiceUnavailable, ResourceExhausted,
InternalServerError) are converted to TimeoutError / ConnectionError / OSError
so the retry policy does not depend on google-api-core types.
"""

from __future__ import annotations

from typing import Any, Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from lifedigest.config import GEMINI_LOCATION, GEMINI_MODEL, LLM_MAX_RETRIES
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when the Gemini client cannot be initialized."""


class TextGenerator(Protocol):
    """Anything that turns a prompt into text; tests inject fakes."""

    async def generate(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        max_output_tokens: int = 1024,
        temperature: float = 0.2,
        json_output: bool = False,
        model: str | None = None,
    ) -> str: ...


class GeminiClient:
    def __init__(
        self,
        project: str | None,
        location: str | None = None,
        model: str | None = None,
    ):
        """
        Side Effects:
            - Calls vertexai.init() (process-global SDK configuration)

        Raises:
            GeminiInitializationError: No project configured or SDK init failed
        """
        if not project:
            raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

        self.project = project
        self.location = location or GEMINI_LOCATION
        self.default_model = model or GEMINI_MODEL
        self._models: dict[tuple[str, str | None], Any] = {}

        try:
            import vertexai

            vertexai.init(project=self.project, location=self.location)
        except Exception as e:
            logger.error("Failed to initialize Vertex AI: %s", e)
            raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

        logger.info(
            "Initialized Gemini client (Vertex AI): project=%s, location=%s, model=%s",
            self.project,
            self.location,
            self.default_model,
        )

    def _get_model(self, model_name: str, system_instruction: str | None) -> Any:
        # System instructions are per-model-instance in the Gemini API
        key = (model_name, system_instruction)
        if key not in self._models:
            from vertexai.generative_models import GenerativeModel

            if system_instruction is None:
                self._models[key] = GenerativeModel(model_name)
            else:
                self._models[key] = GenerativeModel(
                    model_name, system_instruction=system_instruction
                )
        return self._models[key]

    @retry(
        stop=stop_after_attempt(LLM_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
        reraise=True,
    )
    async def generate(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        max_output_tokens: int = 1024,
        temperature: float = 0.2,
        json_output: bool = False,
        model: str | None = None,
    ) -> str:
        """Call Gemini with retry and Vertex AI exception conversion.

        Raises:
            TimeoutError: On deadline exceeded (retryable).
            ConnectionError: On service unavailable or internal error (retryable).
            OSError: On resource exhausted / rate limited (retryable).
            Exception: On other errors (not retried, caller handles).
        """
        from google.api_core.exceptions import (
            DeadlineExceeded,
            InternalServerError,
            ResourceExhausted,
            ServiceUnavailable,
        )

        generative_model = self._get_model(model or self.default_model, system_instruction)

        generation_config: dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        }
        if json_output:
            generation_config["response_mime_type"] = "application/json"

        try:
            response = await generative_model.generate_content_async(
                prompt, generation_config=generation_config
            )
            counter("llm.calls")
            return response.text
        except DeadlineExceeded as e:
            counter("llm.timeout")
            logger.warning("LLM call timed out: %s", e)
            raise TimeoutError(f"LLM call timed out: {e}") from e
        except ServiceUnavailable as e:
            counter("llm.service_unavailable")
            logger.warning("LLM service unavailable, will retry: %s", e)
            raise ConnectionError(f"LLM service unavailable: {e}") from e
        except ResourceExhausted as e:
            counter("llm.rate_limited")
            logger.warning("LLM rate limited (429), will retry: %s", e)
            raise OSError(f"LLM rate limited: {e}") from e
        except InternalServerError as e:
            counter("llm.internal_error")
            logger.warning("LLM internal error (500), will retry: %s", e)
            raise ConnectionError(f"LLM internal error: {e}") from e
        except Exception as e:
            logger.error("LLM call failed: %s", e)
            raise
