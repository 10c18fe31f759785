"""Async Gemini API client for judgment calls and embeddings.

Translates SDK failures into the pipeline's error taxonomy at the boundary:
throttling becomes OracleRateLimited (retried by the scheduler), embedding
failures become EmbeddingUnavailable (handled by the evidence selector).
"""

import asyncio
import math
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types.generation_types import BlockedPromptException
from loguru import logger

from factcheck_system.config.settings import settings
from factcheck_system.errors import (
    EmbeddingUnavailable,
    OracleRateLimited,
    is_quota_error,
    retry_after_hint,
)


class GeminiClient:
    """
    Google Gemini API client returning raw JSON text and embedding vectors.

    Generation requests ask for ``application/json`` output; parsing and
    validation happen in the callers, which own their fallbacks.

    Attributes:
        model_name: Default generation model
        embedding_model: Embedding model identifier
        timeout: Default per-call timeout in seconds
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        embedding_model: Optional[str] = None,
        timeout: Optional[float] = None,
        embedding_timeout: Optional[float] = None,
    ):
        """
        Initialize Gemini client with API key from settings.

        Raises:
            ValueError: If API key is not configured
        """
        key = api_key or settings.gemini_api_key
        if not key:
            raise ValueError("GEMINI_API_KEY not configured in environment")

        genai.configure(api_key=key)

        self.model_name = model_name or settings.classification_model
        self.embedding_model = embedding_model or settings.embedding_model
        self.timeout = timeout or settings.oracle_timeout_seconds
        self.embedding_timeout = embedding_timeout or settings.embedding_timeout_seconds
        self.logger = logger.bind(component="GeminiClient")

        self.logger.info(
            f"Gemini client initialized with model {self.model_name}",
            embedding_model=self.embedding_model,
        )

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: float = 0.1,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Generate a JSON response.

        Args:
            prompt: User prompt
            system_instruction: Optional system prompt
            model_name: Override of the default model
            temperature: Sampling temperature. Lower = more deterministic
            timeout: Override of the default timeout

        Returns:
            Raw response text (expected to be JSON)

        Raises:
            OracleRateLimited: Provider throttled the request
            BlockedPromptException: Prompt violates safety policies
            asyncio.TimeoutError: Call exceeded its timeout
        """
        model = genai.GenerativeModel(
            model_name or self.model_name,
            system_instruction=system_instruction,
        )
        try:
            response = await asyncio.wait_for(
                model.generate_content_async(
                    prompt,
                    generation_config=genai.types.GenerationConfig(
                        temperature=temperature,
                        response_mime_type="application/json",
                    ),
                ),
                timeout=timeout or self.timeout,
            )
        except google_exceptions.TooManyRequests as e:
            # ResourceExhausted (quota) is a TooManyRequests subclass
            raise OracleRateLimited(str(e), retry_after=retry_after_hint(e)) from e
        except BlockedPromptException as e:
            self.logger.error(f"Prompt blocked by safety filters: {e}")
            raise

        return response.text

    async def embed(self, text: str) -> list[float]:
        """
        Embed one text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, empty for blank input or an unexpected response shape

        Raises:
            EmbeddingUnavailable: The embedding call failed
        """
        if not text or not text.strip():
            return []

        try:
            result = await asyncio.wait_for(
                genai.embed_content_async(model=self.embedding_model, content=text),
                timeout=self.embedding_timeout,
            )
        except google_exceptions.TooManyRequests as e:
            raise EmbeddingUnavailable(str(e), quota_exhausted=True) from e
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailable(
                f"Embedding timed out after {self.embedding_timeout}s"
            ) from e
        except Exception as e:
            raise EmbeddingUnavailable(str(e), quota_exhausted=is_quota_error(e)) from e

        values = result.get("embedding") if isinstance(result, dict) else None
        if not isinstance(values, list):
            self.logger.warning("Invalid embedding response", response_type=type(result).__name__)
            return []
        return values

    @staticmethod
    def estimate_tokens(text: str) -> int:
        """
        Estimate token count for budgeting (roughly 4 characters per token).

        Args:
            text: Text to estimate

        Returns:
            Estimated token count
        """
        return math.ceil(len(text) / 4)


_client: Optional[GeminiClient] = None


def get_client() -> GeminiClient:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        _client = GeminiClient()
    return _client
