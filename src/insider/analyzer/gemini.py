"""Gemini text generation over the ``google-genai`` SDK.

Maps SDK errors onto the generator failure contract:

    404 / "not found"      → ModelUnavailableError
    429                    → RateLimitError
    other 4xx              → EnrichmentError
    5xx, other API errors  → TransientUpstreamError
    transport failures     → TransientUpstreamError
"""

from __future__ import annotations

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from insider.core.errors import (
    EnrichmentError,
    ModelUnavailableError,
    RateLimitError,
    TransientUpstreamError,
)


class GeminiGenerator:
    """:class:`~insider.analyzer.generation.TextGenerator` backed by Gemini."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: genai.Client | None = None,
        temperature: float = 0.4,
        max_output_tokens: int = 2048,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json",
        )

    async def generate(self, prompt: str, model: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=self._config,
            )
        except genai_errors.ClientError as exc:
            message = str(exc)
            if exc.code == 404 or "not found" in message.lower():
                raise ModelUnavailableError(message, cause=exc).with_context(model=model) from exc
            if exc.code == 429:
                raise RateLimitError(message, cause=exc).with_context(model=model, http_status=429) from exc
            raise EnrichmentError(message, cause=exc).with_context(model=model, http_status=exc.code) from exc
        except genai_errors.APIError as exc:
            raise TransientUpstreamError(str(exc), cause=exc).with_context(
                model=model, http_status=exc.code
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientUpstreamError(f"Gemini request failed: {exc}", cause=exc).with_context(
                model=model
            ) from exc

        text = response.text
        if not text:
            raise EnrichmentError("Empty response from model").with_context(model=model)
        return text
