"""
Embedding provider for quiz and query vectors.

Wraps the Google GenAI embedding API with a per-call timeout and validates
that every returned vector has the configured dimensionality.
"""

from __future__ import annotations

import asyncio
import math
import os
from typing import Any

from google.genai import Client as GenAIClient

from .errors import EmbeddingProviderError


_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_TIMEOUT = 15.0
_DEFAULT_MAX_CHARS = 10_000


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        timeout_seconds: float | None = None,
        max_chars: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("QUIZ_SEARCH_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("QUIZ_SEARCH_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.timeout_seconds = timeout_seconds or _DEFAULT_TIMEOUT
        self.max_chars = max_chars or _DEFAULT_MAX_CHARS

        if client is not None:
            self._client = client
        else:
            resolved_key = (
                api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
            )
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(api_key=resolved_key)

    async def embed_document(self, text: str) -> list[float]:
        """Embed quiz source text for storage."""
        return await self._embed(text, task_type="RETRIEVAL_DOCUMENT")

    async def embed_query(self, query: str) -> list[float]:
        """Embed a free-text search query."""
        return await self._embed(query, task_type="RETRIEVAL_QUERY")

    async def _embed(self, text: str, *, task_type: str) -> list[float]:
        clean_text = (text or "").strip()[: self.max_chars]
        if not clean_text:
            raise EmbeddingProviderError("Text to embed cannot be empty.")

        try:
            result = await asyncio.wait_for(
                self._client.aio.models.embed_content(
                    model=self.model,
                    contents=[clean_text],
                    config={
                        "task_type": task_type,
                        "output_dimensionality": self.dim,
                    },
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise EmbeddingProviderError(
                f"Embedding request timed out after {self.timeout_seconds}s."
            ) from None
        except Exception as exc:
            raise EmbeddingProviderError(f"Failed to generate embedding: {exc}") from exc

        return self._extract_vector(result)

    def _extract_vector(self, result: Any) -> list[float]:
        embeddings = getattr(result, "embeddings", None)
        if not embeddings:
            raise EmbeddingProviderError("Embedding response contained no embeddings.")
        values = getattr(embeddings[0], "values", None)
        if not values:
            raise EmbeddingProviderError("Embedding response contained an empty vector.")
        try:
            vector = [float(value) for value in values]
        except (TypeError, ValueError) as exc:
            raise EmbeddingProviderError(f"Malformed embedding values: {exc}") from exc
        if len(vector) != self.dim:
            raise EmbeddingProviderError(
                f"Embedding has {len(vector)} dimensions, expected {self.dim}."
            )
        if not all(math.isfinite(value) for value in vector):
            raise EmbeddingProviderError("Embedding contains non-finite values.")
        return vector
