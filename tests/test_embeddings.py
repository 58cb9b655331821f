"""Tests for the embedding provider."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Any

import pytest

from quiz_search.embeddings import EmbeddingProvider
from quiz_search.errors import EmbeddingProviderError


# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------


@dataclass
class _FakeEmbedding:
    values: list[Any]


@dataclass
class _FakeEmbedResult:
    embeddings: list[_FakeEmbedding]


class _FakeModels:
    """Records calls and returns a configurable embedding."""

    def __init__(self, values: list[Any] | None = None, delay: float = 0.0) -> None:
        self.calls: list[dict[str, Any]] = []
        self.values = values
        self.delay = delay
        self.error: Exception | None = None

    async def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> _FakeEmbedResult:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        values = self.values
        if values is None:
            values = [0.5] * config.get("output_dimensionality", 768)
        return _FakeEmbedResult(embeddings=[_FakeEmbedding(values=values)])


class _FakeAio:
    def __init__(self, models: _FakeModels) -> None:
        self.models = models


class _FakeClient:
    def __init__(self, values: list[Any] | None = None, delay: float = 0.0) -> None:
        self.aio = _FakeAio(_FakeModels(values, delay))

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.aio.models.calls


# ---------------------------------------------------------------------------
# Unit tests (mock-based, no API key needed)
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_document_uses_document_task_type() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    vector = await provider.embed_document("Intro to Algebra")

    assert vector == [0.5, 0.5, 0.5, 0.5]
    call = client.calls[0]
    assert call["config"]["task_type"] == "RETRIEVAL_DOCUMENT"
    assert call["config"]["output_dimensionality"] == 4
    assert call["contents"] == ["Intro to Algebra"]


@pytest.mark.asyncio
async def test_embed_query_uses_query_task_type() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    await provider.embed_query("solving equations")

    assert client.calls[0]["config"]["task_type"] == "RETRIEVAL_QUERY"


@pytest.mark.asyncio
async def test_embed_truncates_long_text() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4, max_chars=10)

    await provider.embed_document("x" * 50)

    assert client.calls[0]["contents"] == ["x" * 10]


@pytest.mark.asyncio
async def test_embed_rejects_empty_text() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    with pytest.raises(EmbeddingProviderError, match="empty"):
        await provider.embed_document("   ")
    assert client.calls == []


@pytest.mark.asyncio
async def test_embed_rejects_wrong_dimension() -> None:
    provider = EmbeddingProvider(client=_FakeClient(values=[1.0, 2.0]), dim=4)

    with pytest.raises(EmbeddingProviderError, match="2 dimensions, expected 4"):
        await provider.embed_query("algebra")


@pytest.mark.asyncio
async def test_embed_rejects_empty_vector() -> None:
    provider = EmbeddingProvider(client=_FakeClient(values=[]), dim=4)

    with pytest.raises(EmbeddingProviderError, match="empty vector"):
        await provider.embed_query("algebra")


@pytest.mark.asyncio
async def test_embed_rejects_non_finite_values() -> None:
    values = [1.0, float("nan"), 0.0, 0.0]
    provider = EmbeddingProvider(client=_FakeClient(values=values), dim=4)

    with pytest.raises(EmbeddingProviderError, match="non-finite"):
        await provider.embed_query("algebra")


@pytest.mark.asyncio
async def test_embed_wraps_client_errors() -> None:
    client = _FakeClient()
    client.aio.models.error = RuntimeError("429 rate limited")
    provider = EmbeddingProvider(client=client, dim=4)

    with pytest.raises(EmbeddingProviderError, match="rate limited"):
        await provider.embed_query("algebra")


@pytest.mark.asyncio
async def test_embed_times_out() -> None:
    provider = EmbeddingProvider(
        client=_FakeClient(delay=1.0), dim=4, timeout_seconds=0.01
    )

    with pytest.raises(EmbeddingProviderError, match="timed out"):
        await provider.embed_query("algebra")


def test_missing_api_key_raises(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
        EmbeddingProvider()


def test_model_and_dim_from_env(monkeypatch) -> None:
    monkeypatch.setenv("QUIZ_SEARCH_EMBEDDING_MODEL", "custom-embedder")
    monkeypatch.setenv("QUIZ_SEARCH_EMBEDDING_DIM", "16")

    provider = EmbeddingProvider(client=_FakeClient())

    assert provider.model == "custom-embedder"
    assert provider.dim == 16


# ---------------------------------------------------------------------------
# Integration test (requires GOOGLE_API_KEY)
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.skipif(
    not os.getenv("GOOGLE_API_KEY"),
    reason="GOOGLE_API_KEY not set",
)
async def test_real_embedding_dimension() -> None:
    provider = EmbeddingProvider(dim=768)

    vector = await provider.embed_query("Intro to Algebra")

    assert len(vector) == 768
