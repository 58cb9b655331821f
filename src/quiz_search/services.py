"""
Construction of the long-lived service objects shared by the CLI and server.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import SearchSettings, resolve_db_path
from .embeddings import EmbeddingProvider
from .lifecycle import EmbeddingLifecycleManager
from .search import QuizSearchService
from .storage import DuckDBStorage


@dataclass
class QuizSearchServices:
    """Handles built once at process start and passed to request handlers."""

    settings: SearchSettings
    storage: DuckDBStorage
    embedding_provider: EmbeddingProvider
    lifecycle: EmbeddingLifecycleManager
    search: QuizSearchService

    def close(self) -> None:
        self.storage.close()


def build_services(
    *,
    db_path: str | None = None,
    settings: SearchSettings | None = None,
    embedding_provider: EmbeddingProvider | None = None,
) -> QuizSearchServices:
    """Wire storage, provider, lifecycle manager and search service together."""
    resolved_settings = settings or SearchSettings.from_env()
    provider = embedding_provider or EmbeddingProvider(
        dim=resolved_settings.embedding_dim,
        timeout_seconds=resolved_settings.provider_timeout_seconds,
        max_chars=resolved_settings.max_source_chars,
    )
    storage = DuckDBStorage(
        db_path if db_path == ":memory:" else resolve_db_path(db_path),
        embedding_dim=resolved_settings.embedding_dim,
        native_index=resolved_settings.native_index,
    )
    return QuizSearchServices(
        settings=resolved_settings,
        storage=storage,
        embedding_provider=provider,
        lifecycle=EmbeddingLifecycleManager(storage, provider, resolved_settings),
        search=QuizSearchService(storage, storage, provider, resolved_settings),
    )
