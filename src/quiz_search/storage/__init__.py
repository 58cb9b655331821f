"""Storage backends for quiz search."""

from .base import EmbeddingMetadata, QuizEmbedding, QuizStore, VectorStore
from .duckdb import DuckDBStorage

__all__ = [
    "EmbeddingMetadata",
    "QuizEmbedding",
    "QuizStore",
    "VectorStore",
    "DuckDBStorage",
]
