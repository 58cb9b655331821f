"""
Storage interfaces and data models for quiz embedding persistence.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from ..models import Quiz, QuizStatus


@dataclass(frozen=True)
class EmbeddingMetadata:
    """Denormalized quiz fields stored next to an embedding."""

    category: str | None = None
    tags: tuple[str, ...] = ()
    difficulty: str | None = None
    language: str | None = None
    question_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "tags": list(self.tags),
            "difficulty": self.difficulty,
            "language": self.language,
            "question_count": self.question_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddingMetadata":
        return cls(
            category=data.get("category"),
            tags=tuple(data.get("tags") or ()),
            difficulty=data.get("difficulty"),
            language=data.get("language"),
            question_count=int(data.get("question_count") or 0),
        )


@dataclass(frozen=True)
class QuizEmbedding:
    """The single embedding record kept for a quiz."""

    quiz_id: str
    vector: list[float]
    source_text: str
    metadata: EmbeddingMetadata = field(default_factory=EmbeddingMetadata)
    last_updated: datetime | None = None


class VectorStore(Protocol):
    """Protocol for embedding persistence and vector queries."""

    def initialize(self) -> None:
        """Initialize required tables/indexes."""

    def upsert_embedding(self, record: QuizEmbedding) -> None:
        """Insert or replace the embedding for ``record.quiz_id``."""

    def delete_embedding(self, quiz_id: str) -> bool:
        """Delete the embedding for a quiz. Return True if a record was removed."""

    def get_embedding(self, quiz_id: str) -> QuizEmbedding | None:
        """Fetch the embedding for a quiz if present."""

    def count_embeddings(self) -> int:
        """Count stored embeddings."""

    def iter_embedding_vectors(
        self, *, batch_size: int = 512
    ) -> Iterator[list[tuple[str, list[float]]]]:
        """Yield pages of (quiz_id, vector) pairs covering every stored embedding."""

    def search_native(
        self,
        query_vector: list[float],
        *,
        limit: int,
        num_candidates: int,
    ) -> list[tuple[str, float]]:
        """Nearest-neighbour query against the native index, best match first."""

    def has_native_index(self) -> bool:
        """Return True if the native vector index is available."""


class QuizStore(Protocol):
    """Protocol for the quiz documents this subsystem reads."""

    def save_quiz(self, quiz: Quiz) -> None:
        """Insert or replace a quiz document."""

    def delete_quiz(self, quiz_id: str) -> bool:
        """Delete a quiz. Return True if it existed."""

    def get_quiz_by_id(self, quiz_id: str) -> Quiz | None:
        """Fetch a quiz by id."""

    def find_quizzes_by_ids(
        self,
        quiz_ids: list[str],
        *,
        status: QuizStatus | None = "published",
    ) -> list[Quiz]:
        """Fetch quizzes by id, optionally restricted to a status."""

    def search_quizzes_by_keyword(
        self,
        query: str,
        *,
        limit: int = 10,
        status: QuizStatus | None = "published",
    ) -> list[Quiz]:
        """Case-insensitive substring match on title, description, category and tags."""

    def list_quizzes(self, *, status: QuizStatus | None = None) -> list[Quiz]:
        """List stored quizzes."""

    def list_categories(self) -> list[str]:
        """Distinct non-empty categories of published quizzes."""

    def popular_tags(self, *, limit: int = 20) -> list[tuple[str, int]]:
        """Most used tags of published quizzes with their counts."""
