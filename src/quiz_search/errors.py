"""
Error taxonomy for the quiz search subsystem.
"""

from __future__ import annotations


class QuizSearchError(Exception):
    """Base class for quiz search and embedding lifecycle errors."""


class EmbeddingProviderError(QuizSearchError):
    """Raised when the embedding provider cannot produce a usable vector."""


class DimensionMismatchError(QuizSearchError):
    """Raised when a vector's length differs from the configured dimension."""

    def __init__(self, *, expected: int, actual: int, quiz_id: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        self.quiz_id = quiz_id
        subject = f"Embedding for quiz {quiz_id!r}" if quiz_id else "Vector"
        super().__init__(f"{subject} has {actual} dimensions, expected {expected}.")


class InvalidVectorError(QuizSearchError):
    """Raised when a vector holds NaN or infinite components."""


class StoreUnavailableError(QuizSearchError):
    """Raised when the vector store or its native index cannot serve a request."""


class QuizNotFoundError(QuizSearchError):
    """Raised when a referenced quiz does not exist."""

    def __init__(self, quiz_id: str) -> None:
        self.quiz_id = quiz_id
        super().__init__(f"Quiz not found: {quiz_id}")


class SearchUnavailableError(QuizSearchError):
    """Raised when no search tier could run."""

    def __init__(self, message: str = "Search temporarily unavailable.") -> None:
        super().__init__(message)
