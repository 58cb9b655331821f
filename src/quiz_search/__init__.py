"""
QuizSearch - semantic quiz search with tiered fallbacks.

This package keeps one embedding per quiz in sync with quiz saves and
deletes, and answers free-text and "similar quiz" queries through a
native vector index, a manual cosine scan, or a keyword match, in that
order of preference.

Example usage:
    >>> from quiz_search import build_services
    >>> services = build_services(db_path=":memory:")
    >>> response = await services.search.search("algebra basics", limit=5)
    >>> response.tier, response.quiz_ids
"""

from .config import SearchSettings, resolve_db_path
from .embeddings import EmbeddingProvider
from .errors import (
    DimensionMismatchError,
    EmbeddingProviderError,
    InvalidVectorError,
    QuizNotFoundError,
    QuizSearchError,
    SearchUnavailableError,
    StoreUnavailableError,
)
from .lifecycle import (
    BatchItemResult,
    EmbeddingLifecycleManager,
    build_metadata,
    build_source_text,
)
from .models import Quiz, QuizOption, QuizQuestion
from .search import QuizSearchService, SearchResponse, SearchResult
from .services import QuizSearchServices, build_services
from .storage import DuckDBStorage

__all__ = [
    # Configuration
    "SearchSettings",
    "resolve_db_path",
    # Errors
    "QuizSearchError",
    "EmbeddingProviderError",
    "DimensionMismatchError",
    "InvalidVectorError",
    "StoreUnavailableError",
    "QuizNotFoundError",
    "SearchUnavailableError",
    # Models
    "Quiz",
    "QuizOption",
    "QuizQuestion",
    # Lifecycle
    "EmbeddingProvider",
    "EmbeddingLifecycleManager",
    "BatchItemResult",
    "build_source_text",
    "build_metadata",
    # Search
    "QuizSearchService",
    "SearchResponse",
    "SearchResult",
    # Wiring
    "DuckDBStorage",
    "QuizSearchServices",
    "build_services",
]
