"""Search tiers and orchestration for quiz search."""

from .keyword import KeywordSearchEngine
from .ranker import SearchResponse, SearchResult, rank_results
from .semantic import SemanticSearchEngine
from .service import QuizSearchService
from .tiers import (
    KEYWORD_TIER,
    MANUAL_TIER,
    VECTOR_TIER,
    Candidate,
    SearchTier,
    TierCandidates,
    TierOutcome,
    TierUnavailable,
)

__all__ = [
    "KeywordSearchEngine",
    "SearchResponse",
    "SearchResult",
    "rank_results",
    "SemanticSearchEngine",
    "QuizSearchService",
    "KEYWORD_TIER",
    "MANUAL_TIER",
    "VECTOR_TIER",
    "Candidate",
    "SearchTier",
    "TierCandidates",
    "TierOutcome",
    "TierUnavailable",
]
