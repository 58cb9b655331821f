"""
Ranking helpers for turning tier candidates into search results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..models import Quiz
from .tiers import Candidate, SearchTier


@dataclass(frozen=True)
class SearchResult:
    """A published quiz returned by a search."""

    quiz_id: str
    similarity: float
    quiz: Quiz
    synthetic: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "quiz_id": self.quiz_id,
            "similarity": self.similarity,
            "synthetic": self.synthetic,
            "quiz": self.quiz.model_dump(),
        }


@dataclass(frozen=True)
class SearchResponse:
    """Ranked results plus the tier that produced them."""

    tier: SearchTier
    results: list[SearchResult] = field(default_factory=list)

    @property
    def quiz_ids(self) -> list[str]:
        return [result.quiz_id for result in self.results]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "total": len(self.results),
            "results": [result.to_dict() for result in self.results],
        }


def rank_results(
    candidates: list[Candidate],
    quizzes: dict[str, Quiz],
    *,
    limit: int,
    exclude: frozenset[str] = frozenset(),
    synthetic: bool = False,
) -> list[SearchResult]:
    """Pair candidates with published quizzes, sort by similarity and apply limit.

    Candidates whose quiz is missing from *quizzes* (deleted or not
    published) and excluded ids are dropped. The first occurrence of a
    duplicated quiz id wins.
    """
    results: list[SearchResult] = []
    seen: set[str] = set()
    for candidate in candidates:
        if candidate.quiz_id in exclude or candidate.quiz_id in seen:
            continue
        quiz = quizzes.get(candidate.quiz_id)
        if quiz is None or not quiz.is_published:
            continue
        seen.add(candidate.quiz_id)
        results.append(
            SearchResult(
                quiz_id=candidate.quiz_id,
                similarity=float(candidate.similarity),
                quiz=quiz,
                synthetic=synthetic,
            )
        )
    ordered = sorted(results, key=lambda result: -result.similarity)
    return ordered[: max(limit, 1)]
