"""
Search tier identifiers and per-tier outcomes.

Each tier attempt returns either ``TierCandidates`` or ``TierUnavailable``;
the orchestrator moves to the next tier on the latter instead of catching
exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from ..models import Quiz

SearchTier: TypeAlias = Literal["vector", "fallback-manual", "fallback-text"]

VECTOR_TIER: SearchTier = "vector"
MANUAL_TIER: SearchTier = "fallback-manual"
KEYWORD_TIER: SearchTier = "fallback-text"


@dataclass(frozen=True)
class Candidate:
    """A quiz proposed by a tier, with its score in that tier's scale."""

    quiz_id: str
    similarity: float
    quiz: Quiz | None = None


@dataclass(frozen=True)
class TierCandidates:
    tier: SearchTier
    candidates: list[Candidate] = field(default_factory=list)
    synthetic: bool = False


@dataclass(frozen=True)
class TierUnavailable:
    tier: SearchTier
    reason: str


TierOutcome: TypeAlias = TierCandidates | TierUnavailable
