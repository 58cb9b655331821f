"""
Vector-based search tiers.

The native tier asks the store's own nearest-neighbour index; the manual
tier scans every stored vector and ranks by cosine similarity in
application code, so search keeps working without a provisioned index.
"""

from __future__ import annotations

from ..calls import run_store_call
from ..config import SearchSettings
from ..errors import QuizSearchError
from ..similarity import rank_by_cosine
from ..storage import VectorStore
from .tiers import (
    MANUAL_TIER,
    VECTOR_TIER,
    Candidate,
    TierCandidates,
    TierOutcome,
    TierUnavailable,
)


class SemanticSearchEngine:
    """Search stored quiz embeddings with a query vector."""

    def __init__(self, vector_store: VectorStore, settings: SearchSettings) -> None:
        self.vector_store = vector_store
        self.settings = settings

    async def search_native(self, query_vector: list[float], *, limit: int) -> TierOutcome:
        """Nearest-neighbour query through the store's vector index."""
        if not self.vector_store.has_native_index():
            return TierUnavailable(tier=VECTOR_TIER, reason="no native vector index")
        try:
            rows = await run_store_call(
                self.vector_store.search_native,
                query_vector,
                limit=limit,
                num_candidates=self.settings.num_candidates,
                timeout=self.settings.store_timeout_seconds,
            )
        except QuizSearchError as exc:
            return TierUnavailable(tier=VECTOR_TIER, reason=str(exc))
        return TierCandidates(
            tier=VECTOR_TIER,
            candidates=[
                Candidate(quiz_id=quiz_id, similarity=score) for quiz_id, score in rows
            ],
        )

    async def search_manual(
        self,
        query_vector: list[float],
        *,
        limit: int,
        exclude: frozenset[str] = frozenset(),
    ) -> TierOutcome:
        """Cosine scan over every stored embedding."""

        def _scan() -> list[tuple[str, float]]:
            return rank_by_cosine(
                query_vector,
                self.vector_store.iter_embedding_vectors(
                    batch_size=self.settings.scan_batch_size
                ),
                limit=limit,
                exclude=exclude,
                max_records=self.settings.max_scan_records,
            )

        try:
            rows = await run_store_call(_scan, timeout=self.settings.store_timeout_seconds)
        except QuizSearchError as exc:
            return TierUnavailable(tier=MANUAL_TIER, reason=str(exc))
        return TierCandidates(
            tier=MANUAL_TIER,
            candidates=[
                Candidate(quiz_id=quiz_id, similarity=score) for quiz_id, score in rows
            ],
        )
