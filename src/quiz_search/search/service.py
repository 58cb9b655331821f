"""
Search orchestration across the vector, manual cosine and keyword tiers.
"""

from __future__ import annotations

import logging

from ..calls import run_provider_call, run_store_call
from ..config import SearchSettings
from ..embeddings import EmbeddingProvider
from ..errors import QuizNotFoundError, QuizSearchError, SearchUnavailableError
from ..models import Quiz
from ..storage import QuizStore, VectorStore
from .keyword import KeywordSearchEngine
from .ranker import SearchResponse, SearchResult, rank_results
from .semantic import SemanticSearchEngine
from .tiers import KEYWORD_TIER, TierCandidates, TierUnavailable

logger = logging.getLogger(__name__)


class QuizSearchService:
    """Resolve a query into ranked published quizzes.

    Tiers run in order (native vector index, manual cosine scan, keyword
    match); a tier runs only when the previous one was unavailable or left
    no published results.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        quiz_store: QuizStore,
        embedding_provider: EmbeddingProvider,
        settings: SearchSettings | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.quiz_store = quiz_store
        self.embedding_provider = embedding_provider
        self.settings = settings or SearchSettings()
        self.semantic = SemanticSearchEngine(vector_store, self.settings)
        self.keyword = KeywordSearchEngine(quiz_store, self.settings)

    async def search(self, query: str, limit: int = 10) -> SearchResponse:
        """Search quizzes by free text."""
        text = (query or "").strip()
        if not text:
            raise ValueError("Search query cannot be empty.")
        return await self._run_tiers(
            text, keyword_query=text, limit=max(limit, 1), exclude=frozenset()
        )

    async def find_similar_to_quiz(self, quiz_id: str, limit: int = 10) -> SearchResponse:
        """Search for quizzes similar to an existing quiz, excluding the quiz itself."""
        try:
            source = await run_store_call(
                self.quiz_store.get_quiz_by_id,
                quiz_id,
                timeout=self.settings.store_timeout_seconds,
            )
        except QuizSearchError as exc:
            logger.error(f"Quiz store unavailable while loading quiz {quiz_id}: {exc}")
            raise SearchUnavailableError() from exc
        if source is None:
            raise QuizNotFoundError(quiz_id)

        return await self._run_tiers(
            source.similarity_query(),
            keyword_query=source.title.strip() or source.similarity_query(),
            limit=max(limit, 1),
            exclude=frozenset({quiz_id}),
        )

    async def _run_tiers(
        self,
        query: str,
        *,
        keyword_query: str,
        limit: int,
        exclude: frozenset[str],
    ) -> SearchResponse:
        candidate_limit = limit * self.settings.candidate_oversample + len(exclude)

        query_vector = await self._embed_query(query)
        if query_vector is not None:
            attempts = (
                lambda: self.semantic.search_native(query_vector, limit=candidate_limit),
                lambda: self.semantic.search_manual(
                    query_vector, limit=candidate_limit, exclude=exclude
                ),
            )
            for attempt in attempts:
                outcome = await attempt()
                if isinstance(outcome, TierUnavailable):
                    logger.warning(f"Search tier {outcome.tier} unavailable: {outcome.reason}")
                    continue
                results = await self._hydrate(outcome, limit=limit, exclude=exclude)
                if isinstance(results, TierUnavailable):
                    logger.warning(f"Search tier {results.tier} unavailable: {results.reason}")
                    continue
                if results:
                    return SearchResponse(tier=outcome.tier, results=results)
                logger.info(f"Search tier {outcome.tier} returned no published quizzes")

        outcome = await self.keyword.search(keyword_query, limit=limit + len(exclude))
        if isinstance(outcome, TierUnavailable):
            logger.error(f"Keyword search failed, no search tier available: {outcome.reason}")
            raise SearchUnavailableError()
        quizzes = {
            candidate.quiz_id: candidate.quiz
            for candidate in outcome.candidates
            if candidate.quiz is not None
        }
        results = rank_results(
            outcome.candidates,
            quizzes,
            limit=limit,
            exclude=exclude,
            synthetic=True,
        )
        return SearchResponse(tier=KEYWORD_TIER, results=results)

    async def _embed_query(self, query: str) -> list[float] | None:
        try:
            return await run_provider_call(
                self.embedding_provider.embed_query(query),
                timeout=self.settings.provider_timeout_seconds,
            )
        except QuizSearchError as exc:
            logger.warning(f"Query embedding failed, skipping vector tiers: {exc}")
            return None

    async def _hydrate(
        self,
        outcome: TierCandidates,
        *,
        limit: int,
        exclude: frozenset[str],
    ) -> list[SearchResult] | TierUnavailable:
        if not outcome.candidates:
            return []
        quiz_ids = [candidate.quiz_id for candidate in outcome.candidates]
        try:
            quizzes: list[Quiz] = await run_store_call(
                self.quiz_store.find_quizzes_by_ids,
                quiz_ids,
                status="published",
                timeout=self.settings.store_timeout_seconds,
            )
        except QuizSearchError as exc:
            return TierUnavailable(tier=outcome.tier, reason=f"quiz lookup failed: {exc}")

        by_id = {quiz.id: quiz for quiz in quizzes}
        dropped = len(set(quiz_ids) - set(by_id))
        if dropped:
            logger.debug(f"Dropped {dropped} candidates without a published quiz")
        return rank_results(
            outcome.candidates,
            by_id,
            limit=limit,
            exclude=exclude,
            synthetic=outcome.synthetic,
        )
