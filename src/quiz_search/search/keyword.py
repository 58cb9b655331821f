"""
Keyword fallback tier: substring match over published quizzes.
"""

from __future__ import annotations

from ..calls import run_store_call
from ..config import SearchSettings
from ..errors import QuizSearchError
from ..storage import QuizStore
from .tiers import (
    KEYWORD_TIER,
    Candidate,
    TierCandidates,
    TierOutcome,
    TierUnavailable,
)


class KeywordSearchEngine:
    """Match the query text against quiz title, description, category and tags.

    No similarity is computed here: every hit carries the configured
    ``keyword_similarity`` and is marked synthetic.
    """

    def __init__(self, quiz_store: QuizStore, settings: SearchSettings) -> None:
        self.quiz_store = quiz_store
        self.settings = settings

    async def search(self, query: str, *, limit: int) -> TierOutcome:
        try:
            quizzes = await run_store_call(
                self.quiz_store.search_quizzes_by_keyword,
                query,
                limit=limit,
                status="published",
                timeout=self.settings.store_timeout_seconds,
            )
        except QuizSearchError as exc:
            return TierUnavailable(tier=KEYWORD_TIER, reason=str(exc))
        return TierCandidates(
            tier=KEYWORD_TIER,
            candidates=[
                Candidate(
                    quiz_id=quiz.id,
                    similarity=self.settings.keyword_similarity,
                    quiz=quiz,
                )
                for quiz in quizzes
            ],
            synthetic=True,
        )
