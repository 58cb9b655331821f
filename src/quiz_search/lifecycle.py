"""
Embedding lifecycle: keep one stored embedding in sync with each quiz.

Quiz create/update callers invoke ``upsert_embedding`` (or the best-effort
``sync_quiz``); quiz delete callers invoke ``delete_embedding`` (or
``remove_quiz``). Nothing here is triggered automatically.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .calls import run_provider_call, run_store_call
from .config import SearchSettings
from .embeddings import EmbeddingProvider
from .errors import EmbeddingProviderError, QuizSearchError
from .models import Quiz
from .storage import EmbeddingMetadata, QuizEmbedding, VectorStore

logger = logging.getLogger(__name__)


def build_source_text(quiz: Quiz) -> str:
    """Concatenate the quiz fields that get embedded, in a stable order."""
    lines: list[str] = [
        quiz.title or "",
        "",
        quiz.description or "",
        "",
        f"Category: {quiz.category or ''}",
        f"Tags: {', '.join(quiz.tags)}",
        "",
    ]
    for number, question in enumerate(quiz.questions, start=1):
        lines.append(f"Q{number}: {question.question_text}")
        for position, option in enumerate(question.options):
            lines.append(f"  {chr(65 + position)}. {option.text}")
        if question.explanation:
            lines.append(f"Explanation: {question.explanation}")
        lines.append("")
    return "\n".join(lines).strip()


def build_metadata(quiz: Quiz) -> EmbeddingMetadata:
    return EmbeddingMetadata(
        category=quiz.category,
        tags=tuple(sorted({tag for tag in quiz.tags if tag.strip()})),
        difficulty=quiz.difficulty,
        language=quiz.language,
        question_count=len(quiz.questions),
    )


def has_text_content(quiz: Quiz) -> bool:
    """Return True if any embeddable field of the quiz holds text."""
    fields: list[str | None] = [quiz.title, quiz.description, quiz.category, *quiz.tags]
    for question in quiz.questions:
        fields.append(question.question_text)
        fields.append(question.explanation)
        fields.extend(option.text for option in question.options)
    return any(value and value.strip() for value in fields)


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one quiz in a batch upsert."""

    quiz_id: str
    success: bool
    error: str | None = None
    error_type: str | None = None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"quiz_id": self.quiz_id, "success": self.success}
        if self.error is not None:
            data["error"] = self.error
            data["error_type"] = self.error_type
        if self.skipped:
            data["skipped"] = True
        return data


class EmbeddingLifecycleManager:
    """Create, update and delete the embedding that belongs to each quiz."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider,
        settings: SearchSettings | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.embedding_provider = embedding_provider
        self.settings = settings or SearchSettings()

    def source_text_for(self, quiz: Quiz) -> str:
        """The exact text stored and embedded for *quiz*."""
        return build_source_text(quiz)[: self.settings.max_source_chars]

    async def upsert_embedding(self, quiz: Quiz) -> QuizEmbedding:
        """Embed the quiz and insert or replace its stored embedding.

        Raises EmbeddingProviderError when no usable vector can be produced and
        StoreUnavailableError when the store write fails.
        """
        if not has_text_content(quiz):
            raise EmbeddingProviderError(f"Quiz {quiz.id!r} has no text to embed.")
        source_text = self.source_text_for(quiz)

        vector = await run_provider_call(
            self.embedding_provider.embed_document(source_text),
            timeout=self.settings.provider_timeout_seconds,
        )
        if len(vector) != self.settings.embedding_dim:
            raise EmbeddingProviderError(
                f"Embedding for quiz {quiz.id!r} has {len(vector)} dimensions, "
                f"expected {self.settings.embedding_dim}."
            )
        if not all(math.isfinite(value) for value in vector):
            raise EmbeddingProviderError(
                f"Embedding for quiz {quiz.id!r} contains non-finite values."
            )

        record = QuizEmbedding(
            quiz_id=quiz.id,
            vector=vector,
            source_text=source_text,
            metadata=build_metadata(quiz),
            last_updated=datetime.now(timezone.utc),
        )
        await run_store_call(
            self.vector_store.upsert_embedding,
            record,
            timeout=self.settings.store_timeout_seconds,
        )
        logger.info(f"Embedding created/updated for quiz: {quiz.id}")
        return record

    async def sync_quiz(self, quiz: Quiz) -> bool:
        """Best-effort upsert for quiz save paths. Return True on success."""
        try:
            await self.upsert_embedding(quiz)
        except QuizSearchError as exc:
            logger.error(f"Embedding generation failed for quiz {quiz.id}: {exc}")
            return False
        return True

    async def delete_embedding(self, quiz_id: str) -> bool:
        """Delete the quiz's embedding. Missing embeddings are not an error."""
        removed = await run_store_call(
            self.vector_store.delete_embedding,
            quiz_id,
            timeout=self.settings.store_timeout_seconds,
        )
        if removed:
            logger.info(f"Embedding deleted for quiz: {quiz_id}")
        return removed

    async def remove_quiz(self, quiz_id: str) -> bool:
        """Best-effort delete for quiz delete paths."""
        try:
            return await self.delete_embedding(quiz_id)
        except QuizSearchError as exc:
            logger.error(f"Embedding deletion failed for quiz {quiz_id}: {exc}")
            return False

    async def is_stale(self, quiz: Quiz) -> bool:
        """True when the quiz has no embedding or its content changed since."""
        existing = await run_store_call(
            self.vector_store.get_embedding,
            quiz.id,
            timeout=self.settings.store_timeout_seconds,
        )
        return existing is None or existing.source_text != self.source_text_for(quiz)

    async def batch_upsert(
        self,
        quizzes: list[Quiz],
        *,
        only_stale: bool = False,
    ) -> list[BatchItemResult]:
        """Upsert embeddings for many quizzes, reporting each outcome.

        A failing quiz never aborts the batch; results keep input order.
        """
        semaphore = asyncio.Semaphore(self.settings.batch_concurrency)

        async def _process(quiz: Quiz) -> BatchItemResult:
            async with semaphore:
                try:
                    if only_stale and not await self.is_stale(quiz):
                        return BatchItemResult(quiz_id=quiz.id, success=True, skipped=True)
                    await self.upsert_embedding(quiz)
                except QuizSearchError as exc:
                    logger.error(f"Failed to create embedding for quiz {quiz.id}: {exc}")
                    return BatchItemResult(
                        quiz_id=quiz.id,
                        success=False,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                return BatchItemResult(quiz_id=quiz.id, success=True)

        results = await asyncio.gather(*(_process(quiz) for quiz in quizzes))
        succeeded = sum(1 for result in results if result.success)
        logger.info(f"Batch embedding finished: {succeeded}/{len(results)} succeeded")
        return list(results)
