"""
DuckDB storage backend for quizzes and their embeddings.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import duckdb

from ..errors import (
    DimensionMismatchError,
    InvalidVectorError,
    StoreUnavailableError,
)
from ..models import Quiz, QuizStatus
from .base import EmbeddingMetadata, QuizEmbedding

logger = logging.getLogger(__name__)

_VECTOR_INDEX_NAME = "quiz_embeddings_vector_idx"
_ARRAY_TYPE_RE = re.compile(r"^FLOAT\[(\d+)\]$")


def _to_utc_naive(value: datetime | None) -> datetime:
    if value is None:
        value = datetime.now(timezone.utc)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


class DuckDBStorage:
    """DuckDB-backed persistence for quizzes and quiz embeddings."""

    def __init__(
        self,
        db_path: str,
        *,
        embedding_dim: int = 768,
        native_index: bool = True,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        if db_path == ":memory:":
            self.db_path = db_path
        else:
            self.db_path = str(Path(db_path).expanduser().resolve())
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.embedding_dim = embedding_dim
        self.read_only = read_only
        self._want_native_index = native_index
        self._native_index = False
        self._conn = duckdb.connect(self.db_path, read_only=read_only)
        if initialize and not read_only:
            self.initialize()
        elif native_index:
            self._native_index = self._load_existing_native_index()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def initialize(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS quizzes (
                id VARCHAR PRIMARY KEY,
                title VARCHAR NOT NULL,
                description VARCHAR,
                category VARCHAR,
                tags VARCHAR[] NOT NULL,
                status VARCHAR NOT NULL,
                quiz_json VARCHAR NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        self._conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS quiz_embeddings (
                quiz_id VARCHAR PRIMARY KEY,
                vector FLOAT[{int(self.embedding_dim)}] NOT NULL,
                source_text VARCHAR NOT NULL,
                metadata_json VARCHAR NOT NULL DEFAULT '{{}}',
                last_updated TIMESTAMP NOT NULL
            );
            """
        )
        self._check_vector_column()
        if self._want_native_index:
            self._native_index = self._create_native_index()

    # ------------------------------------------------------------------
    # Vector store
    # ------------------------------------------------------------------

    def has_native_index(self) -> bool:
        return self._native_index

    def upsert_embedding(self, record: QuizEmbedding) -> None:
        self._validate_vector(record.vector, quiz_id=record.quiz_id)
        insert_sql = f"""
            INSERT INTO quiz_embeddings (
                quiz_id, vector, source_text, metadata_json, last_updated
            )
            VALUES (?, ?::FLOAT[{int(self.embedding_dim)}], ?, ?, ?)
        """
        params = [
            record.quiz_id,
            [float(value) for value in record.vector],
            record.source_text,
            json.dumps(record.metadata.to_dict(), sort_keys=True),
            _to_utc_naive(record.last_updated),
        ]
        with self._cursor() as cur:
            if not self._native_index:
                cur.execute(
                    insert_sql
                    + """
                    ON CONFLICT(quiz_id) DO UPDATE SET
                        vector = excluded.vector,
                        source_text = excluded.source_text,
                        metadata_json = excluded.metadata_json,
                        last_updated = excluded.last_updated
                    """,
                    params,
                )
                return
            # ON CONFLICT cannot assign a column referenced by the HNSW index.
            cur.execute("BEGIN TRANSACTION")
            try:
                cur.execute(
                    "DELETE FROM quiz_embeddings WHERE quiz_id = ?", [record.quiz_id]
                )
                cur.execute(insert_sql, params)
                cur.execute("COMMIT")
            except duckdb.Error:
                cur.execute("ROLLBACK")
                raise

    def delete_embedding(self, quiz_id: str) -> bool:
        with self._cursor() as cur:
            row = cur.execute(
                "DELETE FROM quiz_embeddings WHERE quiz_id = ? RETURNING quiz_id",
                [quiz_id],
            ).fetchone()
        return row is not None

    def get_embedding(self, quiz_id: str) -> QuizEmbedding | None:
        with self._cursor() as cur:
            row = cur.execute(
                """
                SELECT quiz_id, vector, source_text, metadata_json, last_updated
                FROM quiz_embeddings
                WHERE quiz_id = ?
                LIMIT 1
                """,
                [quiz_id],
            ).fetchone()
        if row is None:
            return None
        return QuizEmbedding(
            quiz_id=str(row[0]),
            vector=[float(value) for value in row[1]],
            source_text=str(row[2]),
            metadata=EmbeddingMetadata.from_dict(json.loads(str(row[3]))),
            last_updated=row[4].replace(tzinfo=timezone.utc),
        )

    def count_embeddings(self) -> int:
        with self._cursor() as cur:
            row = cur.execute("SELECT COUNT(*) FROM quiz_embeddings").fetchone()
        return int(row[0]) if row else 0

    def iter_embedding_vectors(
        self, *, batch_size: int = 512
    ) -> Iterator[list[tuple[str, list[float]]]]:
        with self._cursor() as cur:
            cur.execute("SELECT quiz_id, vector FROM quiz_embeddings ORDER BY quiz_id")
            while True:
                rows = cur.fetchmany(batch_size)
                if not rows:
                    break
                yield [(str(row[0]), [float(value) for value in row[1]]) for row in rows]

    def search_native(
        self,
        query_vector: list[float],
        *,
        limit: int,
        num_candidates: int,
    ) -> list[tuple[str, float]]:
        if not self._native_index:
            raise StoreUnavailableError("Native vector index is not available.")
        self._validate_vector(query_vector)
        array_type = f"FLOAT[{int(self.embedding_dim)}]"
        vector = [float(value) for value in query_vector]
        with self._cursor() as cur:
            cur.execute(f"SET hnsw_ef_search = {max(int(num_candidates), int(limit))}")
            rows = cur.execute(
                f"""
                SELECT
                    quiz_id,
                    array_cosine_similarity(vector, ?::{array_type}) AS similarity
                FROM quiz_embeddings
                ORDER BY array_cosine_distance(vector, ?::{array_type})
                LIMIT ?
                """,
                [vector, vector, max(int(limit), 1)],
            ).fetchall()
        return [(str(row[0]), float(row[1])) for row in rows]

    # ------------------------------------------------------------------
    # Quiz store
    # ------------------------------------------------------------------

    def save_quiz(self, quiz: Quiz) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO quizzes (
                    id, title, description, category, tags, status, quiz_json
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    category = excluded.category,
                    tags = excluded.tags,
                    status = excluded.status,
                    quiz_json = excluded.quiz_json,
                    updated_at = now()
                """,
                [
                    quiz.id,
                    quiz.title,
                    quiz.description,
                    quiz.category,
                    list(quiz.tags),
                    quiz.status,
                    quiz.model_dump_json(),
                ],
            )

    def delete_quiz(self, quiz_id: str) -> bool:
        with self._cursor() as cur:
            row = cur.execute(
                "DELETE FROM quizzes WHERE id = ? RETURNING id",
                [quiz_id],
            ).fetchone()
        return row is not None

    def get_quiz_by_id(self, quiz_id: str) -> Quiz | None:
        with self._cursor() as cur:
            row = cur.execute(
                "SELECT quiz_json FROM quizzes WHERE id = ? LIMIT 1",
                [quiz_id],
            ).fetchone()
        if row is None:
            return None
        return Quiz.model_validate_json(str(row[0]))

    def find_quizzes_by_ids(
        self,
        quiz_ids: list[str],
        *,
        status: QuizStatus | None = "published",
    ) -> list[Quiz]:
        if not quiz_ids:
            return []
        unique_ids = list(dict.fromkeys(quiz_ids))
        placeholders = ", ".join(["?"] * len(unique_ids))
        sql = f"SELECT quiz_json FROM quizzes WHERE id IN ({placeholders})"
        params: list[Any] = list(unique_ids)
        if status is not None:
            sql += " AND status = ?"
            params.append(status)
        with self._cursor() as cur:
            rows = cur.execute(sql, params).fetchall()
        return [Quiz.model_validate_json(str(row[0])) for row in rows]

    def search_quizzes_by_keyword(
        self,
        query: str,
        *,
        limit: int = 10,
        status: QuizStatus | None = "published",
    ) -> list[Quiz]:
        needle = query.strip().lower()
        if not needle:
            return []
        sql = """
            SELECT quiz_json
            FROM quizzes
            WHERE (
                contains(lower(title), ?)
                OR contains(lower(coalesce(description, '')), ?)
                OR contains(lower(coalesce(category, '')), ?)
                OR contains(lower(coalesce(array_to_string(tags, chr(10)), '')), ?)
            )
        """
        params: list[Any] = [needle, needle, needle, needle]
        if status is not None:
            sql += " AND status = ?"
            params.append(status)
        sql += " ORDER BY title ASC, id ASC LIMIT ?"
        params.append(max(int(limit), 1))
        with self._cursor() as cur:
            rows = cur.execute(sql, params).fetchall()
        return [Quiz.model_validate_json(str(row[0])) for row in rows]

    def list_quizzes(self, *, status: QuizStatus | None = None) -> list[Quiz]:
        sql = "SELECT quiz_json FROM quizzes"
        params: list[Any] = []
        if status is not None:
            sql += " WHERE status = ?"
            params.append(status)
        sql += " ORDER BY id ASC"
        with self._cursor() as cur:
            rows = cur.execute(sql, params).fetchall()
        return [Quiz.model_validate_json(str(row[0])) for row in rows]

    def list_categories(self) -> list[str]:
        with self._cursor() as cur:
            rows = cur.execute(
                """
                SELECT DISTINCT category
                FROM quizzes
                WHERE status = 'published'
                  AND category IS NOT NULL
                  AND trim(category) <> ''
                ORDER BY category ASC
                """
            ).fetchall()
        return [str(row[0]) for row in rows]

    def popular_tags(self, *, limit: int = 20) -> list[tuple[str, int]]:
        with self._cursor() as cur:
            rows = cur.execute(
                """
                SELECT tag, COUNT(*) AS uses
                FROM (
                    SELECT unnest(tags) AS tag
                    FROM quizzes
                    WHERE status = 'published'
                ) t
                WHERE trim(tag) <> ''
                GROUP BY tag
                ORDER BY uses DESC, tag ASC
                LIMIT ?
                """,
                [max(int(limit), 1)],
            ).fetchall()
        return [(str(row[0]), int(row[1])) for row in rows]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        # A cursor per operation keeps worker threads off a shared connection.
        try:
            cursor = self._conn.cursor()
        except duckdb.Error as exc:
            raise StoreUnavailableError(f"DuckDB connection failed: {exc}") from exc
        try:
            yield cursor
        except duckdb.Error as exc:
            raise StoreUnavailableError(f"DuckDB operation failed: {exc}") from exc
        finally:
            cursor.close()

    def _validate_vector(self, vector: list[float], *, quiz_id: str | None = None) -> None:
        if len(vector) != self.embedding_dim:
            raise DimensionMismatchError(
                expected=self.embedding_dim, actual=len(vector), quiz_id=quiz_id
            )
        if not all(math.isfinite(float(value)) for value in vector):
            raise InvalidVectorError("Vector components must be finite numbers.")

    def _check_vector_column(self) -> None:
        row = self._conn.execute(
            """
            SELECT data_type
            FROM information_schema.columns
            WHERE table_name = 'quiz_embeddings' AND column_name = 'vector'
            """
        ).fetchone()
        if row is None:
            return
        match = _ARRAY_TYPE_RE.match(str(row[0]).upper())
        if match and int(match.group(1)) != self.embedding_dim:
            raise DimensionMismatchError(
                expected=self.embedding_dim, actual=int(match.group(1))
            )

    def _load_vss(self) -> None:
        try:
            self._conn.execute("LOAD vss")
        except duckdb.Error:
            self._conn.execute("INSTALL vss")
            self._conn.execute("LOAD vss")

    def _create_native_index(self) -> bool:
        try:
            self._load_vss()
            if self.db_path != ":memory:":
                self._conn.execute("SET hnsw_enable_experimental_persistence = true")
            self._conn.execute(
                f"""
                CREATE INDEX IF NOT EXISTS {_VECTOR_INDEX_NAME}
                ON quiz_embeddings USING HNSW (vector)
                WITH (metric = 'cosine')
                """
            )
        except duckdb.Error as exc:
            logger.warning(f"Native vector index unavailable, manual search only: {exc}")
            return False
        return True

    def _load_existing_native_index(self) -> bool:
        try:
            self._load_vss()
            row = self._conn.execute(
                "SELECT COUNT(*) FROM duckdb_indexes() WHERE index_name = ?",
                [_VECTOR_INDEX_NAME],
            ).fetchone()
        except duckdb.Error as exc:
            logger.warning(f"Native vector index unavailable, manual search only: {exc}")
            return False
        return bool(row and int(row[0]) > 0)
