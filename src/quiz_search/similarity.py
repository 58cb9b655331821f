"""
Cosine similarity for the manual vector search tier.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable

import numpy as np

from .errors import DimensionMismatchError

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Compute cosine similarity between two vectors of equal length.

    Returns 0.0 when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise ValueError(f"Vectors differ in length: {len(a)} != {len(b)}")

    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a_arr)
    norm_b = np.linalg.norm(b_arr)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(a_arr, b_arr) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


def rank_by_cosine(
    query_vector: list[float],
    batches: Iterable[list[tuple[str, list[float]]]],
    *,
    limit: int,
    exclude: set[str] | frozenset[str] = frozenset(),
    max_records: int | None = None,
) -> list[tuple[str, float]]:
    """Score every (quiz_id, vector) row against the query and keep the top *limit*.

    Rows whose dimensionality differs from the query are skipped.
    """
    query = np.asarray(query_vector, dtype=np.float64)
    dim = query.shape[0]
    query_norm = np.linalg.norm(query)
    top: list[tuple[float, str]] = []
    scanned = 0
    truncated = False

    for batch in batches:
        ids: list[str] = []
        rows: list[list[float]] = []
        for quiz_id, vector in batch:
            if max_records is not None and scanned >= max_records:
                truncated = True
                break
            scanned += 1
            if quiz_id in exclude:
                continue
            if len(vector) != dim:
                mismatch = DimensionMismatchError(
                    expected=dim, actual=len(vector), quiz_id=quiz_id
                )
                logger.warning(f"Skipping stored embedding: {mismatch}")
                continue
            ids.append(quiz_id)
            rows.append(vector)

        if rows:
            matrix = np.asarray(rows, dtype=np.float64)
            norms = np.linalg.norm(matrix, axis=1) * query_norm
            dots = matrix @ query
            scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
            np.clip(scores, -1.0, 1.0, out=scores)
            for quiz_id, score in zip(ids, scores.tolist()):
                heapq.heappush(top, (score, quiz_id))
                if len(top) > limit:
                    heapq.heappop(top)

        if truncated:
            logger.warning(f"Manual cosine scan stopped at the cap of {scanned} records.")
            break

    ranked = sorted(top, key=lambda item: (-item[0], item[1]))
    return [(quiz_id, score) for score, quiz_id in ranked]
