import re
from pathlib import Path

import pytest

from quiz_search.config import SearchSettings
from quiz_search.errors import EmbeddingProviderError
from quiz_search.models import Quiz
from quiz_search.storage import DuckDBStorage

TEST_DIM = 8

# Each stem maps to one vector component, so topical overlap drives cosine.
TOPIC_STEMS = {
    "algebra": 0,
    "equation": 0,
    "linear": 0,
    "solv": 0,
    "geometry": 1,
    "triangle": 1,
    "angle": 1,
    "javascript": 2,
    "closure": 2,
    "history": 3,
    "empire": 3,
    "biology": 4,
    "cell": 4,
}


def topic_vector(text: str, dim: int = TEST_DIM) -> list[float]:
    vector = [0.0] * dim
    for token in re.findall(r"[a-z]+", text.lower()):
        for stem, bucket in TOPIC_STEMS.items():
            if token.startswith(stem):
                vector[bucket] += 1.0
    return vector


class FakeEmbedder:
    """Stands in for EmbeddingProvider with deterministic topic vectors."""

    def __init__(self, dim: int = TEST_DIM, *, fail: bool = False) -> None:
        self.dim = dim
        self.fail = fail
        self.documents: list[str] = []
        self.queries: list[str] = []

    async def embed_document(self, text: str) -> list[float]:
        self.documents.append(text)
        return self._embed(text)

    async def embed_query(self, query: str) -> list[float]:
        self.queries.append(query)
        return self._embed(query)

    def _embed(self, text: str) -> list[float]:
        if self.fail:
            raise EmbeddingProviderError("provider offline")
        if not text.strip():
            raise EmbeddingProviderError("Text to embed cannot be empty.")
        return topic_vector(text, self.dim)


def make_quiz(quiz_id: str, title: str, **fields) -> Quiz:
    return Quiz.model_validate({"id": quiz_id, "title": title, **fields})


def algebra_quiz(quiz_id: str = "alg-1", **fields) -> Quiz:
    questions = [
        {
            "questionText": "Solve the linear equation 2x + 3 = 7",
            "options": [{"text": "x = 2", "isCorrect": True}, {"text": "x = 5"}],
            "explanation": "Subtract 3, then divide by 2.",
        },
        {
            "questionText": "Which equation is linear?",
            "options": [{"text": "y = 3x + 1", "isCorrect": True}, {"text": "y = x^2"}],
        },
        {
            "questionText": "Solving x - 4 = 0 gives",
            "options": [{"text": "4", "isCorrect": True}, {"text": "-4"}],
        },
    ]
    data = {
        "title": "Intro to Algebra",
        "description": "Practice solving linear equations",
        "category": "Mathematics",
        "tags": ["algebra", "equations"],
        "questions": questions,
        **fields,
    }
    return make_quiz(quiz_id, data.pop("title"), **data)


def geometry_quiz(quiz_id: str = "geo-1", **fields) -> Quiz:
    data = {
        "description": "Angles of a triangle",
        "category": "Mathematics",
        "tags": ["geometry"],
        "questions": [
            {
                "questionText": "What do the angles of a triangle add up to?",
                "options": [{"text": "180", "isCorrect": True}, {"text": "360"}],
            }
        ],
        **fields,
    }
    return make_quiz(quiz_id, "Triangle Geometry", **data)


@pytest.fixture()
def settings() -> SearchSettings:
    return SearchSettings(embedding_dim=TEST_DIM, native_index=False)


@pytest.fixture()
def storage(tmp_path: Path):
    store = DuckDBStorage(
        str(tmp_path / "quiz_search.duckdb"),
        embedding_dim=TEST_DIM,
        native_index=False,
    )
    yield store
    store.close()


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()
