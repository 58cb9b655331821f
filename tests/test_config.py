"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from quiz_search.config import DEFAULT_DB_PATH, SearchSettings, resolve_db_path


def test_defaults() -> None:
    settings = SearchSettings()

    assert settings.embedding_dim == 768
    assert settings.num_candidates == 200
    assert settings.keyword_similarity == 0.5
    assert settings.native_index is True


def test_from_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("QUIZ_SEARCH_EMBEDDING_DIM", "256")
    monkeypatch.setenv("QUIZ_SEARCH_NATIVE_INDEX", "off")
    monkeypatch.setenv("QUIZ_SEARCH_KEYWORD_SIMILARITY", "0.25")
    monkeypatch.setenv("QUIZ_SEARCH_NUM_CANDIDATES", "64")

    settings = SearchSettings.from_env()

    assert settings.embedding_dim == 256
    assert settings.native_index is False
    assert settings.keyword_similarity == 0.25
    assert settings.num_candidates == 64
    assert settings.batch_concurrency == 4


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("QUIZ_SEARCH_EMBEDDING_DIM", "lots"),
        ("QUIZ_SEARCH_BATCH_CONCURRENCY", "0"),
        ("QUIZ_SEARCH_NATIVE_INDEX", "maybe"),
        ("QUIZ_SEARCH_KEYWORD_SIMILARITY", "high"),
    ],
)
def test_from_env_rejects_bad_values(monkeypatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        SearchSettings.from_env()


def test_settings_validation() -> None:
    with pytest.raises(ValueError):
        SearchSettings(keyword_similarity=2.0)
    with pytest.raises(ValueError):
        SearchSettings(store_timeout_seconds=0)


def test_resolve_db_path_precedence(tmp_path: Path, monkeypatch) -> None:
    env_path = tmp_path / "env" / "db.duckdb"
    override = tmp_path / "cli" / "db.duckdb"
    monkeypatch.setenv("QUIZ_SEARCH_DB_PATH", str(env_path))

    assert resolve_db_path(str(override)) == str(override.resolve())
    assert resolve_db_path() == str(env_path.resolve())
    assert env_path.parent.is_dir()


def test_resolve_db_path_default(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("QUIZ_SEARCH_DB_PATH", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert resolve_db_path() == str(Path(DEFAULT_DB_PATH).expanduser().resolve())
