"""CLI tests for loading, indexing and searching quizzes."""

import json
from pathlib import Path

import quiz_search.main as main_module
from conftest import FakeEmbedder, algebra_quiz, geometry_quiz
from quiz_search.config import SearchSettings
from quiz_search.services import build_services
from quiz_search.storage import DuckDBStorage
from typer.testing import CliRunner

SETTINGS = SearchSettings(embedding_dim=8, native_index=False)


def _patch_services(monkeypatch, embedder: FakeEmbedder | None = None) -> dict:
    seen: dict[str, object] = {}

    def fake_build_services(*, db_path=None):
        seen["db_path"] = db_path
        return build_services(
            db_path=db_path,
            settings=SETTINGS,
            embedding_provider=embedder or FakeEmbedder(),
        )

    monkeypatch.setattr(main_module, "build_services", fake_build_services)
    return seen


def _write_quizzes(tmp_path: Path) -> Path:
    path = tmp_path / "quizzes.json"
    path.write_text(
        json.dumps(
            [
                algebra_quiz().model_dump(mode="json"),
                geometry_quiz().model_dump(mode="json"),
            ]
        )
    )
    return path


def test_load_embeds_every_quiz(tmp_path: Path, monkeypatch) -> None:
    seen = _patch_services(monkeypatch)
    db_path = str(tmp_path / "cli.duckdb")

    runner = CliRunner()
    result = runner.invoke(
        main_module.app,
        ["load", str(_write_quizzes(tmp_path)), "--db-path", db_path],
    )

    assert result.exit_code == 0, result.output
    assert "2/2 quizzes embedded" in result.output
    assert seen["db_path"] == db_path

    storage = DuckDBStorage(db_path, embedding_dim=8, native_index=False)
    try:
        assert storage.count_embeddings() == 2
        assert [quiz.id for quiz in storage.list_quizzes()] == ["alg-1", "geo-1"]
    finally:
        storage.close()


def test_load_reports_unreadable_file(tmp_path: Path, monkeypatch) -> None:
    _patch_services(monkeypatch)
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")

    runner = CliRunner()
    result = runner.invoke(main_module.app, ["load", str(bad)])

    assert result.exit_code == 1
    assert "Could not read" in result.output


def test_search_after_load(tmp_path: Path, monkeypatch) -> None:
    _patch_services(monkeypatch)
    db_path = str(tmp_path / "cli.duckdb")
    runner = CliRunner()
    runner.invoke(
        main_module.app,
        ["load", str(_write_quizzes(tmp_path)), "--db-path", db_path],
    )

    result = runner.invoke(
        main_module.app,
        ["search", "solving equations", "--db-path", db_path, "--limit", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "alg-1" in result.output
    assert "geo-1" not in result.output


def test_similar_unknown_quiz_fails(tmp_path: Path, monkeypatch) -> None:
    _patch_services(monkeypatch)

    runner = CliRunner()
    result = runner.invoke(
        main_module.app,
        ["similar", "missing", "--db-path", str(tmp_path / "cli.duckdb")],
    )

    assert result.exit_code == 1
    assert "Quiz not found" in result.output


def test_reindex_only_stale_skips_unchanged(tmp_path: Path, monkeypatch) -> None:
    embedder = FakeEmbedder()
    _patch_services(monkeypatch, embedder)
    db_path = str(tmp_path / "cli.duckdb")
    runner = CliRunner()
    runner.invoke(
        main_module.app,
        ["load", str(_write_quizzes(tmp_path)), "--db-path", db_path],
    )
    embedder.documents.clear()

    result = runner.invoke(
        main_module.app,
        ["reindex", "--only-stale", "--db-path", db_path],
    )

    assert result.exit_code == 0, result.output
    assert "unchanged" in result.output
    assert embedder.documents == []


def test_delete_and_status(tmp_path: Path, monkeypatch) -> None:
    _patch_services(monkeypatch)
    db_path = str(tmp_path / "cli.duckdb")
    runner = CliRunner()
    runner.invoke(
        main_module.app,
        ["load", str(_write_quizzes(tmp_path)), "--db-path", db_path],
    )

    deleted = runner.invoke(main_module.app, ["delete", "alg-1", "--db-path", db_path])
    status = runner.invoke(main_module.app, ["status", "--db-path", db_path])

    assert deleted.exit_code == 0, deleted.output
    assert "Quiz alg-1: deleted" in deleted.output
    assert status.exit_code == 0, status.output
    assert "Embeddings: 1" in status.output
    assert "manual cosine fallback" in status.output


def test_verbose_flag_is_accepted(tmp_path: Path, monkeypatch) -> None:
    _patch_services(monkeypatch)

    runner = CliRunner()
    result = runner.invoke(
        main_module.app,
        ["--verbose", "status", "--db-path", str(tmp_path / "cli.duckdb")],
    )

    assert result.exit_code == 0, result.output
