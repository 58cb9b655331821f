import json
import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

from typer import Argument, Exit, Option, Typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .errors import QuizSearchError
from .models import Quiz
from .search import SearchResponse
from .services import QuizSearchServices, build_services

app = Typer(help="Semantic quiz search and embedding maintenance.")
console = Console()

DbPathOption = Annotated[
    str | None,
    Option("--db-path", help="DuckDB file (defaults to QUIZ_SEARCH_DB_PATH)."),
]
LimitOption = Annotated[int, Option("--limit", "-l", help="Maximum number of results.")]


@app.callback()
def configure(
    verbose: Annotated[
        bool, Option("--verbose", "-v", help="Show debug logging.")
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> NoReturn:
    console.print(
        Panel(message, title="Error", title_align="left", border_style="bold red")
    )
    raise Exit(code=1)


def _open_services(db_path: str | None) -> QuizSearchServices:
    try:
        return build_services(db_path=db_path)
    except (ValueError, QuizSearchError) as exc:
        _fail(str(exc))


def _read_quizzes(path: Path) -> list[Quiz]:
    data: Any = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("quizzes", [data])
    if not isinstance(data, list):
        raise ValueError("Quiz file must hold a JSON list of quizzes.")
    return [Quiz.model_validate(item) for item in data]


def _print_response(title: str, response: SearchResponse) -> None:
    table = Table(title=f"{title} (tier: {response.tier})")
    table.add_column("#", justify="right")
    table.add_column("Quiz id")
    table.add_column("Title")
    table.add_column("Similarity", justify="right")
    for position, result in enumerate(response.results, start=1):
        score = f"{result.similarity:.3f}"
        if result.synthetic:
            score += " (keyword)"
        table.add_row(str(position), result.quiz_id, result.quiz.title, score)
    if response.results:
        console.print(table)
    else:
        console.print(f"[bold yellow]No quizzes found[/] (tier: {response.tier})")


async def _load(services: QuizSearchServices, quizzes: list[Quiz]) -> list[Any]:
    for quiz in quizzes:
        await asyncio.to_thread(services.storage.save_quiz, quiz)
    return await services.lifecycle.batch_upsert(quizzes)


def _print_batch(results: list[Any]) -> None:
    table = Table(title="Embedding results")
    table.add_column("Quiz id")
    table.add_column("Result")
    table.add_column("Detail")
    for result in results:
        if result.skipped:
            table.add_row(result.quiz_id, "[cyan]unchanged[/]", "")
        elif result.success:
            table.add_row(result.quiz_id, "[green]embedded[/]", "")
        else:
            table.add_row(result.quiz_id, "[red]failed[/]", f"{result.error_type}: {result.error}")
    console.print(table)
    succeeded = sum(1 for result in results if result.success)
    console.print(
        Panel(
            f"{succeeded}/{len(results)} quizzes embedded or up to date",
            title="Index Complete",
            title_align="left",
            border_style="bold green",
        )
    )


@app.command()
def load(
    file: Annotated[Path, Argument(help="JSON file with a list of quizzes.")],
    db_path: DbPathOption = None,
) -> None:
    """Import quizzes into the quiz store and embed them."""
    try:
        quizzes = _read_quizzes(file)
    except (OSError, ValueError) as exc:
        _fail(f"Could not read {file}: {exc}")
    services = _open_services(db_path)
    try:
        results = asyncio.run(_load(services, quizzes))
    except QuizSearchError as exc:
        _fail(str(exc))
    finally:
        services.close()
    _print_batch(results)


@app.command()
def reindex(
    only_stale: Annotated[
        bool,
        Option("--only-stale", help="Skip quizzes whose embedded text is unchanged."),
    ] = False,
    db_path: DbPathOption = None,
) -> None:
    """Re-embed every stored quiz."""
    services = _open_services(db_path)
    try:
        quizzes = services.storage.list_quizzes()
        results = asyncio.run(
            services.lifecycle.batch_upsert(quizzes, only_stale=only_stale)
        )
    except QuizSearchError as exc:
        _fail(str(exc))
    finally:
        services.close()
    _print_batch(results)


@app.command()
def search(
    query: Annotated[str, Argument(help="Free-text search query.")],
    limit: LimitOption = 10,
    db_path: DbPathOption = None,
) -> None:
    """Search published quizzes."""
    services = _open_services(db_path)
    try:
        response = asyncio.run(services.search.search(query, limit=limit))
    except (ValueError, QuizSearchError) as exc:
        _fail(str(exc))
    finally:
        services.close()
    _print_response(f"Results for {query!r}", response)


@app.command()
def similar(
    quiz_id: Annotated[str, Argument(help="Id of the quiz to compare against.")],
    limit: LimitOption = 10,
    db_path: DbPathOption = None,
) -> None:
    """Find quizzes similar to an existing quiz."""
    services = _open_services(db_path)
    try:
        response = asyncio.run(services.search.find_similar_to_quiz(quiz_id, limit=limit))
    except QuizSearchError as exc:
        _fail(str(exc))
    finally:
        services.close()
    _print_response(f"Quizzes similar to {quiz_id}", response)


@app.command()
def delete(
    quiz_id: Annotated[str, Argument(help="Id of the quiz to delete.")],
    db_path: DbPathOption = None,
) -> None:
    """Delete a quiz and its embedding."""
    services = _open_services(db_path)
    try:
        deleted = services.storage.delete_quiz(quiz_id)
        embedding_deleted = asyncio.run(services.lifecycle.remove_quiz(quiz_id))
    except QuizSearchError as exc:
        _fail(str(exc))
    finally:
        services.close()
    console.print(
        f"Quiz {quiz_id}: {'deleted' if deleted else 'not found'}; "
        f"embedding {'deleted' if embedding_deleted else 'absent'}"
    )


@app.command()
def status(db_path: DbPathOption = None) -> None:
    """Show embedding counts and native index availability."""
    services = _open_services(db_path)
    try:
        count = services.storage.count_embeddings()
        quizzes = len(services.storage.list_quizzes())
        native = services.storage.has_native_index()
    except QuizSearchError as exc:
        _fail(str(exc))
    finally:
        services.close()
    console.print(
        Panel(
            f"Quizzes: {quizzes}\nEmbeddings: {count}\n"
            f"Dimension: {services.settings.embedding_dim}\n"
            f"Native vector index: {'yes' if native else 'no (manual cosine fallback)'}",
            title="Quiz search status",
            title_align="left",
            border_style="bold cyan",
        )
    )


@app.command()
def serve(
    host: Annotated[str, Option("--host")] = "127.0.0.1",
    port: Annotated[int, Option("--port")] = 8000,
    db_path: DbPathOption = None,
) -> None:
    """Run the HTTP API."""
    from .server import run_server

    run_server(host=host, port=port, db_path=db_path)
