"""
FastAPI server for quiz search.

Exposes similarity search, similar-quiz lookup and the quiz save/delete
hooks that keep embeddings in sync. Service objects are built once per
process and shared by every request through ``app.state``.
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .calls import run_store_call
from .errors import QuizNotFoundError, QuizSearchError, SearchUnavailableError
from .models import Quiz
from .services import QuizSearchServices, build_services

MIN_QUERY_LENGTH = 3
MAX_LIMIT = 50

router = APIRouter()


class BatchEmbeddingRequest(BaseModel):
    """Request model for batch (re)embedding."""

    quiz_ids: list[str] | None = None
    only_stale: bool = False


def get_services(request: Request) -> QuizSearchServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Quiz search services are not initialized.")
    return services


def _clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_LIMIT))


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, QuizNotFoundError):
        return JSONResponse({"error": str(exc)}, status_code=404)
    if isinstance(exc, SearchUnavailableError):
        return JSONResponse({"error": str(exc)}, status_code=503)
    if isinstance(exc, QuizSearchError):
        return JSONResponse({"error": "Storage temporarily unavailable."}, status_code=503)
    if isinstance(exc, ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse({"error": str(exc)}, status_code=500)


@router.get("/api/search/similar")
async def search_similar(
    query: str = "",
    limit: int = 10,
    services: QuizSearchServices = Depends(get_services),
):
    """Search published quizzes by free text."""
    if len(query.strip()) < MIN_QUERY_LENGTH:
        return JSONResponse(
            {"error": f"Search query must be at least {MIN_QUERY_LENGTH} characters"},
            status_code=400,
        )
    try:
        response = await services.search.search(query, limit=_clamp_limit(limit))
    except Exception as exc:
        return _error_response(exc)
    return {"query": query, **response.to_dict()}


@router.get("/api/search/quiz/{quiz_id}/similar")
async def similar_to_quiz(
    quiz_id: str,
    limit: int = 10,
    services: QuizSearchServices = Depends(get_services),
):
    """Find published quizzes similar to an existing quiz."""
    try:
        response = await services.search.find_similar_to_quiz(
            quiz_id, limit=_clamp_limit(limit)
        )
    except Exception as exc:
        return _error_response(exc)
    return {"quiz_id": quiz_id, **response.to_dict()}


@router.get("/api/search/categories")
async def list_categories(services: QuizSearchServices = Depends(get_services)):
    """Distinct categories of published quizzes."""
    try:
        categories = await run_store_call(
            services.storage.list_categories,
            timeout=services.settings.store_timeout_seconds,
        )
    except Exception as exc:
        return _error_response(exc)
    return {"categories": categories}


@router.get("/api/search/tags")
async def popular_tags(
    limit: int = 20,
    services: QuizSearchServices = Depends(get_services),
):
    """Most used tags of published quizzes."""
    try:
        tags = await run_store_call(
            services.storage.popular_tags,
            limit=_clamp_limit(limit),
            timeout=services.settings.store_timeout_seconds,
        )
    except Exception as exc:
        return _error_response(exc)
    return {"tags": [{"tag": tag, "count": count} for tag, count in tags]}


@router.put("/api/quizzes/{quiz_id}")
async def save_quiz(
    quiz_id: str,
    payload: dict[str, Any],
    services: QuizSearchServices = Depends(get_services),
):
    """Save a quiz and refresh its embedding.

    Embedding failures are reported in the response, never as a failed save.
    """
    try:
        quiz = Quiz.model_validate({**payload, "id": quiz_id})
        await run_store_call(
            services.storage.save_quiz,
            quiz,
            timeout=services.settings.store_timeout_seconds,
        )
    except Exception as exc:
        return _error_response(exc)
    embedded = await services.lifecycle.sync_quiz(quiz)
    return {"quiz_id": quiz.id, "status": quiz.status, "embedded": embedded}


@router.delete("/api/quizzes/{quiz_id}")
async def delete_quiz(
    quiz_id: str,
    services: QuizSearchServices = Depends(get_services),
):
    """Delete a quiz and its embedding."""
    try:
        deleted = await run_store_call(
            services.storage.delete_quiz,
            quiz_id,
            timeout=services.settings.store_timeout_seconds,
        )
    except Exception as exc:
        return _error_response(exc)
    embedding_deleted = await services.lifecycle.remove_quiz(quiz_id)
    if not deleted:
        return JSONResponse(
            {"error": f"Quiz not found: {quiz_id}", "embedding_deleted": embedding_deleted},
            status_code=404,
        )
    return {"quiz_id": quiz_id, "deleted": True, "embedding_deleted": embedding_deleted}


@router.post("/api/embeddings/batch")
async def batch_embed(
    request: BatchEmbeddingRequest,
    services: QuizSearchServices = Depends(get_services),
):
    """(Re)embed stored quizzes, all of them or the given ids."""
    try:
        if request.quiz_ids:
            quizzes = await run_store_call(
                services.storage.find_quizzes_by_ids,
                request.quiz_ids,
                status=None,
                timeout=services.settings.store_timeout_seconds,
            )
        else:
            quizzes = await run_store_call(
                services.storage.list_quizzes,
                timeout=services.settings.store_timeout_seconds,
            )
    except Exception as exc:
        return _error_response(exc)

    results = await services.lifecycle.batch_upsert(
        quizzes, only_stale=request.only_stale
    )
    succeeded = sum(1 for result in results if result.success)
    return {
        "results": [result.to_dict() for result in results],
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
    }


@router.get("/api/embeddings/status")
async def embeddings_status(services: QuizSearchServices = Depends(get_services)):
    """Report embedding count and native index availability."""
    try:
        count = await run_store_call(
            services.storage.count_embeddings,
            timeout=services.settings.store_timeout_seconds,
        )
    except Exception as exc:
        return _error_response(exc)
    return {
        "embeddings": count,
        "native_index": services.storage.has_native_index(),
        "embedding_dim": services.settings.embedding_dim,
    }


def create_app(
    services: QuizSearchServices | None = None,
    *,
    db_path: str | None = None,
) -> FastAPI:
    """Build the FastAPI app around prebuilt services, or build them on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: QuizSearchServices | None = None
        if getattr(app.state, "services", None) is None:
            owned = build_services(db_path=db_path)
            app.state.services = owned
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.services = None

    app = FastAPI(
        title="Quiz Search",
        description="Semantic quiz search with tiered fallbacks",
        lifespan=lifespan,
    )
    app.state.services = services
    app.include_router(router)
    return app


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8000, db_path: str | None = None):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(create_app(db_path=db_path), host=host, port=port)


if __name__ == "__main__":
    run_server()
