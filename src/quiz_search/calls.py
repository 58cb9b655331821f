"""
Timeout-bounded wrappers for provider and store calls.

DuckDB calls block, so they run in a worker thread; every call is bounded by
``asyncio.wait_for`` and a timeout is reported as the matching domain error.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .errors import EmbeddingProviderError, StoreUnavailableError

T = TypeVar("T")


async def run_store_call(
    func: Callable[..., T],
    /,
    *args: Any,
    timeout: float,
    **kwargs: Any,
) -> T:
    """Run a blocking store method in a thread with a timeout."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args, **kwargs), timeout=timeout
        )
    except asyncio.TimeoutError:
        name = getattr(func, "__name__", "store call")
        raise StoreUnavailableError(f"{name} timed out after {timeout}s.") from None


async def run_provider_call(call: Awaitable[T], *, timeout: float) -> T:
    """Await an embedding provider call with a timeout."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        raise EmbeddingProviderError(
            f"Embedding provider timed out after {timeout}s."
        ) from None
