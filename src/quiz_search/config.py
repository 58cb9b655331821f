"""
Configuration helpers for quiz search storage and tiers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DB_PATH = "~/.quiz_search/quiz_search.duckdb"
ENV_DB_PATH = "QUIZ_SEARCH_DB_PATH"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) QUIZ_SEARCH_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}.")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}.")


@dataclass(frozen=True)
class SearchSettings:
    """Process-wide settings shared by the store, lifecycle and search tiers."""

    embedding_dim: int = 768
    native_index: bool = True
    num_candidates: int = 200
    keyword_similarity: float = 0.5
    candidate_oversample: int = 2
    scan_batch_size: int = 512
    max_scan_records: int = 50_000
    provider_timeout_seconds: float = 15.0
    store_timeout_seconds: float = 10.0
    batch_concurrency: int = 4
    max_source_chars: int = 10_000

    def __post_init__(self) -> None:
        if self.embedding_dim <= 0:
            raise ValueError("embedding_dim must be positive")
        if self.num_candidates <= 0:
            raise ValueError("num_candidates must be positive")
        if self.candidate_oversample <= 0:
            raise ValueError("candidate_oversample must be positive")
        if self.scan_batch_size <= 0:
            raise ValueError("scan_batch_size must be positive")
        if self.max_scan_records <= 0:
            raise ValueError("max_scan_records must be positive")
        if self.provider_timeout_seconds <= 0 or self.store_timeout_seconds <= 0:
            raise ValueError("timeouts must be positive")
        if self.batch_concurrency <= 0:
            raise ValueError("batch_concurrency must be positive")
        if not -1.0 <= self.keyword_similarity <= 1.0:
            raise ValueError("keyword_similarity must be between -1 and 1")

    @classmethod
    def from_env(cls) -> "SearchSettings":
        """Build settings from QUIZ_SEARCH_* environment variables."""
        defaults = cls()
        return cls(
            embedding_dim=_env_int("QUIZ_SEARCH_EMBEDDING_DIM", defaults.embedding_dim),
            native_index=_env_bool("QUIZ_SEARCH_NATIVE_INDEX", defaults.native_index),
            num_candidates=_env_int(
                "QUIZ_SEARCH_NUM_CANDIDATES", defaults.num_candidates
            ),
            keyword_similarity=_env_float(
                "QUIZ_SEARCH_KEYWORD_SIMILARITY", defaults.keyword_similarity
            ),
            candidate_oversample=_env_int(
                "QUIZ_SEARCH_CANDIDATE_OVERSAMPLE", defaults.candidate_oversample
            ),
            scan_batch_size=_env_int(
                "QUIZ_SEARCH_SCAN_BATCH_SIZE", defaults.scan_batch_size
            ),
            max_scan_records=_env_int(
                "QUIZ_SEARCH_MAX_SCAN_RECORDS", defaults.max_scan_records
            ),
            provider_timeout_seconds=_env_float(
                "QUIZ_SEARCH_PROVIDER_TIMEOUT", defaults.provider_timeout_seconds
            ),
            store_timeout_seconds=_env_float(
                "QUIZ_SEARCH_STORE_TIMEOUT", defaults.store_timeout_seconds
            ),
            batch_concurrency=_env_int(
                "QUIZ_SEARCH_BATCH_CONCURRENCY", defaults.batch_concurrency
            ),
            max_source_chars=_env_int(
                "QUIZ_SEARCH_MAX_SOURCE_CHARS", defaults.max_source_chars
            ),
        )
