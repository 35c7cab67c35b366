"""Runtime settings read from the environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

_DEFAULT_CACHE_DIR = Path.home() / ".mvnresolve" / "caches"
_LIST_SPLIT_RE = re.compile(r"[,\s]+")


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def _env_list(key: str) -> list[str]:
    raw = os.environ.get(key, "")
    return [item for item in _LIST_SPLIT_RE.split(raw) if item]


@dataclass(frozen=True)
class Settings:
    """Knobs shared by the resolver, the downloader and the CLI."""

    cache_dir: Path = _DEFAULT_CACHE_DIR
    concurrency: int = 16
    http_timeout: float = 30.0
    max_retries: int = 3
    repositories: list[str] = field(default_factory=list)
    range_strategy: str = "in_range"

    @classmethod
    def from_env(cls) -> Settings:
        cache_dir = os.environ.get("MVNRESOLVE_CACHE_DIR")
        return cls(
            cache_dir=Path(cache_dir).expanduser() if cache_dir else _DEFAULT_CACHE_DIR,
            concurrency=max(_env_int("MVNRESOLVE_CONCURRENCY", 16), 1),
            http_timeout=_env_float("MVNRESOLVE_HTTP_TIMEOUT", 30.0),
            max_retries=max(_env_int("MVNRESOLVE_MAX_RETRIES", 3), 1),
            repositories=_env_list("MVNRESOLVE_REPOSITORIES"),
            range_strategy=os.environ.get("MVNRESOLVE_RANGE_STRATEGY", "in_range").lower(),
        )
