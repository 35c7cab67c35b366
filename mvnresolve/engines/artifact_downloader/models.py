"""Data models for the artifact downloader engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from mvnresolve.models.dependency import Dependency


@dataclass
class DownloadResult:
    """One slot per requested dependency; ``None`` means skipped or not found."""

    dependencies: list[Dependency]
    files: list[Path | None] = field(default_factory=list)

    @property
    def downloaded(self) -> list[Path]:
        return [f for f in self.files if f is not None]

    @property
    def missing(self) -> list[Dependency]:
        return [dep for dep, f in zip(self.dependencies, self.files) if f is None]


class DownloadCallback(Protocol):
    """Download-complete contract: the files in input order."""

    def __call__(self, files: list[Path | None]) -> None: ...
