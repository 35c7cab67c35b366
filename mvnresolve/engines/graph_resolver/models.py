"""Data models for the graph resolver engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from mvnresolve.models.dependency import Dependency
from mvnresolve.models.repository import Repository


@dataclass
class ResolveResult:
    """Outcome of one resolution run.

    ``dependencies`` holds the transitive set without the root, one entry per
    coordinate. ``tried_urls`` is only filled when the root was not found;
    ``not_found`` and ``skipped`` list dropped branches and soft-skipped POMs.
    """

    found: bool
    root: Dependency
    pom_url: str = ""
    repository: Repository | None = None
    dependencies: list[Dependency] = field(default_factory=list)
    tried_urls: list[str] = field(default_factory=list)
    not_found: list[Dependency] = field(default_factory=list)
    skipped: list[Dependency] = field(default_factory=list)

    @property
    def artifacts(self) -> list[Dependency]:
        """The root followed by its dependencies; empty when the root is missing."""
        if not self.found:
            return []
        return [self.root, *self.dependencies]


class ResolveCallback(Protocol):
    """Resolve-complete contract consumed by front ends and post-processors."""

    def __call__(
        self,
        found: bool,
        pom_url: str,
        repository: Repository | None,
        dependencies: list[Dependency],
        root: Dependency,
    ) -> None: ...
