"""Custom exceptions for mvnresolve."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mvnresolve.models.dependency import Dependency


class ResolverError(Exception):
    """Base exception for all resolver errors."""


class FetchError(ResolverError):
    """Raised when a file cannot be fetched from a repository."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"failed to fetch {url}" + (f": {reason}" if reason else ""))


class ArtifactNotFoundError(FetchError):
    """Raised when a repository answers 404 for a file."""

    def __init__(self, url: str) -> None:
        super().__init__(url, "not found")


class MalformedPomError(ResolverError):
    """Raised when a POM or metadata document is not well-formed XML."""

    def __init__(self, source: str, detail: str = "") -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"malformed XML in {source}" + (f": {detail}" if detail else ""))


class InvalidCoordinateError(ResolverError, ValueError):
    """Raised when a coordinate string cannot be parsed."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(
            f"cannot parse dependency {text!r}; expected 'group:artifact[:version]' "
            "or a Gradle implementation declaration"
        )


class RootNotFoundError(ResolverError):
    """Raised when the root artifact is missing from every repository."""

    def __init__(self, dependency: Dependency, tried_urls: list[str]) -> None:
        self.dependency = dependency
        self.tried_urls = tried_urls
        super().__init__(
            f"didn't find artifact {dependency} in any repository; searched "
            f"{len(tried_urls)} location(s)"
        )


class ArchiveError(ResolverError):
    """Raised when an AAR cannot be read or has no ``classes.jar``."""

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"cannot extract classes from {path}" + (f": {detail}" if detail else ""))
