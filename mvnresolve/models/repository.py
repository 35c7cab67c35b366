"""Maven repository endpoints."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Repository:
    """A repository base URL. Equality is by URL string."""

    url: str

    @classmethod
    def normalized(cls, url: str) -> Repository:
        url = url.strip()
        return cls(url if url.endswith("/") else url + "/")

    def url_for(self, path: str) -> str:
        return self.url + path.lstrip("/")

    def __str__(self) -> str:
        return self.url


GOOGLE_REPOSITORY = Repository("https://maven.google.com/")
CENTRAL_REPOSITORY = Repository("https://repo.maven.apache.org/maven2/")
JCENTER_REPOSITORY = Repository("https://jcenter.bintray.com/")
CLOJARS_REPOSITORY = Repository("https://repo.clojars.org/")
ATLASSIAN_REPOSITORY = Repository(
    "https://packages.atlassian.com/mvn/maven-atlassian-external/"
)

COMMON_MAVEN_REPOSITORIES: tuple[Repository, ...] = (
    GOOGLE_REPOSITORY,
    CENTRAL_REPOSITORY,
    JCENTER_REPOSITORY,
    CLOJARS_REPOSITORY,
    ATLASSIAN_REPOSITORY,
)


def build_repositories(
    extra_urls: Iterable[str] = (),
    *,
    include_defaults: bool = True,
) -> list[Repository]:
    """Return the ordered repository list: caller URLs first, then the public ones.

    URLs are normalized to end with ``/`` and duplicates are dropped, keeping
    the first occurrence so the fallback order stays as given.
    """
    ordered: list[Repository] = []
    for url in extra_urls:
        if not url or not url.strip():
            continue
        repo = Repository.normalized(url)
        if repo not in ordered:
            ordered.append(repo)
    if include_defaults:
        for repo in COMMON_MAVEN_REPOSITORIES:
            if repo not in ordered:
                ordered.append(repo)
    return ordered
