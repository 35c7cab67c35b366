"""Shared fixtures: an in-memory Maven repository served through httpx.MockTransport."""

from __future__ import annotations

from collections import Counter

import httpx
import pytest

from mvnresolve.core.cache import DiskCache
from mvnresolve.core.http import RepositoryClient
from mvnresolve.models.dependency import Dependency
from mvnresolve.models.repository import Repository

_POM_NS = "http://maven.apache.org/POM/4.0.0"


def _element(name: str, value: str | None) -> str:
    return f"<{name}>{value}</{name}>" if value is not None else ""


class FakeMavenRepo:
    """Files keyed by absolute URL; everything else answers 404.

    Every request is counted per URL so tests can assert on network traffic.
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.statuses: dict[str, int] = {}
        self.requests: Counter[str] = Counter()

    # ── transport ─────────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests[url] += 1
        if url in self.statuses:
            return httpx.Response(self.statuses[url])
        if url in self.files:
            return httpx.Response(200, content=self.files[url])
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def total_requests(self) -> int:
        return sum(self.requests.values())

    # ── content ───────────────────────────────────────────────────────────

    def add(self, repository: Repository, path: str, body: str | bytes) -> str:
        url = repository.url_for(path)
        self.files[url] = body.encode() if isinstance(body, str) else body
        return url

    @staticmethod
    def dependency(
        group_id: str,
        artifact_id: str,
        version: str | None = None,
        *,
        scope: str | None = None,
        type: str | None = None,
    ) -> str:
        return (
            "<dependency>"
            + _element("groupId", group_id)
            + _element("artifactId", artifact_id)
            + _element("version", version)
            + _element("scope", scope)
            + _element("type", type)
            + "</dependency>"
        )

    @staticmethod
    def pom(
        coordinate: str,
        *,
        packaging: str | None = None,
        parent: str | None = None,
        properties: dict[str, str] | None = None,
        dependencies: list[str] = (),
        managed: list[str] = (),
    ) -> str:
        group_id, artifact_id, version = coordinate.split(":")
        parts = [f'<project xmlns="{_POM_NS}">', "<modelVersion>4.0.0</modelVersion>"]
        if parent:
            p_group, p_artifact, p_version = parent.split(":")
            parts.append(
                "<parent>"
                + _element("groupId", p_group)
                + _element("artifactId", p_artifact)
                + _element("version", p_version)
                + "</parent>"
            )
        parts += [
            _element("groupId", group_id or None),
            _element("artifactId", artifact_id),
            _element("version", version or None),
            _element("packaging", packaging),
        ]
        if properties:
            parts.append(
                "<properties>"
                + "".join(_element(k, v) for k, v in properties.items())
                + "</properties>"
            )
        if managed:
            parts.append(
                "<dependencyManagement><dependencies>"
                + "".join(managed)
                + "</dependencies></dependencyManagement>"
            )
        if dependencies:
            parts.append("<dependencies>" + "".join(dependencies) + "</dependencies>")
        parts.append("</project>")
        return "".join(parts)

    def add_pom(self, repository: Repository, coordinate: str, body: str | None = None, **kw) -> str:
        """Publish a POM for ``g:a:v``; *body* defaults to one built from *kw*."""
        group_id, artifact_id, version = coordinate.split(":")
        dep = Dependency(group_id, artifact_id, version)
        return self.add(repository, dep.pom_path, body if body is not None else self.pom(coordinate, **kw))

    def add_metadata(
        self,
        repository: Repository,
        coordinate: str,
        versions: list[str],
        latest: str | None = None,
    ) -> str:
        group_id, artifact_id = coordinate.split(":")
        body = (
            "<metadata>"
            + _element("groupId", group_id)
            + _element("artifactId", artifact_id)
            + "<versioning>"
            + _element("latest", latest)
            + "<versions>"
            + "".join(_element("version", v) for v in versions)
            + "</versions></versioning></metadata>"
        )
        return self.add(repository, Dependency(group_id, artifact_id).metadata_path, body)

    def add_artifact(
        self,
        repository: Repository,
        coordinate: str,
        body: bytes = b"PK-fake-jar",
        extension: str = "jar",
    ) -> str:
        group_id, artifact_id, version = coordinate.split(":")
        dep = Dependency(group_id, artifact_id, version)
        return self.add(repository, dep.artifact_path(extension), body)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def repo_a() -> Repository:
    return Repository("https://repo-a.example/maven2/")


@pytest.fixture
def repo_b() -> Repository:
    return Repository("https://repo-b.example/maven2/")


@pytest.fixture
def maven() -> FakeMavenRepo:
    return FakeMavenRepo()


@pytest.fixture
def client(maven: FakeMavenRepo) -> RepositoryClient:
    return RepositoryClient(transport=maven.transport, max_retries=1)


@pytest.fixture
def cache(tmp_path) -> DiskCache:
    return DiskCache(tmp_path / "cache")
