"""Fetch and parse ``maven-metadata.xml`` documents."""

from __future__ import annotations

import asyncio
import contextlib
import xml.etree.ElementTree as ET

import structlog

from mvnresolve.core.cache import DiskCache
from mvnresolve.core.http import RepositoryClient
from mvnresolve.engines.graph_resolver.pom import _child, _local, _text
from mvnresolve.exceptions import ArtifactNotFoundError, FetchError, MalformedPomError
from mvnresolve.models.dependency import Dependency, DependencyVersion
from mvnresolve.models.repository import Repository

log = structlog.get_logger("mvnresolve.engine")


def parse_metadata(content: str | bytes, source: str = "<maven-metadata>") -> DependencyVersion:
    """Parse the version list and latest version out of a metadata document.

    ``latest`` is read from ``versioning/latest``, then the legacy top-level
    ``latest``, then ``versioning/release``, then the last listed version.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise MalformedPomError(source, str(exc)) from exc

    versioning = _child(root, "versioning")
    versions: list[str] = []
    if versioning is not None:
        for el in versioning.iter():
            if _local(el.tag) == "version":
                value = _text(el)
                if value:
                    versions.append(value)

    latest = (
        _text(_child(versioning, "latest"))
        or _text(_child(root, "latest"))
        or _text(_child(versioning, "release"))
        or (versions[-1] if versions else None)
        or _text(_child(root, "version"))
        or ""
    )
    return DependencyVersion(available_versions=versions, latest_version=latest)


class MetadataFetcher:
    """Download, disk-cache and parse metadata, memoized per repository."""

    def __init__(
        self,
        client: RepositoryClient,
        cache: DiskCache,
        limiter: asyncio.Semaphore | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._limiter = limiter
        self._memo: dict[tuple[str, str, str], DependencyVersion | None] = {}

    async def get(
        self,
        group_id: str,
        artifact_id: str,
        repository: Repository,
    ) -> DependencyVersion | None:
        """Return the versions of ``group_id:artifact_id``, or None when unavailable."""
        key = (group_id, artifact_id, repository.url)
        if key in self._memo:
            return self._memo[key]

        relative = Dependency(group_id, artifact_id).metadata_path
        url = repository.url_for(relative)
        result: DependencyVersion | None = None
        try:
            async with self._limiter or contextlib.nullcontext():
                path, _ = await self._cache.fetch(self._client, repository, relative)
            result = parse_metadata(path.read_bytes(), source=url)
        except ArtifactNotFoundError:
            log.info("metadata.missing", url=url)
        except MalformedPomError as exc:
            log.warning("metadata.malformed", url=url, error=exc.detail)
        except (FetchError, OSError) as exc:
            log.warning("metadata.fetch_failed", url=url, error=str(exc))

        self._memo[key] = result
        return result
