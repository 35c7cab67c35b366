"""Artifact downloader — fetch the binary of every resolved dependency."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import structlog

from mvnresolve.core.cache import DiskCache
from mvnresolve.core.http import RepositoryClient
from mvnresolve.engines.artifact_downloader.archive import (
    extract_classes_jar,
    has_res_directory,
    is_aar,
)
from mvnresolve.engines.artifact_downloader.baseline import BaselineFilter
from mvnresolve.engines.artifact_downloader.models import DownloadCallback, DownloadResult
from mvnresolve.exceptions import ArtifactNotFoundError, FetchError
from mvnresolve.models.dependency import Dependency
from mvnresolve.models.repository import Repository
from mvnresolve.progress import ProgressTracker

log = structlog.get_logger("mvnresolve.engine")

_DEFAULT_CONCURRENCY = 16


class ArtifactDownloader:
    """Download ``.jar`` / ``.aar`` files into the disk cache.

    Each dependency is handled independently: repositories are tried in order,
    a missing artifact yields a ``None`` slot and never aborts the batch.
    In *jar_only* mode AARs are reduced to their ``classes.jar``.
    """

    def __init__(
        self,
        client: RepositoryClient,
        cache: DiskCache,
        repositories: Sequence[Repository],
        *,
        jar_only: bool = False,
        baseline: BaselineFilter | None = None,
        concurrency: int = _DEFAULT_CONCURRENCY,
        progress: ProgressTracker | None = None,
    ) -> None:
        if not repositories:
            raise ValueError("at least one repository is required")
        self._client = client
        self._cache = cache
        self._repositories = list(repositories)
        self._jar_only = jar_only
        self._baseline = baseline
        self._concurrency = max(concurrency, 1)
        self._progress = progress

    async def download(
        self,
        dependencies: Sequence[Dependency],
        callback: DownloadCallback | None = None,
    ) -> DownloadResult:
        sem = asyncio.Semaphore(self._concurrency)
        deps = list(dependencies)
        files = await asyncio.gather(*(self._download_one(dep, sem) for dep in deps))
        result = DownloadResult(dependencies=deps, files=list(files))

        log.info(
            "downloader.finished",
            requested=len(deps),
            downloaded=len(result.downloaded),
            missing=len(deps) - len(result.downloaded),
        )
        if callback is not None:
            callback(result.files)
        return result

    # ── per artifact ───────────────────────────────────────────────────────

    async def _download_one(self, dep: Dependency, sem: asyncio.Semaphore) -> Path | None:
        try:
            return await self._fetch(dep, sem)
        except Exception:
            log.exception("downloader.failed", dependency=str(dep))
            return None

    async def _fetch(self, dep: Dependency, sem: asyncio.Semaphore) -> Path | None:
        if dep.type.lower() == "pom":
            return None
        if self._baseline is not None and self._baseline(dep):
            log.debug("downloader.baseline_skipped", dependency=str(dep))
            return None

        relative = dep.artifact_path(dep.archive_extension)
        jar_path = self._cache.path_for(dep.artifact_path("jar"))
        cached = jar_path if self._jar_only else self._cache.path_for(relative)
        if cached.is_file():
            log.debug("downloader.cache_hit", file=str(cached))
            return cached

        path: Path | None = None
        for repository in self._repositories:
            url = repository.url_for(relative)
            self._event("artifact_downloading", url)
            try:
                async with sem:
                    path, _ = await self._cache.fetch(self._client, repository, relative)
            except ArtifactNotFoundError:
                log.debug("downloader.missing", url=url)
                continue
            except (FetchError, OSError) as exc:
                log.warning("downloader.fetch_failed", url=url, error=str(exc))
                continue
            self._event("artifact_downloaded", url)
            break

        if path is None:
            log.warning("downloader.not_found", dependency=str(dep))
            return None

        if self._jar_only and is_aar(path):
            log.debug("downloader.extracting_classes", file=path.name)
            await asyncio.to_thread(extract_classes_jar, path, jar_path)
            if await asyncio.to_thread(has_res_directory, path):
                log.warning(
                    "downloader.resources_dropped",
                    file=path.name,
                    detail="resource files are not included in jar-only output",
                )
            return jar_path
        return path

    def _event(self, kind: str, url: str) -> None:
        log.debug(f"downloader.{kind}", url=url)
        if self._progress is not None:
            self._progress.artifact_event(kind, url)
