"""Resolve → download → post-process pipeline."""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from mvnresolve.core.cache import DiskCache
from mvnresolve.core.config import Settings
from mvnresolve.core.http import RepositoryClient
from mvnresolve.engines.artifact_downloader import ArtifactDownloader, BaselineFilter, DownloadResult
from mvnresolve.engines.graph_resolver import GraphResolver, RangeStrategy, ResolveResult
from mvnresolve.exceptions import RootNotFoundError
from mvnresolve.models.dependency import Dependency
from mvnresolve.models.repository import build_repositories
from mvnresolve.progress import ProgressTracker

log = structlog.get_logger(__name__)


class PostProcessor(Protocol):
    """A stage run on the downloaded files, e.g. merging or copying them.

    Called from a worker thread; returns the files handed to the next stage.
    """

    name: str

    def __call__(self, files: list[Path], resolution: ResolveResult) -> list[Path]: ...


class CopyToDirectory:
    """Copy every file into *output_dir*, overwriting same-named files."""

    name = "copy"

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def __call__(self, files: list[Path], resolution: ResolveResult) -> list[Path]:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        copied: list[Path] = []
        for src in files:
            dest = self.output_dir / src.name
            shutil.copy2(src, dest)
            copied.append(dest)
        log.info("pipeline.copied", count=len(copied), output_dir=str(self.output_dir))
        return copied


@dataclass
class PipelineResult:
    resolution: ResolveResult
    download: DownloadResult | None = None
    files: list[Path] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.resolution.found


class ResolvePipeline:
    """Run the resolver, feed its artifacts to the downloader, then post-process.

    Phases are reported to :attr:`progress` as ``resolve``, ``download`` and
    ``post-process``.
    """

    def __init__(
        self,
        resolver: GraphResolver,
        downloader: ArtifactDownloader,
        post_processors: Sequence[PostProcessor] = (),
        progress: ProgressTracker | None = None,
    ) -> None:
        self.resolver = resolver
        self.downloader = downloader
        self.post_processors = list(post_processors)
        self.progress = progress or ProgressTracker()

    @classmethod
    def create(
        cls,
        client: RepositoryClient,
        settings: Settings,
        *,
        extra_repositories: Sequence[str] = (),
        jar_only: bool = False,
        baseline: BaselineFilter | None = None,
        range_strategy: RangeStrategy | str | None = None,
        post_processors: Sequence[PostProcessor] = (),
        progress: ProgressTracker | None = None,
    ) -> ResolvePipeline:
        """Wire both engines from *settings*; explicit arguments take precedence."""
        progress = progress or ProgressTracker()
        cache = DiskCache(settings.cache_dir)
        repositories = build_repositories([*extra_repositories, *settings.repositories])
        resolver = GraphResolver(
            client,
            cache,
            repositories,
            concurrency=settings.concurrency,
            range_strategy=range_strategy or settings.range_strategy,
            progress=progress,
        )
        downloader = ArtifactDownloader(
            client,
            cache,
            repositories,
            jar_only=jar_only,
            baseline=baseline,
            concurrency=settings.concurrency,
            progress=progress,
        )
        return cls(resolver, downloader, post_processors, progress)

    async def run(self, root: Dependency, *, raise_on_missing: bool = False) -> PipelineResult:
        progress = self.progress

        progress.start_phase("resolve")
        try:
            resolution = await self.resolver.resolve(root)
        except Exception as e:
            progress.fail_phase("resolve", str(e))
            raise
        if not resolution.found:
            progress.fail_phase("resolve", f"{root} not found in any repository")
            progress.skip_phase("download", "root artifact not found")
            progress.skip_phase("post-process", "root artifact not found")
            if raise_on_missing:
                raise RootNotFoundError(root, resolution.tried_urls)
            return PipelineResult(resolution)
        progress.complete_phase(
            "resolve", detail=f"{len(resolution.dependencies)} dependencies"
        )

        progress.start_phase("download")
        try:
            download = await self.downloader.download(resolution.artifacts)
        except Exception as e:
            progress.fail_phase("download", str(e))
            raise
        files = download.downloaded
        progress.complete_phase(
            "download",
            detail=f"{len(files)} files, {len(download.missing)} skipped or missing",
        )

        if not self.post_processors:
            progress.skip_phase("post-process", "no post-processors configured")
            return PipelineResult(resolution, download, files)

        progress.start_phase("post-process")
        for processor in self.post_processors:
            try:
                files = await asyncio.to_thread(processor, files, resolution)
            except Exception as e:
                log.exception("pipeline.post_processor_failed", processor=processor.name)
                progress.fail_phase("post-process", f"{processor.name}: {e}")
                raise
        progress.complete_phase(
            "post-process", detail=", ".join(p.name for p in self.post_processors)
        )
        return PipelineResult(resolution, download, files)
