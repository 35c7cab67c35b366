"""mvnresolve: Maven dependency graph resolver and artifact downloader."""

__version__ = "0.1.0"

from mvnresolve.engines.artifact_downloader import (
    ArtifactDownloader,
    CoordinateBaseline,
    DownloadResult,
    app_inventor_baseline,
)
from mvnresolve.engines.graph_resolver import GraphResolver, RangeStrategy, ResolveResult
from mvnresolve.models import Dependency, Repository, build_repositories
from mvnresolve.pipeline import CopyToDirectory, PipelineResult, ResolvePipeline

__all__ = [
    "ArtifactDownloader",
    "CoordinateBaseline",
    "CopyToDirectory",
    "Dependency",
    "DownloadResult",
    "GraphResolver",
    "PipelineResult",
    "RangeStrategy",
    "Repository",
    "ResolvePipeline",
    "ResolveResult",
    "app_inventor_baseline",
    "build_repositories",
]
