"""Artifact downloader engine — cached binary downloads for resolved dependencies."""

from mvnresolve.engines.artifact_downloader.baseline import (
    BaselineFilter,
    CoordinateBaseline,
    app_inventor_baseline,
)
from mvnresolve.engines.artifact_downloader.downloader import ArtifactDownloader
from mvnresolve.engines.artifact_downloader.models import DownloadCallback, DownloadResult

__all__ = [
    "ArtifactDownloader",
    "BaselineFilter",
    "CoordinateBaseline",
    "DownloadCallback",
    "DownloadResult",
    "app_inventor_baseline",
]
