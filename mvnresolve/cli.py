"""CLI entry point: mvnresolve.

Subcommands:
    mvnresolve resolve com.example:lib:1.0 -o out/   # Resolve, download and copy
    mvnresolve clean --yes                           # Delete the download cache
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import replace
from pathlib import Path

import click

from mvnresolve.core.cache import DiskCache
from mvnresolve.core.config import Settings
from mvnresolve.core.http import RepositoryClient
from mvnresolve.core.logging import setup_logging
from mvnresolve.engines.artifact_downloader import app_inventor_baseline
from mvnresolve.engines.graph_resolver import RangeStrategy
from mvnresolve.exceptions import InvalidCoordinateError, RootNotFoundError
from mvnresolve.models.dependency import Dependency
from mvnresolve.pipeline import CopyToDirectory, PipelineResult, ResolvePipeline

_STATUS_ICONS = {
    "completed": "+",
    "failed": "!",
    "skipped": "-",
    "running": "~",
    "pending": ".",
}


def _settings(cache_dir: Path | None) -> Settings:
    settings = Settings.from_env()
    if cache_dir is not None:
        settings = replace(settings, cache_dir=cache_dir)
    return settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """mvnresolve: resolve and download Maven dependency graphs."""
    setup_logging(level="DEBUG" if verbose else None)


@main.command("resolve")
@click.argument("coordinate")
@click.option(
    "-o",
    "--output",
    "output_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory the resolved files are copied to",
)
@click.option(
    "-r",
    "--repository",
    "repositories",
    multiple=True,
    help="Extra repository URL, tried before the public ones (repeatable)",
)
@click.option("-j", "--jar-only", is_flag=True, help="Extract classes.jar from AAR files")
@click.option(
    "--app-inventor",
    is_flag=True,
    help="Skip libraries already bundled with App Inventor",
)
@click.option(
    "--range-strategy",
    type=click.Choice([s.value for s in RangeStrategy]),
    default=None,
    help="How version ranges are resolved",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Cache directory (default: $MVNRESOLVE_CACHE_DIR or ~/.mvnresolve/caches)",
)
def resolve(
    coordinate: str,
    output_dir: Path,
    repositories: tuple[str, ...],
    jar_only: bool,
    app_inventor: bool,
    range_strategy: str | None,
    cache_dir: Path | None,
) -> None:
    """Resolve COORDINATE (group:artifact[:version]) and copy its files to OUTPUT."""
    try:
        root = Dependency.parse(coordinate)
    except InvalidCoordinateError as e:
        raise click.BadParameter(str(e), param_hint="COORDINATE") from e

    settings = _settings(cache_dir)

    async def _run() -> PipelineResult:
        async with RepositoryClient(
            timeout=settings.http_timeout, max_retries=settings.max_retries
        ) as client:
            pipeline = ResolvePipeline.create(
                client,
                settings,
                extra_repositories=repositories,
                jar_only=jar_only,
                baseline=app_inventor_baseline() if app_inventor else None,
                range_strategy=range_strategy,
                post_processors=[CopyToDirectory(output_dir)],
            )
            click.echo(f"Resolving {root.group_id}:{root.artifact_id} ...")
            try:
                return await pipeline.run(root, raise_on_missing=True)
            finally:
                _print_summary(pipeline)

    try:
        result = asyncio.run(_run())
    except RootNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Searched in:", err=True)
        for url in e.tried_urls:
            click.echo(f"  {url}", err=True)
        sys.exit(1)

    resolution = result.resolution
    click.echo(f"\nResolved {resolution.root}")
    click.echo(f"  POM: {resolution.pom_url}")
    click.echo(f"  Dependencies: {len(resolution.dependencies)}")
    for dep in resolution.dependencies:
        click.echo(f"    {dep}")
    if resolution.not_found:
        click.echo(f"  Not found: {len(resolution.not_found)}")
        for dep in resolution.not_found:
            click.echo(f"    {dep}")
    click.echo(f"  Files copied to {output_dir}: {len(result.files)}")


def _print_summary(pipeline: ResolvePipeline) -> None:
    summary = pipeline.progress.get_summary()
    click.echo(f"\nPipeline summary (total: {summary['total_duration']}s):")
    for p in summary["phases"]:
        icon = _STATUS_ICONS.get(p["status"], "?")
        duration = f" ({p['duration']}s)" if p["duration"] else ""
        text = p["detail"] or p["error"]
        detail = f" - {text}" if text else ""
        click.echo(f"  [{icon}] {p['phase']}{duration}{detail}")


@main.command("clean")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Cache directory (default: $MVNRESOLVE_CACHE_DIR or ~/.mvnresolve/caches)",
)
def clean(yes: bool, cache_dir: Path | None) -> None:
    """Delete every cached POM, metadata document and artifact."""
    settings = _settings(cache_dir)
    if not yes:
        click.confirm(f"Delete the cache at {settings.cache_dir}?", abort=True)
    DiskCache(settings.cache_dir).clear()
    click.echo(f"Cache cleared: {settings.cache_dir}")
