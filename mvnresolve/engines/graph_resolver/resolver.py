"""Graph resolver — transitive POM discovery for one root artifact.

Every node runs as its own asyncio task. Parents and imported BOMs are
resolved inline, before the node's dependencies, because they supply
properties and managed versions; declared dependencies fan out as sibling
tasks. A :class:`_WorkGroup` tracks the tasks and the run ends once it
drains.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from mvnresolve.core.cache import DiskCache
from mvnresolve.core.http import RepositoryClient
from mvnresolve.engines.graph_resolver.metadata import MetadataFetcher
from mvnresolve.engines.graph_resolver.models import ResolveCallback, ResolveResult
from mvnresolve.engines.graph_resolver.pom import ParsedPom, PomDependency, parse_pom
from mvnresolve.engines.graph_resolver.registry import Key, NodeState, ResolutionRegistry
from mvnresolve.engines.graph_resolver.versions import (
    RangeStrategy,
    VersionResolver,
    substitute_properties,
)
from mvnresolve.exceptions import ArtifactNotFoundError, FetchError, MalformedPomError
from mvnresolve.models.dependency import Dependency, ProjectProperty
from mvnresolve.models.repository import Repository
from mvnresolve.progress import ProgressTracker

log = structlog.get_logger("mvnresolve.engine")

# Group ids with POMs known to be broken in public repositories.
_KNOWN_BAD_GROUP_MARKERS = ("plexus",)
_DEFAULT_CONCURRENCY = 16


class _WorkGroup:
    """Wait-group over spawned tasks; :meth:`wait` returns once all finished."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        self._idle.clear()
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error(
                "resolver.task_crashed",
                task=task.get_name(),
                exc_info=task.exception(),
            )
        if not self._tasks:
            self._idle.set()

    async def wait(self) -> None:
        await self._idle.wait()


@dataclass
class _NodeInfo:
    finished: asyncio.Event = field(default_factory=asyncio.Event)
    properties: list[ProjectProperty] = field(default_factory=list)
    parent: Dependency | None = None
    imports: list[Dependency] = field(default_factory=list)


class ResolutionContext:
    """State owned by a single resolution run."""

    def __init__(
        self,
        root: Dependency,
        versions: VersionResolver,
        limiter: asyncio.Semaphore,
    ) -> None:
        self.root = root
        self.versions = versions
        self.limiter = limiter
        self.registry = ResolutionRegistry()
        self.work = _WorkGroup()
        self.nodes: dict[Key, _NodeInfo] = {}
        # node key -> key of the parent/BOM it is blocked on
        self.waiting_on: dict[Key, Key] = {}
        self.done = False

        self.root_found = False
        self.root_pom_url = ""
        self.root_repository: Repository | None = None
        self.tried_urls: list[str] = []
        self.not_found: list[Dependency] = []
        self.skipped: list[Dependency] = []

    def finish(self) -> None:
        """Mark the run complete; later results can no longer touch the registry."""
        self.done = True
        self.registry.close()


def _is_known_bad(dep: Dependency) -> bool:
    return any(marker in dep.group_id for marker in _KNOWN_BAD_GROUP_MARKERS)


def _builtin_properties(
    pom: ParsedPom,
    dep: Dependency,
    parent: Dependency | None,
) -> list[ProjectProperty]:
    values = {
        "groupId": pom.group_id or (parent.group_id if parent else "") or dep.group_id,
        "artifactId": pom.artifact_id or dep.artifact_id,
        "version": pom.version or (parent.version if parent else "") or dep.version,
    }
    if parent is not None:
        values["parent.groupId"] = parent.group_id
        values["parent.artifactId"] = parent.artifact_id
        values["parent.version"] = parent.version
    return [
        ProjectProperty(prefix + name, value)
        for prefix in ("project.", "pom.")
        for name, value in values.items()
    ]


class GraphResolver:
    """Resolve the transitive dependency graph of a root artifact.

    Each call to :meth:`resolve` gets its own :class:`ResolutionContext`, so
    concurrent runs on one resolver never share registry state. Network
    fetches (POMs and metadata) are capped at *concurrency*.
    """

    def __init__(
        self,
        client: RepositoryClient,
        cache: DiskCache,
        repositories: Sequence[Repository],
        *,
        concurrency: int = _DEFAULT_CONCURRENCY,
        range_strategy: RangeStrategy | str = RangeStrategy.IN_RANGE,
        progress: ProgressTracker | None = None,
    ) -> None:
        if not repositories:
            raise ValueError("at least one repository is required")
        self._client = client
        self._cache = cache
        self._repositories = list(repositories)
        self._concurrency = max(concurrency, 1)
        self._range_strategy = RangeStrategy(range_strategy)
        self._progress = progress

    # ── public ─────────────────────────────────────────────────────────────

    async def resolve(
        self,
        root: Dependency,
        callback: ResolveCallback | None = None,
    ) -> ResolveResult:
        limiter = asyncio.Semaphore(self._concurrency)
        metadata = MetadataFetcher(self._client, self._cache, limiter)
        ctx = ResolutionContext(root, VersionResolver(metadata, self._range_strategy), limiter)

        log.info("resolver.start", root=str(root), repositories=len(self._repositories))
        ctx.work.spawn(self._resolve_node(ctx, root, None), name=f"resolve:{root}")
        await ctx.work.wait()
        ctx.finish()

        dependencies = ctx.registry.dependencies(root) if ctx.root_found else []
        result = ResolveResult(
            found=ctx.root_found,
            root=root,
            pom_url=ctx.root_pom_url,
            repository=ctx.root_repository,
            dependencies=dependencies,
            tried_urls=ctx.tried_urls,
            not_found=ctx.not_found,
            skipped=ctx.skipped,
        )
        log.info(
            "resolver.finished",
            root=str(root),
            found=result.found,
            dependencies=len(result.dependencies),
            not_found=len(result.not_found),
        )
        if callback is not None:
            callback(result.found, result.pom_url, result.repository, result.dependencies, root)
        return result

    # ── per node ───────────────────────────────────────────────────────────

    async def _resolve_node(
        self,
        ctx: ResolutionContext,
        dep: Dependency,
        owner: Dependency | None,
        *,
        wait: bool = False,
    ) -> _NodeInfo | None:
        if ctx.done:
            return None
        if owner is not None:
            ctx.registry.link(owner, dep)
        existing = ctx.nodes.get(dep.key)
        if existing is not None:
            if wait:
                await existing.finished.wait()
            return existing
        if not ctx.registry.claim(dep, owner):
            return None

        info = _NodeInfo()
        ctx.nodes[dep.key] = info
        try:
            await self._process(ctx, dep, owner, info)
        except Exception:
            log.exception("resolver.node_failed", dependency=str(dep))
            self._not_found(ctx, dep, owner, [])
        finally:
            info.finished.set()
        return info

    async def _process(
        self,
        ctx: ResolutionContext,
        dep: Dependency,
        owner: Dependency | None,
        info: _NodeInfo,
    ) -> None:
        located = await self._locate_pom(ctx, dep, owner)
        if located is None:
            return
        repository, pom_url, path = located
        dep.repository = repository
        if owner is None:
            ctx.root_found = True
            ctx.root_pom_url = pom_url
            ctx.root_repository = repository
        if path is None:
            ctx.skipped.append(dep)
            ctx.registry.set_state(dep, NodeState.DONE)
            return

        ctx.registry.set_state(dep, NodeState.PARSING)
        self._event("pom_parsing", pom_url)
        try:
            pom = parse_pom(path.read_bytes(), source=pom_url)
        except MalformedPomError as exc:
            log.warning("resolver.malformed_pom", url=pom_url, error=exc.detail)
            ctx.skipped.append(dep)
            ctx.registry.set_state(dep, NodeState.DONE)
            return
        if pom.packaging:
            dep.type = pom.packaging

        # parent first: it contributes properties and managed versions
        own = list(pom.properties)
        parent: Dependency | None = None
        parent_info: _NodeInfo | None = None
        if pom.parent is not None:
            parent = await self._declared(
                ctx, pom.parent, own + _builtin_properties(pom, dep, None), repository, kind="parent"
            )
            if parent is not None:
                parent_info = await self._resolve_inline(ctx, dep, parent)

        info.parent = parent
        info.properties = (
            own
            + _builtin_properties(pom, dep, parent)
            + (parent_info.properties if parent_info else [])
        )

        for decl in pom.managed:
            pin = await self._declared(ctx, decl, info.properties, repository, kind="managed")
            if pin is None:
                continue
            if pin.scope == "import" and pin.type == "pom":
                if await self._resolve_inline(ctx, dep, pin) is not None:
                    info.imports.append(pin)
                continue
            ctx.registry.add_managed(pin, dep)

        lineage = self._lineage(ctx, dep)
        children: list[Dependency] = []
        for decl in pom.dependencies:
            child = await self._declared(ctx, decl, info.properties, repository, lineage)
            if child is not None:
                children.append(child)

        ctx.registry.set_state(dep, NodeState.DONE)
        self._event("pom_parsed", pom_url)

        for child in children:
            if ctx.done:
                break
            agreed = ctx.registry.preferred_version(child)
            if agreed != child.version:
                log.debug(
                    "resolver.version_mediated",
                    dependency=f"{child.group_id}:{child.artifact_id}",
                    requested=child.version,
                    agreed=agreed,
                )
                child.version = agreed
            ctx.work.spawn(self._resolve_node(ctx, child, dep), name=f"resolve:{child}")

    async def _locate_pom(
        self,
        ctx: ResolutionContext,
        dep: Dependency,
        owner: Dependency | None,
    ) -> tuple[Repository, str, Path | None] | None:
        """Find the first repository serving *dep*'s POM.

        Returns ``(repository, url, path)``; ``path`` is None for known-bad
        artifacts, which are reported as found without being fetched.
        """
        tried: list[str] = []
        for repository in self._repositories:
            if ctx.done:
                return None
            if not dep.version:
                latest = await ctx.versions.latest(dep.group_id, dep.artifact_id, repository)
                if latest is None:
                    tried.append(repository.url_for(dep.metadata_path))
                    continue
                if not self._pin_version(ctx, dep, latest):
                    return None

            url = repository.url_for(dep.pom_path)
            if _is_known_bad(dep):
                log.warning("resolver.known_bad_skipped", dependency=str(dep), url=url)
                return repository, url, None

            ctx.registry.set_state(dep, NodeState.FETCHING_POM)
            cached = self._cache.path_for(dep.pom_path).is_file()
            if not cached:
                self._event("pom_downloading", url)
            try:
                async with ctx.limiter:
                    path, _ = await self._cache.fetch(self._client, repository, dep.pom_path)
            except ArtifactNotFoundError:
                log.debug("resolver.pom_missing", url=url)
                tried.append(url)
                continue
            except (FetchError, OSError) as exc:
                log.warning("resolver.pom_fetch_failed", url=url, error=str(exc))
                tried.append(url)
                continue
            if not cached:
                self._event("pom_downloaded", url)
            return repository, url, path

        self._not_found(ctx, dep, owner, tried)
        return None

    def _pin_version(self, ctx: ResolutionContext, dep: Dependency, version: str) -> bool:
        """Give a version-less node the metadata's latest version."""
        old_key = dep.key
        dep.version = version
        if not ctx.registry.rekey(old_key, dep):
            log.debug("resolver.already_resolved", dependency=str(dep))
            return False
        ctx.nodes[dep.key] = ctx.nodes.pop(old_key)
        log.info("resolver.version_pinned", dependency=f"{dep.group_id}:{dep.artifact_id}", version=version)
        return True

    def _not_found(
        self,
        ctx: ResolutionContext,
        dep: Dependency,
        owner: Dependency | None,
        tried: list[str],
    ) -> None:
        ctx.registry.set_state(dep, NodeState.NOT_FOUND)
        if owner is None:
            log.error("resolver.root_not_found", dependency=str(dep), tried=tried)
            ctx.tried_urls = list(tried)
            ctx.finish()
        elif not ctx.done:
            log.warning("resolver.not_found", dependency=str(dep), tried=tried)
            ctx.not_found.append(dep)

    # ── parents and managed versions ───────────────────────────────────────

    async def _resolve_inline(
        self,
        ctx: ResolutionContext,
        dep: Dependency,
        target: Dependency,
    ) -> _NodeInfo | None:
        """Resolve a parent or imported BOM of *dep* and wait for it."""
        if self._waits_on(ctx, target.key, dep.key):
            log.warning("resolver.parent_cycle", dependency=str(dep), parent=str(target))
            return None
        ctx.waiting_on[dep.key] = target.key
        try:
            return await self._resolve_node(ctx, target, dep, wait=True)
        finally:
            ctx.waiting_on.pop(dep.key, None)

    @staticmethod
    def _waits_on(ctx: ResolutionContext, start: Key, target: Key) -> bool:
        """True when *start* is, transitively, blocked on *target*."""
        seen: set[Key] = set()
        current: Key | None = start
        while current is not None and current not in seen:
            if current == target:
                return True
            seen.add(current)
            current = ctx.waiting_on.get(current)
        return False

    @staticmethod
    def _lineage(ctx: ResolutionContext, dep: Dependency) -> list[Dependency]:
        """Nodes whose managed pins apply to *dep*'s dependencies, nearest first."""
        ordered: list[Dependency] = []
        seen: set[Key] = set()
        queue: deque[Dependency | None] = deque([dep])
        while queue:
            node = queue.popleft()
            if node is None or node.key in seen:
                continue
            seen.add(node.key)
            ordered.append(node)
            info = ctx.nodes.get(node.key)
            if info is not None:
                queue.append(info.parent)
                queue.extend(info.imports)
            queue.append(ctx.registry.owner_of(node))
        return ordered

    async def _declared(
        self,
        ctx: ResolutionContext,
        decl: PomDependency,
        properties: list[ProjectProperty],
        repository: Repository,
        lineage: Sequence[Dependency] = (),
        *,
        kind: str = "dependency",
    ) -> Dependency | None:
        """Turn a POM declaration into a concrete :class:`Dependency`.

        Returns None for test-scoped dependencies and for declarations whose
        version cannot be determined.
        """
        if not decl.group_id or not decl.artifact_id:
            log.warning(
                "resolver.incomplete_declaration",
                kind=kind,
                group_id=decl.group_id,
                artifact_id=decl.artifact_id,
            )
            return None

        group_id, _ = substitute_properties(decl.group_id, properties)
        artifact_id, _ = substitute_properties(decl.artifact_id, properties)
        scope = decl.scope
        if kind == "dependency" and scope == "test":
            return None

        if decl.version:
            version = await ctx.versions.resolve(
                decl.version, properties, group_id, artifact_id, repository
            )
        elif kind == "dependency":
            pin = ctx.registry.managed_version(Dependency(group_id, artifact_id), lineage)
            if pin is None:
                log.info("resolver.no_version", dependency=f"{group_id}:{artifact_id}")
                return None
            version = pin.version
            if scope is None:
                if pin.scope == "test":
                    return None
                scope = pin.scope
        else:
            log.info("resolver.no_version", kind=kind, dependency=f"{group_id}:{artifact_id}")
            return None

        if kind == "parent":
            dep_type: str | None = "pom"
        else:
            dep_type = substitute_properties(decl.type, properties)[0] if decl.type else None
        return Dependency(
            group_id,
            artifact_id,
            version,
            type=dep_type,
            scope=scope,
            optional=decl.optional,
        )

    def _event(self, kind: str, url: str) -> None:
        log.debug(f"resolver.{kind}", url=url)
        if self._progress is not None:
            self._progress.artifact_event(kind, url)
