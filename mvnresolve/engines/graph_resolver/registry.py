"""Resolution registry — every node seen during one resolution run."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from mvnresolve.engines.graph_resolver.versions import maven_version_key
from mvnresolve.models.dependency import Dependency

Key = tuple[str, str, str]


class NodeState(str, Enum):
    PENDING = "pending"
    FETCHING_POM = "fetching_pom"
    PARSING = "parsing"
    DONE = "done"
    NOT_FOUND = "not_found"


@dataclass
class RegistryEntry:
    dependency: Dependency
    owner: Dependency | None
    state: NodeState = NodeState.PENDING


class ResolutionRegistry:
    """Mutex-guarded record of resolved nodes and managed version pins.

    Maps each node to the dependency that introduced it. Once :meth:`close`
    is called every mutation becomes a no-op, so results delivered after the
    run has finished cannot change what was reported.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[Key, RegistryEntry] = {}
        self._managed: list[tuple[Dependency, Dependency]] = []
        # owner key -> keys it requested, in request order
        self._links: dict[Key, list[Key]] = {}
        self._closed = False

    # ── lifecycle ──────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            self._closed = True

    # ── nodes ──────────────────────────────────────────────────────────────

    def claim(self, dependency: Dependency, owner: Dependency | None) -> bool:
        """Record *dependency* as pending unless it is already known.

        Returns False when the exact ``(group, artifact, version)`` was claimed
        before or the registry is closed.
        """
        with self._lock:
            if self._closed or dependency.key in self._entries:
                return False
            self._entries[dependency.key] = RegistryEntry(dependency, owner)
            return True

    def rekey(self, old_key: Key, dependency: Dependency) -> bool:
        """Move an entry whose version was pinned after it was claimed.

        Returns False when the new key is already taken by another node.
        """
        with self._lock:
            if self._closed:
                return False
            entry = self._entries.pop(old_key, None)
            if entry is None:
                return False
            if dependency.key in self._entries:
                return False
            entry.dependency = dependency
            self._entries[dependency.key] = entry
            return True

    def link(self, owner: Dependency, dependency: Dependency) -> None:
        """Record that *owner* asked for *dependency*, whoever claimed it first."""
        with self._lock:
            if self._closed:
                return
            children = self._links.setdefault(owner.key, [])
            if dependency.key not in children:
                children.append(dependency.key)

    def set_state(self, dependency: Dependency, state: NodeState) -> None:
        with self._lock:
            if self._closed:
                return
            entry = self._entries.get(dependency.key)
            if entry is not None:
                entry.state = state

    def state(self, dependency: Dependency) -> NodeState | None:
        with self._lock:
            entry = self._entries.get(dependency.key)
            return entry.state if entry else None

    def contains(self, dependency: Dependency) -> bool:
        with self._lock:
            return dependency.key in self._entries

    def owner_of(self, dependency: Dependency) -> Dependency | None:
        with self._lock:
            entry = self._entries.get(dependency.key)
            return entry.owner if entry else None

    def preferred_version(self, dependency: Dependency) -> str:
        """Return the version to request for *dependency*.

        If a newer version of the same coordinate is already known (and not
        missing), that version wins; otherwise the requested one is kept.
        """
        best = dependency.version
        with self._lock:
            for entry in self._entries.values():
                dep = entry.dependency
                if entry.state is NodeState.NOT_FOUND or not dep.same_coordinate(dependency):
                    continue
                if maven_version_key(dep.version) > maven_version_key(best):
                    best = dep.version
        return best

    # ── managed versions ──────────────────────────────────────────────────

    def add_managed(self, pin: Dependency, owner: Dependency) -> None:
        with self._lock:
            if not self._closed:
                self._managed.append((pin, owner))

    def managed_version(
        self,
        dependency: Dependency,
        lineage: Iterable[Dependency],
    ) -> Dependency | None:
        """Find the version a version-less *dependency* should inherit.

        Pins and resolved nodes owned by a member of *lineage* are searched
        first, nearest member first; then any known entry of the coordinate.
        """
        lineage_keys = [d.key for d in lineage]
        with self._lock:
            candidates: list[tuple[Dependency, Dependency | None]] = list(self._managed)
            candidates.extend(
                (e.dependency, e.owner)
                for e in self._entries.values()
                if e.state is not NodeState.NOT_FOUND
            )

        matching = [
            (pin, owner)
            for pin, owner in candidates
            if pin.version and pin.same_coordinate(dependency)
        ]
        for key in lineage_keys:
            for pin, owner in matching:
                if owner is not None and owner.key == key:
                    return pin
        return matching[0][0] if matching else None

    # ── results ───────────────────────────────────────────────────────────

    def dependencies(self, root: Dependency) -> list[Dependency]:
        """Resolved nodes reachable from *root*, one agreed version per coordinate.

        The agreed version of a coordinate is the newest one that resolved,
        except for the root's own coordinate, which keeps the root's version.
        Every link to a coordinate leads to its agreed version, so nodes only a
        losing version asked for are never reached. *root* is not included.
        """
        with self._lock:
            entries = dict(self._entries)
            links = {key: list(children) for key, children in self._links.items()}

        agreed: dict[tuple[str, str], Dependency] = {}
        for entry in entries.values():
            if entry.state is not NodeState.DONE:
                continue
            dep = entry.dependency
            current = agreed.get(dep.coordinate)
            if current is None or maven_version_key(dep.version) > maven_version_key(
                current.version
            ):
                agreed[dep.coordinate] = dep
        agreed[root.coordinate] = root

        reached: list[Dependency] = []
        seen: set[Key] = {root.key}
        queue: deque[Key] = deque([root.key])
        while queue:
            for child_key in links.get(queue.popleft(), ()):
                entry = entries.get(child_key)
                if entry is None:
                    continue
                dep = agreed.get(entry.dependency.coordinate)
                if dep is None or dep.key in seen:
                    continue
                seen.add(dep.key)
                reached.append(dep)
                queue.append(dep.key)
        return reached
