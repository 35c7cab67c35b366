"""On-disk cache shared by POMs, metadata documents and artifacts.

Layout::

    <root>/<group/as/path>/<artifactId>/<version>/<artifactId>-<version>.<ext>
    <root>/<group/as/path>/<artifactId>/maven-metadata.xml
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import structlog

from mvnresolve.core.http import RepositoryClient
from mvnresolve.models.repository import Repository

log = structlog.get_logger(__name__)


class DiskCache:
    """Deterministic, coordinate-keyed file cache.

    Writers targeting the same path are serialized with a per-path lock; the
    first writer wins and later ones see a cache hit.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._locks: dict[Path, asyncio.Lock] = {}

    def path_for(self, relative: str) -> Path:
        return self.root / relative

    def lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = self._locks[path] = asyncio.Lock()
        return lock

    async def fetch(
        self,
        client: RepositoryClient,
        repository: Repository,
        relative: str,
    ) -> tuple[Path, bool]:
        """Return ``(path, cache_hit)`` for *relative*, downloading it on a miss.

        Network errors from *client* propagate to the caller.
        """
        path = self.path_for(relative)
        async with self.lock_for(path):
            if path.is_file():
                return path, True
            await client.download(repository.url_for(relative), path)
            return path, False

    def clear(self) -> None:
        """Delete every cached file."""
        if self.root.exists():
            shutil.rmtree(self.root)
            log.info("cache.cleared", root=str(self.root))
        self._locks.clear()
