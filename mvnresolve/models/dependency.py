"""Maven coordinate models shared by the resolver and the downloader."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mvnresolve.exceptions import InvalidCoordinateError

if TYPE_CHECKING:
    from mvnresolve.models.repository import Repository

DEFAULT_TYPE = "jar"
DEFAULT_SCOPE = "compile"

_GRADLE_GROOVY_RE = re.compile(r"""^\s*implementation\s+(['"])(?P<coords>[^'"]+)\1\s*$""")
_GRADLE_KOTLIN_RE = re.compile(r"""^\s*implementation\s*\(\s*(['"])(?P<coords>[^'"]+)\1\s*\)\s*$""")
_GRADLE_LONG_RE = re.compile(
    r"""^\s*implementation\s+group:\s*(['"])(?P<group>[^'"]+)\1\s*,"""
    r"""\s*name:\s*(['"])(?P<name>[^'"]+)\3\s*,"""
    r"""\s*version:\s*(['"])(?P<version>[^'"]+)\5\s*$"""
)


@dataclass
class Dependency:
    """One Maven artifact node.

    Identity for de-duplication is ``(group_id, artifact_id, version)``;
    :meth:`same_coordinate` ignores the version and is used for conflict
    detection. ``version`` may be empty until resolved, and ``repository`` is
    set once the owning repository is known.
    """

    group_id: str
    artifact_id: str
    version: str = ""
    type: str = DEFAULT_TYPE
    scope: str = DEFAULT_SCOPE
    repository: Repository | None = field(default=None, compare=False)
    optional: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        self.version = self.version or ""
        self.type = self.type or DEFAULT_TYPE
        self.scope = self.scope or DEFAULT_SCOPE

    # ── identity ──────────────────────────────────────────────────────────

    @property
    def coordinate(self) -> tuple[str, str]:
        return (self.group_id, self.artifact_id)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.group_id, self.artifact_id, self.version)

    def same_coordinate(self, other: Dependency | None) -> bool:
        if other is None:
            return False
        return self.coordinate == other.coordinate

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.type}:{self.version}:{self.scope}"

    # ── layout ────────────────────────────────────────────────────────────

    @property
    def group_path(self) -> str:
        return self.group_id.replace(".", "/")

    def artifact_path(self, extension: str) -> str:
        """Repository-relative path ``g/r/o/u/p/artifact/version/artifact-version.ext``."""
        return (
            f"{self.group_path}/{self.artifact_id}/{self.version}/"
            f"{self.artifact_id}-{self.version}.{extension}"
        )

    @property
    def pom_path(self) -> str:
        return self.artifact_path("pom")

    @property
    def metadata_path(self) -> str:
        return f"{self.group_path}/{self.artifact_id}/maven-metadata.xml"

    @property
    def archive_extension(self) -> str:
        return "aar" if self.type.lower() == "aar" else "jar"

    # ── parsing ───────────────────────────────────────────────────────────

    @classmethod
    def parse(cls, text: str) -> Dependency:
        """Build a dependency from a coordinate string.

        Accepted forms::

            com.example:lib
            com.example:lib:1.0
            implementation 'com.example:lib:1.0'
            implementation("com.example:lib:1.0")
            implementation group: 'com.example', name: 'lib', version: '1.0'
        """
        long_form = _GRADLE_LONG_RE.match(text)
        if long_form:
            return cls(long_form["group"], long_form["name"], long_form["version"])

        coords = text.strip()
        for pattern in (_GRADLE_GROOVY_RE, _GRADLE_KOTLIN_RE):
            m = pattern.match(text)
            if m:
                coords = m["coords"].strip()
                break

        pieces = coords.split(":")
        if len(pieces) not in (2, 3) or not all(p.strip() for p in pieces):
            raise InvalidCoordinateError(text)
        group_id, artifact_id = pieces[0].strip(), pieces[1].strip()
        version = pieces[2].strip() if len(pieces) == 3 else ""
        return cls(group_id, artifact_id, version)


@dataclass(frozen=True)
class ProjectProperty:
    """A ``<properties>`` entry, scoped to the POM that declared it."""

    name: str
    value: str


@dataclass
class DependencyVersion:
    """Versions advertised by a ``maven-metadata.xml`` document."""

    available_versions: list[str]
    latest_version: str
