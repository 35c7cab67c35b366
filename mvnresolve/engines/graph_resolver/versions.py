"""Turn raw POM version expressions into concrete version strings."""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

import structlog

from mvnresolve.engines.graph_resolver.metadata import MetadataFetcher
from mvnresolve.models.dependency import ProjectProperty
from mvnresolve.models.repository import Repository

log = structlog.get_logger("mvnresolve.engine")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_RANGE_RE = re.compile(r"[\[(]([^\[\]()]*)([\])])")
_TOKEN_RE = re.compile(r"\d+|[a-z]+")
_MAX_SUBSTITUTION_PASSES = 10

# Release-relative ordering of well-known qualifiers; unknown ones sort as releases.
_QUALIFIER_RANK = {
    "alpha": 0,
    "a": 0,
    "beta": 1,
    "b": 1,
    "milestone": 2,
    "m": 2,
    "rc": 3,
    "cr": 3,
    "snapshot": 4,
    "": 5,
    "ga": 5,
    "final": 5,
    "release": 5,
    "sp": 6,
}


class RangeStrategy(str, Enum):
    """What a version range resolves to when metadata lists an in-range version."""

    IN_RANGE = "in_range"  # highest listed version inside the bounds
    LATEST = "latest"  # the metadata's latest version, in or out of range


def _as_number(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def compare_versions(left: str, right: str) -> int:
    """Compare two versions: numerically when both parse as numbers,
    otherwise case-insensitively as strings. Returns -1, 0 or 1.
    """
    left_num, right_num = _as_number(left), _as_number(right)
    if left_num is not None and right_num is not None:
        return (left_num > right_num) - (left_num < right_num)
    a, b = left.lower(), right.lower()
    return (a > b) - (a < b)


def maven_version_key(version: str) -> tuple:
    """Sort key ordering versions the way Maven mediation expects.

    ``1.10 > 1.9``, ``1.0 == 1``, ``1.0-rc1 < 1.0 < 1.0-sp1``.
    """
    tokens = _TOKEN_RE.findall(version.lower())
    numbers: list[int] = []
    i = 0
    while i < len(tokens) and tokens[i].isdigit():
        numbers.append(int(tokens[i]))
        i += 1
    while numbers and numbers[-1] == 0:
        numbers.pop()

    qualifier = tokens[i] if i < len(tokens) and not tokens[i].isdigit() else ""
    known = qualifier in _QUALIFIER_RANK
    rank = _QUALIFIER_RANK.get(qualifier, 5)
    tail = tuple(int(t) for t in tokens[i + 1 :] if t.isdigit())
    return (tuple(numbers), rank, "" if known else qualifier, tail)


def substitute_properties(
    expression: str,
    properties: Iterable[ProjectProperty],
) -> tuple[str, bool]:
    """Replace ``${name}`` placeholders from *properties*.

    The first property with a matching name wins. Substitution repeats so a
    property may reference another. Returns ``(result, fully_resolved)``.
    """
    lookup: dict[str, str] = {}
    for prop in properties:
        lookup.setdefault(prop.name, prop.value)

    def _replace(m: re.Match) -> str:
        return lookup.get(m.group(1), m.group(0))

    result = expression
    for _ in range(_MAX_SUBSTITUTION_PASSES):
        replaced = _PLACEHOLDER_RE.sub(_replace, result)
        if replaced == result:
            break
        result = replaced
    return result, _PLACEHOLDER_RE.search(result) is None


class VersionResolver:
    """Resolve literal, ``${property}`` and range version expressions."""

    def __init__(
        self,
        metadata: MetadataFetcher,
        strategy: RangeStrategy = RangeStrategy.IN_RANGE,
    ) -> None:
        self._metadata = metadata
        self.strategy = RangeStrategy(strategy)

    async def latest(self, group_id: str, artifact_id: str, repository: Repository) -> str | None:
        versions = await self._metadata.get(group_id, artifact_id, repository)
        if versions is None or not versions.latest_version:
            return None
        return versions.latest_version

    async def resolve(
        self,
        raw: str,
        properties: Iterable[ProjectProperty],
        group_id: str,
        artifact_id: str,
        repository: Repository,
    ) -> str:
        expression = raw.strip()

        if _PLACEHOLDER_RE.search(expression):
            substituted, complete = substitute_properties(expression, properties)
            if complete:
                expression = substituted
            else:
                latest = await self.latest(group_id, artifact_id, repository)
                if latest is None:
                    log.info(
                        "version.unresolved_property",
                        expression=raw,
                        dependency=f"{group_id}:{artifact_id}",
                    )
                    return substituted
                expression = latest

        stripped = expression.strip()
        if not stripped or stripped[0] not in "[(":
            return expression
        m = _RANGE_RE.match(stripped)
        if m is None:
            return expression
        return await self._resolve_range(
            stripped, m.group(1), m.group(2) == "]", group_id, artifact_id, repository
        )

    async def _resolve_range(
        self,
        expression: str,
        bounds: str,
        end_inclusive: bool,
        group_id: str,
        artifact_id: str,
        repository: Repository,
    ) -> str:
        if "," not in bounds:
            return bounds.strip()

        start, end = (part.strip() for part in bounds.split(",", 1))
        versions = await self._metadata.get(group_id, artifact_id, repository)
        if versions is not None:
            candidates = [
                v
                for v in versions.available_versions
                if (not start or compare_versions(v, start) > 0)
                and (not end or compare_versions(v, end) < 0)
            ]
            if candidates:
                if self.strategy is RangeStrategy.LATEST and versions.latest_version:
                    return versions.latest_version
                return max(candidates, key=maven_version_key)

        if start:
            return start
        if end and end_inclusive:
            return end
        log.info(
            "version.unresolved_range",
            expression=expression,
            dependency=f"{group_id}:{artifact_id}",
        )
        return expression
