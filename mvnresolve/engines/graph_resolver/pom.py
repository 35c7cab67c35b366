"""Parser for the subset of the POM model the resolver needs."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from mvnresolve.exceptions import MalformedPomError
from mvnresolve.models.dependency import ProjectProperty


@dataclass
class PomDependency:
    """A ``<dependency>`` or ``<parent>`` declaration, before any resolution."""

    group_id: str | None
    artifact_id: str | None
    version: str | None = None
    scope: str | None = None
    type: str | None = None
    optional: bool = False


@dataclass
class ParsedPom:
    group_id: str | None = None
    artifact_id: str | None = None
    version: str | None = None
    packaging: str | None = None
    properties: list[ProjectProperty] = field(default_factory=list)
    parent: PomDependency | None = None
    managed: list[PomDependency] = field(default_factory=list)
    dependencies: list[PomDependency] = field(default_factory=list)


def _local(tag: object) -> str | None:
    """Strip the namespace from an element tag. Comments and PIs yield None."""
    if not isinstance(tag, str):
        return None
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _children(element: ET.Element | None, name: str) -> list[ET.Element]:
    if element is None:
        return []
    return [child for child in element if _local(child.tag) == name]


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    found = _children(element, name)
    return found[0] if found else None


def _text(element: ET.Element | None) -> str | None:
    if element is None or element.text is None:
        return None
    value = element.text.strip()
    return value or None


def _parse_declaration(element: ET.Element) -> PomDependency:
    return PomDependency(
        group_id=_text(_child(element, "groupId")),
        artifact_id=_text(_child(element, "artifactId")),
        version=_text(_child(element, "version")),
        scope=_text(_child(element, "scope")),
        type=_text(_child(element, "type")),
        optional=(_text(_child(element, "optional")) or "").lower() == "true",
    )


def _parse_dependency_list(container: ET.Element | None) -> list[PomDependency]:
    deps: list[PomDependency] = []
    for deps_el in _children(container, "dependencies"):
        for dep_el in _children(deps_el, "dependency"):
            deps.append(_parse_declaration(dep_el))
    return deps


def parse_pom(content: str | bytes, source: str = "<pom>") -> ParsedPom:
    """Parse POM XML into a :class:`ParsedPom`.

    Only project-level elements are read; ``<profiles>`` and build plugin
    dependencies are ignored. Raises :class:`MalformedPomError` on invalid XML.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise MalformedPomError(source, str(exc)) from exc

    parent_el = _child(root, "parent")
    return ParsedPom(
        group_id=_text(_child(root, "groupId")),
        artifact_id=_text(_child(root, "artifactId")),
        version=_text(_child(root, "version")),
        packaging=_text(_child(root, "packaging")),
        properties=_parse_properties(root),
        parent=_parse_declaration(parent_el) if parent_el is not None else None,
        managed=_parse_dependency_list(_child(root, "dependencyManagement")),
        dependencies=_parse_dependency_list(root),
    )


def _parse_properties(root: ET.Element) -> list[ProjectProperty]:
    """Extract ``<properties>`` entries in document order."""
    props: list[ProjectProperty] = []
    for props_el in _children(root, "properties"):
        for child in props_el:
            name = _local(child.tag)
            if name is None:
                continue
            props.append(ProjectProperty(name, (child.text or "").strip()))
    return props
