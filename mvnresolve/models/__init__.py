"""Coordinate and repository models."""

from mvnresolve.models.dependency import Dependency, DependencyVersion, ProjectProperty
from mvnresolve.models.repository import (
    COMMON_MAVEN_REPOSITORIES,
    Repository,
    build_repositories,
)

__all__ = [
    "COMMON_MAVEN_REPOSITORIES",
    "Dependency",
    "DependencyVersion",
    "ProjectProperty",
    "Repository",
    "build_repositories",
]
