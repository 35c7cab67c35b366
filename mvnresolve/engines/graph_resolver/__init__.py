"""Graph resolver engine — transitive dependency discovery from POM files."""

from mvnresolve.engines.graph_resolver.models import ResolveCallback, ResolveResult
from mvnresolve.engines.graph_resolver.registry import NodeState, ResolutionRegistry
from mvnresolve.engines.graph_resolver.resolver import GraphResolver
from mvnresolve.engines.graph_resolver.versions import RangeStrategy, VersionResolver

__all__ = [
    "GraphResolver",
    "NodeState",
    "RangeStrategy",
    "ResolutionRegistry",
    "ResolveCallback",
    "ResolveResult",
    "VersionResolver",
]
