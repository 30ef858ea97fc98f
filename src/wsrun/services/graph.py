"""Dependency graph construction from workspace metadata."""
from __future__ import annotations

from collections.abc import Iterable, Mapping

from wsrun.domain.models import DependencyGraph, PackageNode, WorkspaceInfo

Edge = tuple[str, str]


def build_edges(workspaces: Mapping[str, WorkspaceInfo]) -> list[Edge]:
    """Return `(dependency, dependent)` pairs in declaration order."""
    edges: list[Edge] = []
    for name, info in workspaces.items():
        for dep in info.workspace_dependencies:
            edges.append((dep, name))
    return edges


def invert_edges(edges: Iterable[Edge], names: Iterable[str] = ()) -> dict[str, list[str]]:
    """Map each upstream package to the packages depending on it.

    Every name in `names` gets an entry even when nothing depends on it.
    """
    dependents: dict[str, list[str]] = {name: [] for name in names}
    for upstream, downstream in edges:
        dependents.setdefault(upstream, []).append(downstream)
    return dependents


def build_graph(workspaces: Mapping[str, WorkspaceInfo]) -> DependencyGraph:
    edges = build_edges(workspaces)
    dependents = invert_edges(edges, workspaces.keys())
    packages = {
        name: PackageNode(
            name=name,
            location=info.location,
            dependencies=list(info.workspace_dependencies),
            dependents=dependents[name],
        )
        for name, info in workspaces.items()
    }
    return DependencyGraph(packages=packages, edges=edges)


__all__ = ["Edge", "build_edges", "build_graph", "invert_edges"]
