"""Dependency resolution (topological ordering) for workspace packages."""

from __future__ import annotations

from collections import deque

from wsrun.domain.errors import CycleError
from wsrun.domain.models import DependencyGraph
from wsrun.services.graph import Edge, invert_edges


def _nodes(graph: DependencyGraph) -> list[str]:
    nodes = dict.fromkeys(graph.packages)
    for upstream, downstream in graph.edges:
        nodes.setdefault(upstream)
        nodes.setdefault(downstream)
    return list(nodes)


def _find_cycle(nodes: list[str], edges: list[Edge]) -> list[str]:
    adjacency = invert_edges(edges, nodes)
    state: dict[str, int] = {}  # 1 = on stack, 2 = done
    path: list[str] = []

    def visit(node: str) -> list[str]:
        state[node] = 1
        path.append(node)
        for nxt in adjacency.get(node, []):
            if state.get(nxt) == 1:
                return path[path.index(nxt):] + [nxt]
            if nxt not in state:
                found = visit(nxt)
                if found:
                    return found
        path.pop()
        state[node] = 2
        return []

    for node in nodes:
        if node not in state:
            found = visit(node)
            if found:
                return found
    return []


def topo_sort(graph: DependencyGraph) -> list[str]:
    """Order every known package so each dependency precedes its dependents.

    Kahn's algorithm; packages become ready in graph insertion order so the
    result is stable for a given input. Raises `CycleError` if any package
    cannot be placed.
    """
    nodes = _nodes(graph)
    dependents = invert_edges(graph.edges, nodes)
    in_degree = dict.fromkeys(nodes, 0)
    for _upstream, downstream in graph.edges:
        in_degree[downstream] += 1

    ready = deque(n for n in nodes if in_degree[n] == 0)
    order: list[str] = []
    while ready:
        current = ready.popleft()
        order.append(current)
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)

    if len(order) != len(nodes):
        placed = set(order)
        remaining = [n for n in nodes if n not in placed]
        raise CycleError(remaining, _find_cycle(remaining, graph.edges))
    return order


__all__ = ["topo_sort"]
