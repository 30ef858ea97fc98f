"""Upstream / downstream closure over the dependency graph."""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from wsrun.domain.models import DependencyGraph, Direction, TargetSet

log = logging.getLogger(__name__)


def compute_closure(
    seeds: Iterable[str],
    graph: DependencyGraph,
    direction: Direction,
) -> list[str]:
    """Breadth-first expansion from `seeds`.

    Returns the packages reached from the seeds (seeds themselves excluded) in
    discovery order. Each package is discovered at most once, which also bounds
    the walk on cyclic input.
    """
    if direction == "none":
        return []
    if direction == "upstream":
        neighbours = graph.dependencies_of
    elif direction == "downstream":
        neighbours = graph.dependents_of
    else:
        raise ValueError(f"Unknown direction: {direction!r}")

    frontier = deque(dict.fromkeys(seeds))
    visited = set(frontier)
    discovered: list[str] = []
    while frontier:
        current = frontier.popleft()
        for nxt in neighbours(current):
            if nxt in visited:
                continue
            visited.add(nxt)
            discovered.append(nxt)
            frontier.append(nxt)
    return discovered


def expand_targets(
    primary: Iterable[str],
    graph: DependencyGraph,
    *,
    upstream: bool = False,
    downstream: bool = False,
) -> TargetSet:
    """Merge both closures of the primary set; upstream labels win on overlap."""
    seeds = list(dict.fromkeys(primary))
    seen = set(seeds)
    up: list[str] = []
    down: list[str] = []
    if upstream:
        for name in compute_closure(seeds, graph, "upstream"):
            if name not in seen:
                seen.add(name)
                up.append(name)
    if downstream:
        for name in compute_closure(seeds, graph, "downstream"):
            if name not in seen:
                seen.add(name)
                down.append(name)
    log.debug("targets: %d primary, %d upstream, %d downstream", len(seeds), len(up), len(down))
    return TargetSet(primary=seeds, upstream=up, downstream=down)


__all__ = ["compute_closure", "expand_targets"]
