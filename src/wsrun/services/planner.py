"""High-level planning: workspace metadata in, execution plan out.

Responsibilities:
    * Build the dependency graph
    * Select primary packages by name pattern
    * Expand upstream / downstream targets
    * Order everything topologically
    * Keep only targets that define the requested script
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from wsrun.domain.models import ExecutionPlan, WorkspaceInfo
from wsrun.services.closure import expand_targets
from wsrun.services.deps import topo_sort
from wsrun.services.graph import build_graph
from wsrun.services.selection import filter_by_script, select_packages

log = logging.getLogger(__name__)


def plan_run(
    workspaces: Mapping[str, WorkspaceInfo],
    script: str,
    *,
    read_scripts: Callable[[str], frozenset[str]],
    patterns: Sequence[str] | None = None,
    upstream: bool = False,
    downstream: bool = False,
) -> ExecutionPlan:
    """`read_scripts` maps a package name to the script names its manifest defines."""
    graph = build_graph(workspaces)
    log.debug("graph: %d packages, %d edges", len(graph.packages), len(graph.edges))
    primary = select_packages(graph.names(), patterns)
    targets = expand_targets(primary, graph, upstream=upstream, downstream=downstream)
    order = topo_sort(graph)
    plan = filter_by_script(order, targets, script, lambda name: script in read_scripts(name))
    log.debug("plan for '%s': %s", script, " -> ".join(plan.order) or "(empty)")
    return plan


__all__ = ["plan_run"]
