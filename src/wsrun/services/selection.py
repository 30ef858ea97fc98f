"""Package selection: regex filtering of names and script-presence filtering of targets."""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence

from wsrun.domain.errors import NoMatchError
from wsrun.domain.models import ORIGINS, ExecutionPlan, Origin, TargetSet

log = logging.getLogger(__name__)

DEFAULT_PATTERN = ".*"


def compile_patterns(patterns: Sequence[str] | None) -> list[re.Pattern[str]]:
    return [re.compile(p) for p in (patterns or [DEFAULT_PATTERN])]


def select_packages(names: Iterable[str], patterns: Sequence[str] | None = None) -> list[str]:
    """Names matching any pattern (search semantics), in input order."""
    candidates = list(names)
    compiled = compile_patterns(patterns)
    selected = [n for n in candidates if any(rx.search(n) for rx in compiled)]
    if not selected:
        raise NoMatchError(patterns or [DEFAULT_PATTERN], candidates)
    return selected


def filter_by_script(
    order: Sequence[str],
    targets: TargetSet,
    script: str,
    has_script: Callable[[str], bool],
) -> ExecutionPlan:
    """Restrict the topological `order` to targets defining `script`.

    Relative order is preserved. Targets without the script are recorded in
    `ExecutionPlan.missing` by origin and otherwise ignored.
    """
    missing: dict[Origin, list[str]] = {origin: [] for origin in ORIGINS}
    included: list[str] = []
    for name in order:
        if name not in targets:
            continue
        if has_script(name):
            included.append(name)
            continue
        origin = targets.origin(name)
        if origin is not None:
            missing[origin].append(name)
    if missing_count := sum(len(v) for v in missing.values()):
        log.info("%d target(s) have no '%s' script", missing_count, script)
    return ExecutionPlan(script=script, order=included, targets=targets, missing=missing)


__all__ = ["DEFAULT_PATTERN", "compile_patterns", "filter_by_script", "select_packages"]
