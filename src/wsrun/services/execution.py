"""Execution service: run the plan's script per package, sequentially or staggered in parallel."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

from wsrun.domain.models import ExecutionPlan, RunReport, ScriptResult

log = logging.getLogger(__name__)


class ScriptRunner(Protocol):
    """Invokes one package script; exit code 0 means success."""

    def run(self, package: str, script: str) -> int: ...

    async def run_async(self, package: str, script: str) -> int: ...


def run_sequential(plan: ExecutionPlan, runner: ScriptRunner) -> RunReport:
    """Run in topological order, stopping at the first failure.

    Packages after the failing one are reported as skipped.
    """
    report = RunReport(script=plan.script, mode="sequential")
    t0 = time.monotonic()
    for i, package in enumerate(plan.order):
        log.info("running '%s' in %s", plan.script, package)
        start = time.monotonic()
        code = runner.run(package, plan.script)
        result = ScriptResult(
            package=package,
            status="succeeded" if code == 0 else "failed",
            exit_code=code,
            started_at=start - t0,
            duration=time.monotonic() - start,
        )
        report.results.append(result)
        if code != 0:
            log.error("'%s' failed in %s with exit code %s", plan.script, package, code)
            report.results.extend(
                ScriptResult(package=rest, status="skipped") for rest in plan.order[i + 1 :]
            )
            break
    return report


async def run_parallel(
    plan: ExecutionPlan,
    runner: ScriptRunner,
    *,
    stagger: float = 0.0,
) -> RunReport:
    """Start every package concurrently, the i-th one after `i * stagger` seconds.

    The first failing invocation sets a shared event; the supervisor then
    cancels all other invocations. Those already running are reported as
    cancelled, those still waiting to start as skipped.
    """
    if stagger < 0:
        raise ValueError("stagger must be >= 0")
    loop = asyncio.get_running_loop()
    t0 = loop.time()
    failure = asyncio.Event()
    started: dict[str, float] = {}
    finished: dict[str, ScriptResult] = {}

    async def _invoke(position: int, package: str) -> None:
        delay = position * stagger
        if delay > 0:
            await asyncio.sleep(delay)
        if failure.is_set():
            return
        started[package] = loop.time() - t0
        log.info("starting '%s' in %s (t=%.2fs)", plan.script, package, started[package])
        code = await runner.run_async(package, plan.script)
        finished[package] = ScriptResult(
            package=package,
            status="succeeded" if code == 0 else "failed",
            exit_code=code,
            started_at=started[package],
            duration=loop.time() - t0 - started[package],
        )
        if code != 0:
            log.error("'%s' failed in %s with exit code %s", plan.script, package, code)
            failure.set()

    tasks = [
        asyncio.create_task(_invoke(i, name), name=f"wsrun:{name}")
        for i, name in enumerate(plan.order)
    ]
    watcher = asyncio.create_task(failure.wait())
    pending: set[asyncio.Task] = set(tasks)
    try:
        while pending and not failure.is_set():
            done, pending = await asyncio.wait(
                pending | {watcher}, return_when=asyncio.FIRST_COMPLETED
            )
            pending.discard(watcher)
            for task in done:
                if task is not watcher:
                    task.result()
    finally:
        watcher.cancel()
        if pending:
            log.warning("cancelling %d remaining invocation(s)", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(watcher, *pending, return_exceptions=True)

    now = loop.time() - t0
    report = RunReport(script=plan.script, mode="parallel")
    for package in plan.order:
        if package in finished:
            report.results.append(finished[package])
        elif package in started:
            report.results.append(
                ScriptResult(
                    package=package,
                    status="cancelled",
                    started_at=started[package],
                    duration=now - started[package],
                )
            )
        else:
            report.results.append(ScriptResult(package=package, status="skipped"))
    return report


def execute_plan(
    plan: ExecutionPlan,
    runner: ScriptRunner,
    *,
    parallel: bool = False,
    stagger: float = 0.0,
) -> RunReport:
    if plan.is_empty:
        log.info("nothing to run for '%s'", plan.script)
        return RunReport(script=plan.script, mode="parallel" if parallel else "sequential")
    if parallel:
        return asyncio.run(run_parallel(plan, runner, stagger=stagger))
    return run_sequential(plan, runner)


__all__ = ["ScriptRunner", "execute_plan", "run_parallel", "run_sequential"]
