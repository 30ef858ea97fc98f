"""CLI layer (run/list)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated

import orjson
import typer
from rich.markup import escape
from rich.table import Table

from wsrun.domain.errors import (
    CycleError,
    NoMatchError,
    ScriptExecutionError,
    WorkspaceRunError,
)
from wsrun.domain.models import ORIGINS, ExecutionPlan, RunReport
from wsrun.infrastructure.logging import (
    enable_json_logging,
    get_console,
    render_panel,
    setup_logging,
)
from wsrun.infrastructure.manifest import ManifestCache
from wsrun.infrastructure.scripts import YarnScriptRunner
from wsrun.infrastructure.workspace import load_workspaces
from wsrun.runtime import bootstrap
from wsrun.services.execution import execute_plan
from wsrun.services.graph import build_graph
from wsrun.services.planner import plan_run
from wsrun.services.selection import select_packages

app = typer.Typer(help="Run a script across workspace packages in dependency order")

STATUS_STYLES = {
    "succeeded": "green",
    "failed": "red",
    "cancelled": "yellow",
    "skipped": "dim",
}


@app.callback()
def init(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    log_json: Annotated[bool, typer.Option("--log-json", help="Emit logs as JSON lines")] = False,
) -> None:
    setup_logging("DEBUG" if verbose else None)
    if log_json:
        enable_json_logging()


def _check_patterns(values: list[str] | None) -> list[str] | None:
    for value in values or []:
        try:
            re.compile(value)
        except re.error as exc:
            raise typer.BadParameter(f"Invalid regex {value!r}: {exc}") from exc
    return values


def _names(values: list[str]) -> str:
    return ", ".join(escape(v) for v in values)


def _fail(exc: WorkspaceRunError, *, stderr: bool = False) -> typer.Exit:
    lines = [f"[bold red]{escape(str(exc))}[/bold red]"]
    if isinstance(exc, NoMatchError):
        lines.append("Known workspaces:")
        lines.extend(f"  - {escape(name)}" for name in exc.candidates)
    elif isinstance(exc, CycleError) and exc.packages:
        lines.append(f"Unordered: {_names(exc.packages)}")
    elif isinstance(exc, ScriptExecutionError):
        if exc.cancelled:
            lines.append(f"[yellow]Cancelled[/yellow]: {_names(exc.cancelled)}")
        if exc.skipped:
            lines.append(f"[dim]Skipped[/dim]: {_names(exc.skipped)}")
    render_panel("error", "\n".join(lines), style="red", stderr=stderr)
    return typer.Exit(code=exc.exit_code)


def _render_plan(plan: ExecutionPlan) -> None:
    included = plan.included()
    lines = [f"[bold cyan]{escape(plan.script)}[/bold cyan]: " + (
        " -> ".join(escape(n) for n in plan.order) or "(nothing to run)"
    )]
    for origin in ORIGINS:
        if included[origin]:
            lines.append(f"{origin}: {_names(included[origin])}")
    for origin in ORIGINS:
        if plan.missing[origin]:
            lines.append(
                f"[yellow]{origin} without '{escape(plan.script)}'[/yellow]: "
                f"{_names(plan.missing[origin])}"
            )
    render_panel("execution plan", "\n".join(lines), style="cyan")


def _render_report(report: RunReport) -> None:
    table = Table(title=f"{report.script} ({report.mode})")
    for col in ("Package", "Status", "Exit", "Started", "Duration"):
        table.add_column(col)
    for r in report.results:
        style = STATUS_STYLES[r.status]
        table.add_row(
            escape(r.package),
            f"[{style}]{r.status}[/{style}]",
            "-" if r.exit_code is None else str(r.exit_code),
            "-" if r.started_at is None else f"{r.started_at:.2f}s",
            "-" if r.duration is None else f"{r.duration:.2f}s",
        )
    get_console().print(table)


@app.command("run")
def run_cmd(
    script: Annotated[str, typer.Argument(help="Script name to run in each package")],
    patterns: Annotated[
        list[str] | None,
        typer.Argument(
            help="Package name regexes, OR-combined (default: all)", callback=_check_patterns
        ),
    ] = None,
    upstream: Annotated[
        bool, typer.Option("--upstream", "-u", help="Also run in dependencies of matched packages")
    ] = False,
    downstream: Annotated[
        bool, typer.Option("--downstream", "-d", help="Also run in dependents of matched packages")
    ] = False,
    parallel: Annotated[
        bool, typer.Option("--parallel", "-p", help="Run all packages concurrently")
    ] = False,
    stagger: Annotated[
        float | None,
        typer.Option("--stagger", "-s", min=0.0, help="Seconds between parallel starts"),
    ] = None,
    cwd: Annotated[
        Path,
        typer.Option("--cwd", "-C", help="Workspace root", file_okay=False, resolve_path=True),
    ] = Path("."),
    show_order: Annotated[
        bool, typer.Option("--show-order", help="Only print the execution plan")
    ] = False,
    json_out: Annotated[bool, typer.Option("--json", help="Emit plan/report JSON")] = False,
) -> None:
    # with --json, stdout carries only the JSON document
    try:
        config = bootstrap(force=True, root=cwd).config
        workspaces = load_workspaces(cwd, yarn=config.yarn)
        plan = plan_run(
            workspaces,
            script,
            read_scripts=ManifestCache({n: w.location for n, w in workspaces.items()}),
            patterns=patterns,
            upstream=upstream,
            downstream=downstream,
        )
        if show_order:
            if json_out:
                typer.echo(plan.model_dump_json(indent=2))
            else:
                _render_plan(plan)
            return
        if not json_out:
            _render_plan(plan)
        if plan.is_empty and not json_out:
            render_panel("nothing to do", f"No target defines '{escape(script)}'", style="yellow")
            return
        runner = YarnScriptRunner(
            cwd, yarn=config.yarn, kill_timeout=config.kill_timeout, to_stderr=json_out
        )
        report = execute_plan(
            plan,
            runner,
            parallel=parallel,
            stagger=config.stagger if stagger is None else stagger,
        )
        if json_out:
            typer.echo(report.model_dump_json(indent=2))
        else:
            _render_report(report)
        report.raise_for_status()
    except WorkspaceRunError as exc:
        raise _fail(exc, stderr=json_out) from exc


@app.command("list")
def list_cmd(
    patterns: Annotated[
        list[str] | None,
        typer.Argument(help="Package name regexes (default: all)", callback=_check_patterns),
    ] = None,
    cwd: Annotated[
        Path,
        typer.Option("--cwd", "-C", help="Workspace root", file_okay=False, resolve_path=True),
    ] = Path("."),
    json_out: Annotated[bool, typer.Option("--json", help="Emit JSON list")] = False,
) -> None:
    cons = get_console()
    try:
        config = bootstrap(force=True, root=cwd).config
        graph = build_graph(load_workspaces(cwd, yarn=config.yarn))
        names = select_packages(graph.names(), patterns)
    except WorkspaceRunError as exc:
        raise _fail(exc, stderr=json_out) from exc
    nodes = [graph.packages[n] for n in names]
    if json_out:
        data = [node.model_dump() for node in nodes]
        typer.echo(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())
        return
    table = Table(title="Workspaces")
    for col in ("Name", "Location", "Dependencies", "Dependents"):
        table.add_column(col)
    for node in nodes:
        table.add_row(
            escape(node.name),
            escape(node.location),
            _names(node.dependencies) or "-",
            _names(node.dependents) or "-",
        )
    cons.print(table)


if __name__ == "__main__":  # pragma: no cover
    app()
