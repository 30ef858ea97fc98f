"""Domain models (Pydantic) defining the contracts between planning and execution."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from wsrun.domain.errors import ScriptExecutionError

Origin = Literal["primary", "upstream", "downstream"]
Direction = Literal["none", "upstream", "downstream"]
Mode = Literal["sequential", "parallel"]
Status = Literal["succeeded", "failed", "cancelled", "skipped"]

ORIGINS: tuple[Origin, ...] = ("primary", "upstream", "downstream")


# -------------------- Workspace Metadata -------------------- #


class WorkspaceInfo(BaseModel):
    """One record of `yarn workspaces info` output."""

    model_config = {"populate_by_name": True, "frozen": True}

    location: str
    workspace_dependencies: list[str] = Field(alias="workspaceDependencies")
    mismatched_workspace_dependencies: list[str] = Field(
        default_factory=list, alias="mismatchedWorkspaceDependencies"
    )


class PackageNode(BaseModel):
    """A workspace package with declared (upstream) and derived (downstream) edges."""

    model_config = {"frozen": True}

    name: str
    location: str
    dependencies: list[str] = Field(default_factory=list)
    dependents: list[str] = Field(default_factory=list)


class DependencyGraph(BaseModel):
    """Packages plus `(upstream, downstream)` edges, built once per run."""

    model_config = {"frozen": True}

    packages: dict[str, PackageNode]
    edges: list[tuple[str, str]] = Field(default_factory=list)

    def names(self) -> list[str]:
        return list(self.packages)

    def dependencies_of(self, name: str) -> list[str]:
        node = self.packages.get(name)
        return node.dependencies if node else []

    def dependents_of(self, name: str) -> list[str]:
        node = self.packages.get(name)
        return node.dependents if node else []


# -------------------- Planning -------------------- #


class TargetSet(BaseModel):
    """Affected packages grouped by how they were reached; groups never overlap."""

    primary: list[str] = Field(default_factory=list)
    upstream: list[str] = Field(default_factory=list)
    downstream: list[str] = Field(default_factory=list)

    def all(self) -> list[str]:
        return [*self.primary, *self.upstream, *self.downstream]

    def origin(self, name: str) -> Origin | None:
        for origin in ORIGINS:
            if name in getattr(self, origin):
                return origin
        return None

    def __contains__(self, name: object) -> bool:
        return name in self.primary or name in self.upstream or name in self.downstream

    def __len__(self) -> int:
        return len(self.primary) + len(self.upstream) + len(self.downstream)


class ExecutionPlan(BaseModel):
    """Ordered packages that define `script`; the only input of the orchestrator."""

    script: str
    order: list[str] = Field(default_factory=list)
    targets: TargetSet = Field(default_factory=TargetSet)
    missing: dict[Origin, list[str]] = Field(
        default_factory=lambda: {origin: [] for origin in ORIGINS}
    )

    def included(self) -> dict[Origin, list[str]]:
        out: dict[Origin, list[str]] = {origin: [] for origin in ORIGINS}
        for name in self.order:
            origin = self.targets.origin(name)
            if origin is not None:
                out[origin].append(name)
        return out

    @property
    def is_empty(self) -> bool:
        return not self.order


# -------------------- Execution -------------------- #


class ScriptResult(BaseModel):
    """Outcome of one package invocation."""

    package: str
    status: Status
    exit_code: int | None = None
    started_at: float | None = None  # seconds since the run started
    duration: float | None = None


class RunReport(BaseModel):
    """Aggregated result of one execution pass, in plan order."""

    script: str
    mode: Mode
    results: list[ScriptResult] = Field(default_factory=list)

    def _with_status(self, status: Status) -> list[str]:
        return [r.package for r in self.results if r.status == status]

    @property
    def succeeded(self) -> list[str]:
        return self._with_status("succeeded")

    @property
    def failed(self) -> list[str]:
        return self._with_status("failed")

    @property
    def cancelled(self) -> list[str]:
        return self._with_status("cancelled")

    @property
    def skipped(self) -> list[str]:
        return self._with_status("skipped")

    @property
    def ok(self) -> bool:
        return all(r.status == "succeeded" for r in self.results)

    def result_for(self, package: str) -> ScriptResult | None:
        for r in self.results:
            if r.package == package:
                return r
        return None

    def raise_for_status(self) -> None:
        if self.ok:
            return
        failures = [r for r in self.results if r.status == "failed"]
        if failures:
            # earliest finisher is the one that triggered the stop
            first = min(failures, key=lambda r: (r.started_at or 0.0) + (r.duration or 0.0))
            package, code = first.package, first.exit_code
        else:
            package, code = self.results[0].package, None
        raise ScriptExecutionError(
            package,
            self.script,
            code,
            skipped=self.skipped,
            cancelled=self.cancelled,
        )


__all__ = [
    "DependencyGraph",
    "Direction",
    "ExecutionPlan",
    "Mode",
    "ORIGINS",
    "Origin",
    "PackageNode",
    "RunReport",
    "ScriptResult",
    "Status",
    "TargetSet",
    "WorkspaceInfo",
]
