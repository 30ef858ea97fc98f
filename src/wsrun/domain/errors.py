"""Error taxonomy shared by planning, execution and the CLI driver."""
from __future__ import annotations

from collections.abc import Sequence


class WorkspaceRunError(RuntimeError):
    """Base class for every fatal condition of a run."""

    exit_code = 1


class ConfigError(WorkspaceRunError):
    """A configuration value (file or environment) is unusable."""


class ProviderError(WorkspaceRunError):
    """Workspace metadata could not be obtained."""


class MetadataError(ProviderError):
    """Workspace metadata was obtained but does not have the expected shape."""


class CycleError(WorkspaceRunError):
    def __init__(self, packages: Sequence[str], cycle: Sequence[str] = ()) -> None:
        self.packages = list(packages)
        self.cycle = list(cycle)
        detail = " -> ".join(self.cycle) if self.cycle else ", ".join(self.packages)
        super().__init__(f"Dependency cycle detected, could not order workspaces: {detail}")


class NoMatchError(WorkspaceRunError):
    def __init__(self, patterns: Sequence[str], candidates: Sequence[str]) -> None:
        self.patterns = list(patterns)
        self.candidates = list(candidates)
        super().__init__(
            f"No workspace matches {' | '.join(self.patterns)!r} "
            f"({len(self.candidates)} candidates)"
        )


class ScriptExecutionError(WorkspaceRunError):
    def __init__(
        self,
        package: str,
        script: str,
        exit_code: int | None,
        *,
        skipped: Sequence[str] = (),
        cancelled: Sequence[str] = (),
    ) -> None:
        self.package = package
        self.script = script
        self.returncode = exit_code
        self.skipped = list(skipped)
        self.cancelled = list(cancelled)
        super().__init__(f"'{script}' failed in {package} (exit code {exit_code})")


__all__ = [
    "ConfigError",
    "CycleError",
    "MetadataError",
    "NoMatchError",
    "ProviderError",
    "ScriptExecutionError",
    "WorkspaceRunError",
]
