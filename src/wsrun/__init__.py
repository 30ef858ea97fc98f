"""Workspace script runner root package (runtime, CLI, planning, execution)."""

__version__ = "0.1.0"

__all__ = [
    "cli",
]
