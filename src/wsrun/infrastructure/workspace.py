"""Workspace info provider backed by `yarn workspaces info`."""
from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from wsrun.domain.errors import MetadataError, ProviderError
from wsrun.domain.models import WorkspaceInfo


def parse_workspaces(payload: Any, *, base: Path | None = None) -> dict[str, WorkspaceInfo]:
    """Validate decoded provider output; relative locations resolve against `base`."""
    if not isinstance(payload, dict):
        raise MetadataError("Workspace info must be a JSON object keyed by package name")
    out: dict[str, WorkspaceInfo] = {}
    for name, raw in payload.items():
        if not isinstance(raw, dict):
            raise MetadataError(f"Workspace '{name}' info must be an object")
        try:
            info = WorkspaceInfo.model_validate(raw)
        except ValidationError as exc:
            raise MetadataError(f"Invalid workspace info for '{name}': {exc}") from exc
        if base is not None and not Path(info.location).is_absolute():
            info = info.model_copy(update={"location": str(base / info.location)})
        out[name] = info
    return out


def load_workspaces(
    cwd: Path,
    *,
    yarn: Sequence[str] = ("yarn",),
) -> dict[str, WorkspaceInfo]:
    cmd = [*yarn, "--silent", "workspaces", "info"]
    logging.getLogger(__name__).debug("querying workspaces: %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        proc = subprocess.run(cmd, cwd=cwd, capture_output=True, check=False)
    except OSError as exc:
        raise ProviderError(f"Could not run {cmd[0]!r}: {exc}") from exc
    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        raise ProviderError(
            f"'{' '.join(cmd)}' exited with {proc.returncode}" + (f": {stderr}" if stderr else "")
        )
    try:
        payload = orjson.loads(proc.stdout)
    except orjson.JSONDecodeError as exc:
        raise ProviderError(f"Could not parse workspace info: {exc}") from exc
    return parse_workspaces(payload, base=cwd)


__all__ = ["load_workspaces", "parse_workspaces"]
