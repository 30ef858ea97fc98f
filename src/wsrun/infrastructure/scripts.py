"""Script runner: `yarn workspace <package> run <script>` as a child process."""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
from collections.abc import Sequence
from pathlib import Path

from wsrun.infrastructure.logging import render_prefixed_line

COLORS = ("green", "yellow", "blue", "magenta", "cyan")
MISSING_EXECUTABLE = 127
_READ_SIZE = 1 << 16
_MAX_LINE = 1 << 20
_STDERR_FD = 2


class YarnScriptRunner:
    """Runs package scripts from the workspace root.

    `run` blocks with inherited stdio. `run_async` pipes combined output,
    echoes it line by line with a coloured package prefix and terminates the
    child's whole process group whenever it returns early (cancellation or
    any error). With `to_stderr`, child output never reaches stdout.
    """

    def __init__(
        self,
        cwd: Path,
        *,
        yarn: Sequence[str] = ("yarn",),
        kill_timeout: float = 5.0,
        to_stderr: bool = False,
    ) -> None:
        self.cwd = cwd
        self.yarn = tuple(yarn)
        self.kill_timeout = kill_timeout
        self.to_stderr = to_stderr
        self._colors: dict[str, str] = {}

    def command(self, package: str, script: str) -> list[str]:
        return [*self.yarn, "workspace", package, "run", script]

    def color_for(self, package: str) -> str:
        if package not in self._colors:
            self._colors[package] = COLORS[len(self._colors) % len(COLORS)]
        return self._colors[package]

    def run(self, package: str, script: str) -> int:
        cmd = self.command(package, script)
        stdout = _STDERR_FD if self.to_stderr else None
        try:
            return subprocess.run(cmd, cwd=self.cwd, stdout=stdout, check=False).returncode
        except OSError as exc:
            logging.getLogger(__name__).error("could not start %r: %s", cmd[0], exc)
            return MISSING_EXECUTABLE

    async def run_async(self, package: str, script: str) -> int:
        cmd = self.command(package, script)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as exc:
            logging.getLogger(__name__).error("could not start %r: %s", cmd[0], exc)
            return MISSING_EXECUTABLE
        try:
            assert proc.stdout is not None
            await self._pump(package, proc.stdout)
            return await proc.wait()
        finally:
            if proc.returncode is None:
                await self._terminate(proc, package)

    async def _pump(self, package: str, stream: asyncio.StreamReader) -> None:
        # lines longer than _MAX_LINE are echoed in pieces
        color = self.color_for(package)
        pending = b""
        while chunk := await stream.read(_READ_SIZE):
            *lines, pending = (pending + chunk).split(b"\n")
            if len(pending) > _MAX_LINE:
                lines.append(pending)
                pending = b""
            for raw in lines:
                self._echo(package, raw, color)
        if pending:
            self._echo(package, pending, color)

    def _echo(self, package: str, raw: bytes, color: str) -> None:
        line = raw.decode("utf-8", errors="replace").rstrip("\r")
        render_prefixed_line(package, line, color, stderr=self.to_stderr)

    async def _terminate(self, proc: asyncio.subprocess.Process, package: str) -> None:
        logging.getLogger(__name__).info("terminating %s (pid %s)", package, proc.pid)
        _signal_group(proc.pid, signal.SIGTERM)
        try:
            await asyncio.wait_for(proc.wait(), self.kill_timeout)
        except asyncio.TimeoutError:
            _signal_group(proc.pid, signal.SIGKILL)
            await proc.wait()


def _signal_group(pid: int, sig: signal.Signals) -> None:
    try:
        os.killpg(os.getpgid(pid), sig)
    except ProcessLookupError:
        pass


__all__ = ["COLORS", "MISSING_EXECUTABLE", "YarnScriptRunner"]
