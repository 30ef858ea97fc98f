"""Logging & console helpers.

Features:
    * RichHandler based console logging (color, tracebacks)
    * Optional JSON logging mode (machine ingest)
    * Helper utilities (`get_console`, `render_panel`, `render_prefixed_line`) so
        service layers avoid importing rich directly, keeping presentation
        concerns centralized.
"""

from __future__ import annotations

import json
import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

_INITIALIZED = False
_JSON_MODE = False
_CONSOLES: dict[bool, Console] = {}


class _JsonHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - simple
        try:
            data = {
                "level": record.levelname,
                "name": record.name,
                "message": record.getMessage(),
            }
            if record.exc_info:
                data["exc_info"] = logging.Formatter().formatException(record.exc_info)
            print(json.dumps(data, ensure_ascii=False), file=sys.stderr)
        except Exception:  # pragma: no cover
            self.handleError(record)


def setup_logging(level: str | None = None, json_mode: bool | None = None) -> None:
    global _INITIALIZED, _JSON_MODE
    if _INITIALIZED and level is None and json_mode is None:
        return
    if json_mode is not None:
        _JSON_MODE = json_mode
    lvl_name = (level or os.getenv("LOG_LEVEL") or "WARNING").upper()
    lvl = getattr(logging, lvl_name, logging.WARNING)
    if not isinstance(lvl, int):
        lvl = logging.WARNING
    handler: logging.Handler
    if _JSON_MODE:
        handler = _JsonHandler()
    else:
        handler = RichHandler(
            console=Console(stderr=True), rich_tracebacks=True, show_path=False
        )
    logging.basicConfig(level=lvl, handlers=[handler], force=True, format="%(message)s")
    _INITIALIZED = True


def enable_json_logging() -> None:
    """Switch to JSON logging (idempotent)."""
    setup_logging(json_mode=True)


def get_console(stderr: bool = False) -> Console:
    """Return the shared rich Console for stdout (or stderr).

    Services should *not* import rich directly; use this accessor to keep
    presentation centralized.
    """
    if stderr not in _CONSOLES:
        _CONSOLES[stderr] = Console(stderr=stderr)
    return _CONSOLES[stderr]


def render_panel(title: str, body: str, *, style: str = "cyan", stderr: bool = False) -> None:
    get_console(stderr).print(Panel.fit(body, title=title, border_style=style))


def render_prefixed_line(prefix: str, line: str, color: str, *, stderr: bool = False) -> None:
    """Echo one line of child output as `[prefix] line`, prefix in `color`.

    The line is printed verbatim (no markup or highlighting).
    """
    text = Text.assemble((f"[{prefix}] ", f"bold {color}"), line)
    get_console(stderr).print(text, highlight=False, soft_wrap=True)


__all__ = [
    "enable_json_logging",
    "get_console",
    "render_panel",
    "render_prefixed_line",
    "setup_logging",
]
