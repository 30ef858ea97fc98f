"""Manifest reader: script names declared in a package's `package.json`."""
from __future__ import annotations

import logging
from pathlib import Path

import orjson

MANIFEST_NAME = "package.json"


def read_scripts(location: str | Path) -> frozenset[str]:
    """Script names defined by the manifest; empty when missing or malformed."""
    path = Path(location) / MANIFEST_NAME
    try:
        data = orjson.loads(path.read_bytes())
    except FileNotFoundError:
        logging.getLogger(__name__).debug("no manifest at %s", path)
        return frozenset()
    except (OSError, orjson.JSONDecodeError) as exc:
        logging.getLogger(__name__).debug("unreadable manifest %s: %s", path, exc)
        return frozenset()
    scripts = data.get("scripts") if isinstance(data, dict) else None
    if not isinstance(scripts, dict):
        return frozenset()
    return frozenset(str(k) for k in scripts)


class ManifestCache:
    """Per-run memo of `read_scripts`, keyed by package name."""

    def __init__(self, locations: dict[str, str]):
        self.locations = locations
        self._scripts: dict[str, frozenset[str]] = {}

    def __call__(self, package: str) -> frozenset[str]:
        if package not in self._scripts:
            location = self.locations.get(package)
            self._scripts[package] = read_scripts(location) if location else frozenset()
        return self._scripts[package]


__all__ = ["MANIFEST_NAME", "ManifestCache", "read_scripts"]
