"""Shared fixtures: workspace metadata builders and a scripted fake runner."""

import asyncio
import time

import pytest

from wsrun.domain.models import WorkspaceInfo
from wsrun.services.graph import build_graph


def make_workspaces(deps, root="/repo"):
    """`{"b": ["a"]}` -> WorkspaceInfo records located under `root/packages/<name>`."""
    return {
        name: WorkspaceInfo(location=f"{root}/packages/{name}", workspace_dependencies=list(d))
        for name, d in deps.items()
    }


class FakeRunner:
    """Records invocations; exit codes and async durations are scripted per package."""

    def __init__(self, codes=None, durations=None, errors=None):
        self.codes = codes or {}
        self.durations = durations or {}
        self.errors = errors or {}
        self.calls = []
        self.starts = {}
        self.cancelled = []

    def run(self, package, script):
        self.calls.append((package, script))
        return self.codes.get(package, 0)

    async def run_async(self, package, script):
        self.calls.append((package, script))
        self.starts[package] = time.monotonic()
        try:
            await asyncio.sleep(self.durations.get(package, 0.0))
        except asyncio.CancelledError:
            self.cancelled.append(package)
            raise
        if package in self.errors:
            raise self.errors[package]
        return self.codes.get(package, 0)


@pytest.fixture
def workspaces():
    return make_workspaces


@pytest.fixture
def graph_of():
    def _graph(deps):
        return build_graph(make_workspaces(deps))

    return _graph


@pytest.fixture
def fake_runner():
    return FakeRunner
