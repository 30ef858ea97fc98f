"""Tests for the execution orchestrator (sequential and staggered parallel)."""

import asyncio
import time

import pytest

from wsrun.domain.errors import ScriptExecutionError
from wsrun.domain.models import ExecutionPlan, TargetSet
from wsrun.services.execution import execute_plan, run_parallel, run_sequential


def plan_for(*names, script="build"):
    return ExecutionPlan(script=script, order=list(names), targets=TargetSet(primary=list(names)))


class TestSequential:
    def test_all_succeed(self, fake_runner):
        runner = fake_runner()
        report = run_sequential(plan_for("a", "b", "c"), runner)
        assert runner.calls == [("a", "build"), ("b", "build"), ("c", "build")]
        assert report.ok
        assert report.succeeded == ["a", "b", "c"]
        assert report.mode == "sequential"
        report.raise_for_status()

    def test_stops_at_first_failure(self, fake_runner):
        runner = fake_runner(codes={"b": 2})
        report = run_sequential(plan_for("a", "b", "c"), runner)
        assert [p for p, _ in runner.calls] == ["a", "b"]
        assert report.succeeded == ["a"]
        assert report.failed == ["b"]
        assert report.skipped == ["c"]
        assert report.result_for("b").exit_code == 2
        assert not report.ok

    def test_failure_raises_with_skipped(self, fake_runner):
        report = run_sequential(plan_for("a", "b", "c"), fake_runner(codes={"b": 1}))
        with pytest.raises(ScriptExecutionError) as err:
            report.raise_for_status()
        assert err.value.package == "b"
        assert err.value.skipped == ["c"]
        assert err.value.returncode == 1

    def test_results_follow_plan_order(self, fake_runner):
        report = run_sequential(plan_for("x", "y"), fake_runner())
        assert [r.package for r in report.results] == ["x", "y"]
        assert all(r.duration is not None for r in report.results)


class TestParallel:
    def test_all_succeed(self, fake_runner):
        runner = fake_runner(durations={"a": 0.05, "b": 0.01})
        report = asyncio.run(run_parallel(plan_for("a", "b", "c"), runner))
        assert report.ok
        assert report.mode == "parallel"
        assert [r.package for r in report.results] == ["a", "b", "c"]

    def test_staggered_start(self, fake_runner):
        runner = fake_runner(durations={"a": 0.5, "b": 0.5, "c": 0.5})
        report = asyncio.run(run_parallel(plan_for("a", "b", "c"), runner, stagger=0.1))
        starts = [report.result_for(n).started_at for n in ("a", "b", "c")]
        assert starts[0] < 0.05
        assert starts[1] >= 0.09
        assert starts[2] >= 0.19
        assert runner.starts["a"] <= runner.starts["b"] <= runner.starts["c"]
        assert report.ok

    def test_runs_concurrently(self, fake_runner):
        runner = fake_runner(durations={"a": 0.3, "b": 0.3, "c": 0.3})
        t0 = time.monotonic()
        report = asyncio.run(run_parallel(plan_for("a", "b", "c"), runner))
        assert time.monotonic() - t0 < 0.8
        assert report.ok

    def test_failure_cancels_siblings(self, fake_runner):
        runner = fake_runner(codes={"b": 1}, durations={"a": 5.0, "b": 0.05, "c": 5.0})
        t0 = time.monotonic()
        report = asyncio.run(run_parallel(plan_for("a", "b", "c"), runner, stagger=0.2))
        assert time.monotonic() - t0 < 2.0
        assert report.failed == ["b"]
        assert report.cancelled == ["a"]
        assert report.skipped == ["c"]
        assert runner.cancelled == ["a"]
        assert "c" not in runner.starts
        with pytest.raises(ScriptExecutionError) as err:
            report.raise_for_status()
        assert err.value.package == "b"
        assert err.value.cancelled == ["a"]
        assert err.value.skipped == ["c"]

    def test_running_siblings_terminated(self, fake_runner):
        runner = fake_runner(codes={"c": 3}, durations={"a": 5.0, "b": 5.0, "c": 0.01})
        report = asyncio.run(run_parallel(plan_for("a", "b", "c"), runner))
        assert report.failed == ["c"]
        assert sorted(report.cancelled) == ["a", "b"]
        assert sorted(runner.cancelled) == ["a", "b"]

    def test_runner_exception_propagates(self, fake_runner):
        runner = fake_runner(
            errors={"b": OSError("boom")}, durations={"a": 5.0, "b": 0.01}
        )
        with pytest.raises(OSError):
            asyncio.run(run_parallel(plan_for("a", "b"), runner))
        assert runner.cancelled == ["a"]

    def test_negative_stagger(self, fake_runner):
        with pytest.raises(ValueError):
            asyncio.run(run_parallel(plan_for("a"), fake_runner(), stagger=-1))


class TestExecutePlan:
    def test_empty_plan(self, fake_runner):
        runner = fake_runner()
        report = execute_plan(plan_for(), runner, parallel=True)
        assert report.ok
        assert report.results == []
        assert runner.calls == []

    def test_dispatch_sequential(self, fake_runner):
        report = execute_plan(plan_for("a"), fake_runner())
        assert report.mode == "sequential"

    def test_dispatch_parallel(self, fake_runner):
        report = execute_plan(plan_for("a", "b"), fake_runner(), parallel=True, stagger=0.01)
        assert report.mode == "parallel"
        assert report.succeeded == ["a", "b"]
