"""Tests for regex package selection and script-presence filtering."""

import re

import pytest

from wsrun.domain.errors import NoMatchError
from wsrun.domain.models import TargetSet
from wsrun.services.selection import filter_by_script, select_packages

NAMES = ["@acme/core", "@acme/ui", "docs", "tools-cli"]


class TestSelectPackages:
    def test_default_selects_everything(self):
        assert select_packages(NAMES) == NAMES
        assert select_packages(NAMES, []) == NAMES

    def test_search_semantics(self):
        assert select_packages(NAMES, ["ui"]) == ["@acme/ui"]

    def test_patterns_are_or_combined(self):
        assert select_packages(NAMES, ["^docs$", "cli"]) == ["docs", "tools-cli"]

    def test_input_order_preserved(self):
        assert select_packages(NAMES, ["cli", "@acme"]) == ["@acme/core", "@acme/ui", "tools-cli"]

    def test_no_match_lists_candidates(self):
        with pytest.raises(NoMatchError) as err:
            select_packages(NAMES, ["nothing"])
        assert err.value.candidates == NAMES
        assert err.value.patterns == ["nothing"]

    def test_invalid_regex(self):
        with pytest.raises(re.error):
            select_packages(NAMES, ["("])


class TestFilterByScript:
    def test_stable_subsequence(self):
        order = ["a", "b", "c", "d", "e"]
        targets = TargetSet(primary=["d"], upstream=["b", "a"], downstream=["e"])
        scripts = {"a": True, "b": False, "d": True, "e": True}
        plan = filter_by_script(order, targets, "build", lambda n: scripts.get(n, False))
        assert plan.order == ["a", "d", "e"]
        assert plan.missing == {"primary": [], "upstream": ["b"], "downstream": []}
        assert plan.included() == {"primary": ["d"], "upstream": ["a"], "downstream": ["e"]}

    def test_non_targets_ignored(self):
        targets = TargetSet(primary=["b"])
        plan = filter_by_script(["a", "b", "c"], targets, "build", lambda n: True)
        assert plan.order == ["b"]

    def test_nothing_defines_script(self):
        targets = TargetSet(primary=["a", "b"])
        plan = filter_by_script(["a", "b"], targets, "lint", lambda n: False)
        assert plan.is_empty
        assert plan.missing["primary"] == ["a", "b"]
        assert plan.script == "lint"
