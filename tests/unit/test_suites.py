"""Tests for the CFP group definitions."""

import pytest

from cfpflow.errors import ConfigurationError
from cfpflow.suites import (
    CATEGORY_ID,
    GOAL_DELETE_DEFECT,
    GOAL_ID,
    UNAUTHORIZED,
    build_groups,
    select_groups,
)
from cfpflow.userdata import TestDataGenerator


@pytest.fixture
def groups():
    return build_groups(TestDataGenerator(seed=3))


def _by_name(groups, name):
    return next(g for g in groups if g.name == name)


class TestGroups:

    def test_declared_order(self, groups):
        assert [g.name for g in groups] == ["auth", "categories", "goals_limits", "transactions"]

    def test_creation_precedes_dependents(self, groups):
        for group in groups:
            produced = set()
            for step in group.steps:
                # every key a step depends on is captured earlier in the same group
                assert step.required_keys() <= produced, (group.name, step.name)
                produced |= set(step.capture)

    def test_unauthorized_steps_expect_the_documented_body(self, groups):
        unauth = [s for g in groups for s in g.steps if not s.auth and s.expect.json_subset]
        assert len(unauth) == 5
        for step in unauth:
            assert step.expect.status == 400
            assert step.expect.json_subset == UNAUTHORIZED

    def test_goal_delete_encodes_known_defect(self, groups):
        step = next(s for s in _by_name(groups, "goals_limits").steps if s.method == "DELETE" and GOAL_ID in s.required_keys())
        assert step.expect.status == 500
        assert step.expect.known_defect == GOAL_DELETE_DEFECT
        assert GOAL_DELETE_DEFECT in step.expect.body_contains

    def test_category_creation_payload(self, groups):
        step = next(s for s in _by_name(groups, "categories").steps if CATEGORY_ID in s.capture)
        assert step.json_body == {"categoryName": "Alimentação", "categoryType": "expense"}
        assert step.expect.status == 200

    def test_malformed_payloads_are_raw(self, groups):
        malformed = [s for g in groups for s in g.steps if s.raw_body is not None]
        assert len(malformed) == 3
        assert all(s.expect.status == 400 for s in malformed)


class TestSelectGroups:

    def test_keeps_declared_order(self, groups):
        picked = select_groups(groups, ["transactions", "auth"])
        assert [g.name for g in picked] == ["auth", "transactions"]

    def test_none_selects_all(self, groups):
        assert select_groups(groups, None) == groups

    def test_unknown_group(self, groups):
        with pytest.raises(ConfigurationError, match="unknown group"):
            select_groups(groups, ["budgets"])


def test_category_creation_asserts_success_message(groups):
    creations = [s for g in groups for s in g.steps if s.path == "/category/addCategory" and s.capture]
    assert len(creations) == 3
    for step in creations:
        assert step.expect.json_subset == {"success": True, "message": "Category added successfully"}
