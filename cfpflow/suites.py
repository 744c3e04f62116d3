# cfpflow/suites.py
"""
Test groups for the CFP finance service.

Groups are independent in data (each creates what it consumes) and run in
the order returned by build_groups(). Inside a group, creation comes before
update/delete because later steps address ids captured from creation.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from cfpflow.errors import ConfigurationError
from cfpflow.orchestrator import SIGNIN_PATH
from cfpflow.steps import FlowStep, TestGroup
from cfpflow.types import ExpectedOutcome
from cfpflow.userdata import TestDataGenerator

# Session keys
CATEGORY_ID = "category_id"
GOAL_CATEGORY_ID = "goal_category_id"
GOAL_ID = "goal_id"
TX_CATEGORY_ID = "tx_category_id"

UNAUTHORIZED = {"success": False, "message": "User not authorized"}

# Documented upstream bug; the goal/limit delete step asserts it on purpose.
GOAL_DELETE_DEFECT = "goalLimit.remove is not a function"

JSON_CONTENT = {"content-type": "application/json"}
MALFORMED_JSON = '{"categoryName": "Alimentação", "categoryType": '

_CATEGORY_ID_PATHS = (
    "categoryId", "category._id", "category.id", "data._id", "data.id", "_id", "id",
)
_GOAL_ID_PATHS = (
    "goalLimit._id", "goalLimit.id", "goalsLimits._id", "goal._id",
    "data._id", "data.id", "_id", "id",
)

CATEGORY_PAYLOAD = {"categoryName": "Alimentação", "categoryType": "expense"}
CATEGORY_ADDED = {"success": True, "message": "Category added successfully"}


def _unauthorized(name: str, method: str, path: str, json_body=None) -> FlowStep:
    return FlowStep(
        name=name,
        method=method,
        path=path,
        auth=False,
        json_body=json_body,
        expect=ExpectedOutcome(status=400, json_subset=UNAUTHORIZED),
    )


def _create_category(name: str, key: str, payload: Optional[Dict[str, str]] = None) -> FlowStep:
    return FlowStep(
        name=name,
        method="POST",
        path="/category/addCategory",
        json_body=payload or CATEGORY_PAYLOAD,
        expect=ExpectedOutcome(status=200, json_subset=CATEGORY_ADDED),
        capture={key: _CATEGORY_ID_PATHS},
    )


def _delete_category(name: str, key: str) -> FlowStep:
    return FlowStep(
        name=name,
        method="DELETE",
        path=f"/category/deleteCategory/{{{{{key}}}}}",
        expect=ExpectedOutcome(status=200),
    )


def auth_group(data: TestDataGenerator) -> TestGroup:
    return TestGroup(
        name="auth",
        description="Session probe and sign-in rejections",
        steps=[
            FlowStep(
                name="protected route with session",
                method="GET",
                path="/user/protectedRoute",
                expect=ExpectedOutcome(status=200, json_subset={"success": True}),
            ),
            _unauthorized("protected route without session", "GET", "/user/protectedRoute"),
            FlowStep(
                name="sign in with fabricated credentials",
                method="POST",
                path=SIGNIN_PATH,
                auth=False,
                json_body=data.random_credentials(),
                expect=ExpectedOutcome(status=400),
            ),
            FlowStep(
                name="sign in with malformed JSON",
                method="POST",
                path=SIGNIN_PATH,
                auth=False,
                headers=JSON_CONTENT,
                raw_body='{"email": "broken@example.com", "password": ',
                expect=ExpectedOutcome(status=400),
            ),
        ],
    )


def categories_group() -> TestGroup:
    return TestGroup(
        name="categories",
        description="Category management",
        steps=[
            _unauthorized("add category without session", "POST", "/category/addCategory", CATEGORY_PAYLOAD),
            _unauthorized("list categories without session", "GET", "/category/getCategory"),
            FlowStep(
                name="add category with malformed JSON",
                method="POST",
                path="/category/addCategory",
                headers=JSON_CONTENT,
                raw_body=MALFORMED_JSON,
                expect=ExpectedOutcome(status=400),
            ),
            FlowStep(
                name="add category with malformed body as text",
                method="POST",
                path="/category/addCategory",
                headers={"content-type": "text/plain"},
                raw_body=MALFORMED_JSON,
                expect=ExpectedOutcome(status=400),
            ),
            _create_category("add category", CATEGORY_ID),
            FlowStep(
                name="list categories",
                method="GET",
                path="/category/getCategory",
                expect=ExpectedOutcome(status=200, header_contains={"content-type": "application/json"}),
            ),
            _delete_category("delete category", CATEGORY_ID),
        ],
    )


def goals_limits_group() -> TestGroup:
    return TestGroup(
        name="goals_limits",
        description="Goal/limit management, chained on a category",
        steps=[
            _unauthorized(
                "create goal/limit without session", "POST", "/meta/goals-limits",
                {"type": "limit", "amount": 500},
            ),
            _unauthorized("list goals/limits without session", "GET", "/meta/goals-limits"),
            _create_category("add category for goal/limit", GOAL_CATEGORY_ID),
            FlowStep(
                name="create goal/limit",
                method="POST",
                path="/meta/goals-limits",
                json_body={
                    "categoryId": f"{{{{{GOAL_CATEGORY_ID}}}}}",
                    "type": "limit",
                    "amount": 500,
                    "description": "Limite de alimentação",
                },
                expect=ExpectedOutcome(status=201),
                capture={GOAL_ID: _GOAL_ID_PATHS},
            ),
            FlowStep(
                name="list goals/limits",
                method="GET",
                path="/meta/goals-limits",
                expect=ExpectedOutcome(status=200, header_contains={"content-type": "application/json"}),
            ),
            FlowStep(
                name="update goal/limit",
                method="PUT",
                path=f"/meta/goals-limits/{{{{{GOAL_ID}}}}}",
                json_body={"amount": 750, "description": "Limite ajustado"},
                expect=ExpectedOutcome(status=200),
            ),
            FlowStep(
                name="delete goal/limit (known defect)",
                method="DELETE",
                path=f"/meta/goals-limits/{{{{{GOAL_ID}}}}}",
                expect=ExpectedOutcome(
                    status=500,
                    body_contains=(GOAL_DELETE_DEFECT,),
                    known_defect=GOAL_DELETE_DEFECT,
                ),
            ),
            _delete_category("delete category of goal/limit", GOAL_CATEGORY_ID),
        ],
    )


def transactions_group() -> TestGroup:
    return TestGroup(
        name="transactions",
        description="Transaction creation against a fresh category",
        steps=[
            _create_category("add category for transaction", TX_CATEGORY_ID),
            FlowStep(
                name="add transaction",
                method="POST",
                path="/transaction/addTransaction",
                json_body={
                    "categoryId": f"{{{{{TX_CATEGORY_ID}}}}}",
                    "amount": 50,
                    "description": "Almoço",
                },
                expect=ExpectedOutcome(status=200),
            ),
            _delete_category("delete category of transaction", TX_CATEGORY_ID),
        ],
    )


def build_groups(data: Optional[TestDataGenerator] = None) -> List[TestGroup]:
    data = data or TestDataGenerator()
    return [
        auth_group(data),
        categories_group(),
        goals_limits_group(),
        transactions_group(),
    ]


def select_groups(groups: List[TestGroup], only: Optional[Iterable[str]]) -> List[TestGroup]:
    """Keep declared order; reject unknown names."""
    if not only:
        return list(groups)
    wanted = list(only)
    known = {g.name for g in groups}
    unknown = [n for n in wanted if n not in known]
    if unknown:
        raise ConfigurationError(
            f"unknown group(s): {', '.join(unknown)}; available: {', '.join(g.name for g in groups)}"
        )
    return [g for g in groups if g.name in wanted]
