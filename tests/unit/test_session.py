"""Tests for per-run session state."""

import pytest

from cfpflow.errors import PreconditionNotMet
from cfpflow.session import AUTH_HEADER, SessionContext, credential_from_response
from cfpflow.types import StepResult


def _signin(cookies=None, body=None) -> StepResult:
    return StepResult(
        method="POST",
        path="/user/signin",
        status_code=200,
        cookies=cookies or {},
        body=body,
    )


class TestCredentialCapture:

    def test_cookie_becomes_cookie_header(self):
        session = SessionContext()
        assert session.capture_auth(_signin(cookies={"token": "abc123"}))
        assert session.auth_headers() == {"Cookie": "token=abc123"}
        assert session.authenticated

    def test_body_token_falls_back_to_bearer(self):
        assert credential_from_response(_signin(body={"success": True, "token": "jwt.value"})) == (
            "Authorization",
            "Bearer jwt.value",
        )

    def test_cookie_wins_over_body_token(self):
        header = credential_from_response(_signin(cookies={"token": "c"}, body={"token": "b"}))
        assert header == ("Cookie", "token=c")

    def test_no_credential(self):
        session = SessionContext()
        assert not session.capture_auth(_signin(body={"success": True}))
        assert session.auth_headers() == {}
        assert not session.authenticated

    def test_credential_is_write_once(self):
        session = SessionContext()
        session.capture_auth(_signin(cookies={"token": "first"}))
        with pytest.raises(ValueError):
            session.capture_auth(_signin(cookies={"token": "second"}))
        assert session.auth_headers() == {"Cookie": "token=first"}


class TestValueCapture:

    def test_first_matching_path_wins(self):
        session = SessionContext()
        result = StepResult(method="POST", path="/meta/goals-limits", body={"goalLimit": {"_id": "g1"}, "_id": "other"})
        assert session.capture_from_body("goal_id", result, ("goalLimit._id", "_id")) == "g1"
        assert session.get("goal_id") == "g1"

    def test_empty_values_are_not_captured(self):
        session = SessionContext()
        result = StepResult(method="POST", path="/category/addCategory", body={"categoryId": "  "})
        assert session.capture_from_body("category_id", result, ("categoryId",)) is None
        assert session.missing(["category_id"]) == ("category_id",)

    def test_numeric_ids_are_stringified(self):
        session = SessionContext()
        result = StepResult(method="POST", path="/x", body={"id": 42})
        assert session.capture_from_body("x_id", result, ("id",)) == "42"

    def test_template_vars_exclude_credential(self):
        session = SessionContext()
        session.capture(AUTH_HEADER, ("Cookie", "token=abc"))
        session.capture("category_id", "c1")
        assert session.template_vars() == {"category_id": "c1"}

    def test_sessions_do_not_share_state(self):
        a, b = SessionContext(), SessionContext()
        a.capture("category_id", "c1")
        assert b.get("category_id") is None

    def test_require_names_every_absent_key(self):
        session = SessionContext()
        session.capture("category_id", "c1")
        assert session.require("category_id") == {"category_id": "c1"}
        with pytest.raises(PreconditionNotMet) as exc:
            session.require("category_id", "goal_id", "tx_category_id")
        assert exc.value.missing == ("goal_id", "tx_category_id")
        assert "goal_id, tx_category_id" in str(exc.value)
