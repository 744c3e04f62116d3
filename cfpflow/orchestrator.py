# cfpflow/orchestrator.py
"""
Flow Orchestrator

Runs one authenticated session against the service:

    INIT -> AUTHENTICATED -> RUNNING (groups in declared order) -> TORN_DOWN
      \\-> ABORTED (sign-in produced no credential; nothing else runs)

- Sign-up conflicts are non-fatal; sign-in must yield a credential
- Steps whose captured prerequisites are missing are SKIPPED, not failed
- Sign-out is best effort and never changes the run outcome
- Progress events through an optional callback
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from cfpflow.errors import PreconditionNotMet, SetupAborted
from cfpflow.evaluator import ExpectationEvaluator
from cfpflow.executor import RequestExecutor
from cfpflow.session import SessionContext
from cfpflow.steps import FlowStep, TestGroup
from cfpflow.types import (
    ExpectedOutcome,
    FlowState,
    GroupReport,
    Mismatch,
    MismatchKind,
    RunReport,
    SetupOutcome,
    StepRecord,
    StepResult,
    StepStatus,
    TestUser,
)
from cfpflow.utils import render_template

logger = logging.getLogger(__name__)

SIGNUP_PATH = "/user/signup"
SIGNIN_PATH = "/user/signin"
SIGNOUT_PATH = "/user/signout"

SIGNIN_EXPECT = ExpectedOutcome(
    status=200,
    json_subset={"success": True, "message": "User signed in successfully"},
)
SIGNOUT_EXPECT = ExpectedOutcome(status=201)

_STATUS_ICONS = {
    StepStatus.PASS: "✅",
    StepStatus.FAIL: "❌",
    StepStatus.SLOW: "🐢",
    StepStatus.ERROR: "🔌",
    StepStatus.SKIPPED: "⏭️",
    StepStatus.KNOWN_DEFECT: "🐛",
}


def classify_signup(result: StepResult) -> SetupOutcome:
    """Map a sign-up response onto the setup outcome taxonomy."""
    if result.status_code in (200, 201):
        return SetupOutcome.CREATED
    if result.status_code == 409:
        return SetupOutcome.ALREADY_EXISTS
    if result.status_code == 400 and "exist" in result.text.lower():
        return SetupOutcome.ALREADY_EXISTS
    return SetupOutcome.UNEXPECTED


class FlowOrchestrator:
    """
    Sequential, session-stateful runner.

    Every run() builds its own SessionContext, so one orchestrator can be
    reused and separate processes never share state.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        groups: Sequence[TestGroup],
        user: TestUser,
        evaluator: Optional[ExpectationEvaluator] = None,
        get_retries: int = 0,
        progress_cb: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        self.executor = executor
        self.groups = list(groups)
        self.user = user
        self.evaluator = evaluator or ExpectationEvaluator()
        self.get_retries = get_retries
        self._progress_cb = progress_cb
        self.state = FlowState.INIT

    # ==================== Public API ====================

    def run(self, run_id: Optional[str] = None) -> RunReport:
        run_id = run_id or f"run_{datetime.now():%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:6]}"
        report = RunReport(run_id=run_id, base_url=self.executor.base_url, user_email=self.user.email)
        session = SessionContext()
        start = time.perf_counter()
        self.state = FlowState.INIT

        logger.info(f"🚀 Run {run_id} against {self.executor.base_url} as {self.user.email}")
        self._emit("run_start", run_id=run_id, groups=[g.name for g in self.groups])

        try:
            report.setup_outcome = self._setup(session, report)
        except SetupAborted as e:
            self.state = FlowState.ABORTED
            report.aborted = True
            report.abort_reason = e.reason
            logger.error(f"⛔ Setup aborted: {e.reason}")
            self._emit("setup_done", aborted=True, reason=e.reason)
        else:
            self.state = FlowState.AUTHENTICATED
            self._emit("setup_done", aborted=False, outcome=report.setup_outcome.value)

            self.state = FlowState.RUNNING
            for group in self.groups:
                report.groups.append(self._run_group(group, session))

            self._teardown(session, report)
            self.state = FlowState.TORN_DOWN

        report.state = self.state
        report.completed_at = datetime.now().isoformat()
        report.duration_s = round(time.perf_counter() - start, 2)

        totals = report.totals()
        logger.info(
            f"🏁 Run {run_id} {'PASSED' if report.succeeded else 'FAILED'}: "
            + ", ".join(f"{k}={v}" for k, v in totals.items())
        )
        self._emit("run_done", run_id=run_id, succeeded=report.succeeded, **totals)
        return report

    # ==================== Setup / Teardown ====================

    def _setup(self, session: SessionContext, report: RunReport) -> SetupOutcome:
        signup = self.executor.execute("POST", SIGNUP_PATH, json_body=self.user.signup_payload())
        if not signup.reached:
            report.setup_steps.append(StepRecord("sign up", StepStatus.ERROR, signup, signup.transport_error))
            raise SetupAborted(f"service unreachable during sign-up: {signup.transport_error}", signup)

        outcome = classify_signup(signup)
        if outcome is SetupOutcome.UNEXPECTED:
            logger.warning(f"⚠️ Sign-up returned {signup.status_code}; attempting sign-in anyway")
            report.setup_steps.append(StepRecord(
                "sign up", StepStatus.FAIL, signup, f"unexpected status {signup.status_code}"
            ))
        else:
            logger.info(f"👤 Sign-up: {outcome.value.lower()} ({signup.status_code})")
            report.setup_steps.append(StepRecord("sign up", StepStatus.PASS, signup, outcome.value))

        signin = self.executor.execute("POST", SIGNIN_PATH, json_body=self.user.signin_payload())
        if not signin.reached:
            report.setup_steps.append(StepRecord("sign in", StepStatus.ERROR, signin, signin.transport_error))
            raise SetupAborted(f"service unreachable during sign-in: {signin.transport_error}", signin)

        if signin.status_code != 200:
            report.setup_steps.append(StepRecord("sign in", StepStatus.FAIL, signin, f"status {signin.status_code}"))
            raise SetupAborted(f"sign-in returned {signin.status_code}, expected 200", signin)

        if not session.capture_auth(signin):
            report.setup_steps.append(StepRecord("sign in", StepStatus.FAIL, signin, "no credential"))
            raise SetupAborted("sign-in response carried no session cookie or token", signin)

        verdict = self.evaluator.evaluate(SIGNIN_EXPECT, signin)
        if verdict.status is StepStatus.FAIL:
            logger.warning(f"⚠️ Sign-in body did not match: {verdict.summary()}")
            report.setup_steps.append(StepRecord("sign in", StepStatus.FAIL, signin, verdict.summary()))
        else:
            report.setup_steps.append(StepRecord("sign in", StepStatus.PASS, signin))
        logger.info("🔐 Authenticated")
        return outcome

    def _teardown(self, session: SessionContext, report: RunReport) -> None:
        """Best-effort sign-out; problems are logged and recorded only."""
        try:
            result = self.executor.execute("GET", SIGNOUT_PATH, headers=session.auth_headers())
            verdict = self.evaluator.evaluate(SIGNOUT_EXPECT, result)
            report.teardown = StepRecord("sign out", verdict.status, result, None if verdict.passed else verdict.summary())
            if not verdict.passed:
                report.teardown_error = verdict.summary()
                logger.warning(f"⚠️ Sign-out did not complete cleanly: {report.teardown_error}")
            else:
                logger.info("👋 Signed out")
        except Exception as e:
            report.teardown_error = f"{type(e).__name__}: {e}"
            logger.warning(f"⚠️ Sign-out raised: {report.teardown_error}", exc_info=True)

        self._emit("teardown_done", error=report.teardown_error)

    # ==================== Groups ====================

    def _run_group(self, group: TestGroup, session: SessionContext) -> GroupReport:
        logger.info(f"📂 Group: {group.name}")
        self._emit("group_start", name=group.name, steps=len(group.steps))

        out = GroupReport(name=group.name)
        for step in group.steps:
            record = self._run_step(step, session)
            out.steps.append(record)
            self._emit("step_done", group=group.name, name=record.name, status=record.status.value)

        self._emit(
            "group_done",
            name=group.name,
            succeeded=out.succeeded,
            passed=out.count(StepStatus.PASS),
            failed=out.count(StepStatus.FAIL),
            skipped=out.count(StepStatus.SKIPPED),
        )
        return out

    def _run_step(self, step: FlowStep, session: SessionContext) -> StepRecord:
        try:
            session.require(*sorted(step.required_keys()))
        except PreconditionNotMet as e:
            detail = str(e)
            logger.info(f"  {_STATUS_ICONS[StepStatus.SKIPPED]} {step.name}: {detail}")
            return StepRecord(step.name, StepStatus.SKIPPED, detail=detail)

        ctx = session.template_vars()
        headers = dict(step.headers)
        if step.auth:
            headers.update(session.auth_headers())

        method = step.method.upper()
        result = self.executor.execute(
            method,
            render_template(step.path, ctx),
            headers=headers,
            json_body=render_template(step.json_body, ctx),
            raw_body=render_template(step.raw_body, ctx),
            retries=self.get_retries if method == "GET" else 0,
        )

        verdict = self.evaluator.evaluate(step.expect, result)
        captured: Dict[str, str] = {}

        if step.capture and verdict.status not in (StepStatus.FAIL, StepStatus.ERROR):
            for key, paths in step.capture.items():
                value = session.capture_from_body(key, result, paths)
                if value is None:
                    verdict.mismatches.append(Mismatch(
                        MismatchKind.CAPTURE,
                        f"no non-empty {key} at any of {', '.join(paths)}",
                    ))
                    verdict.status = StepStatus.FAIL
                else:
                    captured[key] = value

        result.matched = verdict.passed
        result.failure_detail = None if verdict.passed else verdict.summary()
        detail = verdict.summary() if verdict.mismatches else None

        icon = _STATUS_ICONS[verdict.status]
        msg = f"  {icon} {step.name}: {method} {result.path} → {result.status_code} ({result.elapsed_ms}ms)"
        if verdict.status in (StepStatus.FAIL, StepStatus.ERROR):
            logger.warning(f"{msg} {detail}")
        else:
            logger.info(msg)

        return StepRecord(step.name, verdict.status, result, detail, captured)

    # ==================== Internals ====================

    def _emit(self, event: str, **data):
        """Emit progress event"""
        if self._progress_cb:
            try:
                self._progress_cb({"event": event, **data})
            except Exception:
                logger.debug("progress_cb failed", exc_info=True)


def run_flow(
    executor: RequestExecutor,
    groups: List[TestGroup],
    user: TestUser,
    run_id: Optional[str] = None,
    **kwargs: Any,
) -> RunReport:
    """Convenience wrapper: one orchestrator, one run."""
    return FlowOrchestrator(executor, groups, user, **kwargs).run(run_id)
