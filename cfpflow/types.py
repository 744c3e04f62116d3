# cfpflow/types.py
"""
Shared types, enums, and dataclasses for flow runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from cfpflow.utils import redact_sensitive


class StepStatus(str, Enum):
    """Outcome of a single flow step."""
    PASS = "PASS"
    FAIL = "FAIL"
    SLOW = "SLOW"                  # only the response-time ceiling was exceeded
    ERROR = "ERROR"                # system under test could not be reached
    SKIPPED = "SKIPPED"
    KNOWN_DEFECT = "KNOWN_DEFECT"  # whitelisted defect reproduced as documented


class MismatchKind(str, Enum):
    """Category of a failed expectation."""
    TRANSPORT = "transport"
    STATUS = "status"
    JSON = "json"
    SCHEMA = "schema"
    HEADER = "header"
    BODY = "body"
    LATENCY = "latency"
    CAPTURE = "capture"
    KNOWN_DEFECT_CHANGED = "known_defect_changed"


class FlowState(str, Enum):
    """Orchestrator lifecycle."""
    INIT = "INIT"
    AUTHENTICATED = "AUTHENTICATED"
    RUNNING = "RUNNING"
    TORN_DOWN = "TORN_DOWN"
    ABORTED = "ABORTED"


class SetupOutcome(str, Enum):
    """Result of the signup phase."""
    CREATED = "CREATED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    UNEXPECTED = "UNEXPECTED"


# ==================== Inputs ====================

@dataclass(frozen=True)
class TestUser:
    """Generated identity used to authenticate a run."""
    __test__ = False

    username: str
    email: str
    password: str
    phone: str

    def signup_payload(self) -> Dict[str, str]:
        return {
            "name": self.username,
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "phone": self.phone,
        }

    def signin_payload(self) -> Dict[str, str]:
        return {"email": self.email, "password": self.password}


@dataclass(frozen=True)
class ExpectedOutcome:
    """
    Declarative assertion set attached to one step.

    json_subset uses subset semantics: keys absent from it are ignored in
    the actual body. known_defect names a documented upstream bug that this
    outcome reproduces on purpose.
    """
    status: Optional[int] = None
    json_subset: Dict[str, Any] = field(default_factory=dict)
    header_contains: Dict[str, str] = field(default_factory=dict)
    body_contains: Tuple[str, ...] = ()
    max_response_time_ms: Optional[int] = None
    json_schema: Optional[Dict[str, Any]] = None
    known_defect: Optional[str] = None


# ==================== Results ====================

@dataclass
class StepResult:
    """One executed request and what came back."""
    method: str
    path: str
    status_code: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    text: str = ""
    elapsed_ms: Optional[int] = None
    transport_error: Optional[str] = None
    attempts: int = 1
    matched: bool = False
    failure_detail: Optional[str] = None

    @property
    def reached(self) -> bool:
        """True when the system under test answered at all."""
        return self.transport_error is None

    def to_dict(self, max_text: int = 1000) -> Dict[str, Any]:
        text = self.text if len(self.text) <= max_text else self.text[:max_text] + "..."
        return {
            "method": self.method,
            "path": self.path,
            "status_code": self.status_code,
            "headers": redact_sensitive(self.headers),
            "body": redact_sensitive(self.body),
            "text": text if self.body is None else None,
            "elapsed_ms": self.elapsed_ms,
            "transport_error": self.transport_error,
            "attempts": self.attempts,
            "matched": self.matched,
            "failure_detail": self.failure_detail,
        }


@dataclass
class Mismatch:
    kind: MismatchKind
    detail: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.detail}"


@dataclass
class Verdict:
    """Evaluation of a StepResult against an ExpectedOutcome."""
    status: StepStatus
    mismatches: List[Mismatch] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status in (StepStatus.PASS, StepStatus.KNOWN_DEFECT)

    def summary(self) -> str:
        return "; ".join(str(m) for m in self.mismatches) if self.mismatches else "OK"


@dataclass
class StepRecord:
    name: str
    status: StepStatus
    result: Optional[StepResult] = None
    detail: Optional[str] = None
    captured: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "detail": self.detail,
            "captured": dict(self.captured),
            "result": self.result.to_dict() if self.result else None,
        }


def _count(records: List[StepRecord], status: StepStatus) -> int:
    return sum(1 for r in records if r.status == status)


@dataclass
class GroupReport:
    name: str
    steps: List[StepRecord] = field(default_factory=list)

    def count(self, status: StepStatus) -> int:
        return _count(self.steps, status)

    @property
    def succeeded(self) -> bool:
        return not any(s.status in _BLOCKING for s in self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "succeeded": self.succeeded,
            "steps": [s.to_dict() for s in self.steps],
        }


_BLOCKING = (StepStatus.FAIL, StepStatus.SLOW, StepStatus.ERROR)


@dataclass
class RunReport:
    """Aggregated outcome of one flow run"""
    run_id: str
    base_url: str
    user_email: Optional[str] = None
    state: FlowState = FlowState.INIT
    setup_outcome: Optional[SetupOutcome] = None
    setup_steps: List[StepRecord] = field(default_factory=list)
    groups: List[GroupReport] = field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None
    teardown: Optional[StepRecord] = None
    teardown_error: Optional[str] = None
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: Optional[str] = None
    duration_s: float = 0.0

    @property
    def steps(self) -> List[StepRecord]:
        return [s for g in self.groups for s in g.steps]

    def count(self, status: StepStatus) -> int:
        return _count(self.steps, status)

    @property
    def succeeded(self) -> bool:
        """Teardown never influences this."""
        return not self.aborted and all(g.succeeded for g in self.groups)

    def totals(self) -> Dict[str, int]:
        return {
            "total": len(self.steps),
            "passed": self.count(StepStatus.PASS),
            "failed": self.count(StepStatus.FAIL),
            "slow": self.count(StepStatus.SLOW),
            "errors": self.count(StepStatus.ERROR),
            "skipped": self.count(StepStatus.SKIPPED),
            "known_defects": self.count(StepStatus.KNOWN_DEFECT),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "base_url": self.base_url,
            "user_email": self.user_email,
            "state": self.state.value,
            "setup_outcome": self.setup_outcome.value if self.setup_outcome else None,
            "setup_steps": [s.to_dict() for s in self.setup_steps],
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "succeeded": self.succeeded,
            "totals": self.totals(),
            "groups": [g.to_dict() for g in self.groups],
            "teardown": self.teardown.to_dict() if self.teardown else None,
            "teardown_error": self.teardown_error,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_s": self.duration_s,
        }
