# cfpflow/__init__.py
"""
cfpflow

Sequential, session-stateful API flow runner for the CFP finance service.
"""

from cfpflow.config import FlowSettings
from cfpflow.errors import ConfigurationError, FlowError, PreconditionNotMet, SetupAborted
from cfpflow.evaluator import ExpectationEvaluator
from cfpflow.executor import RequestExecutor
from cfpflow.orchestrator import FlowOrchestrator, run_flow
from cfpflow.session import SessionContext
from cfpflow.steps import FlowStep, TestGroup
from cfpflow.types import (
    ExpectedOutcome,
    FlowState,
    RunReport,
    SetupOutcome,
    StepResult,
    StepStatus,
    TestUser,
    Verdict,
)

__version__ = "1.0.0"

__all__ = [
    "ConfigurationError",
    "ExpectationEvaluator",
    "ExpectedOutcome",
    "FlowError",
    "FlowOrchestrator",
    "FlowSettings",
    "FlowState",
    "FlowStep",
    "PreconditionNotMet",
    "RequestExecutor",
    "RunReport",
    "SessionContext",
    "SetupAborted",
    "SetupOutcome",
    "StepResult",
    "StepStatus",
    "TestGroup",
    "TestUser",
    "Verdict",
    "run_flow",
]
