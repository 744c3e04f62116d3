# cfpflow/errors.py
"""
Exception taxonomy for flow runs.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from cfpflow.types import StepResult


class FlowError(Exception):
    """Base error for the flow runner."""


class SetupAborted(FlowError):
    """Setup could not produce an authenticated baseline; no group may run."""

    def __init__(self, reason: str, result: Optional["StepResult"] = None):
        super().__init__(reason)
        self.reason = reason
        self.result = result


class ConfigurationError(FlowError):
    """Invalid settings or CLI combination."""


class PreconditionNotMet(FlowError):
    """A step needs session values that no earlier step captured."""

    def __init__(self, missing):
        self.missing = tuple(missing)
        super().__init__(f"precondition not met: {', '.join(self.missing)} not captured")
