# cfpflow/steps.py
"""Step and group definitions consumed by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from cfpflow.types import ExpectedOutcome
from cfpflow.utils import template_names


@dataclass(frozen=True)
class FlowStep:
    """
    One request plus its expectations.

    `path`, `json_body` and `raw_body` may reference captured session values
    as {{key}}; such keys are implicit preconditions. `capture` maps a
    session key to candidate dotted paths in the response body.
    """
    name: str
    method: str
    path: str
    expect: ExpectedOutcome
    auth: bool = True
    headers: Dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    raw_body: Optional[str] = None
    requires: Tuple[str, ...] = ()
    capture: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def required_keys(self) -> FrozenSet[str]:
        refs = template_names(self.path) | template_names(self.json_body) | template_names(self.raw_body)
        return frozenset(self.requires) | refs


@dataclass(frozen=True)
class TestGroup:
    """Ordered steps sharing one concern; creation before update/delete."""
    __test__ = False

    name: str
    steps: List[FlowStep]
    description: str = ""
