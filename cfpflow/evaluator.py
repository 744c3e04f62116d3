# cfpflow/evaluator.py
"""
Expectation Evaluator

Compares a StepResult with an ExpectedOutcome:

✅ Exact status code
✅ Partial JSON match (subset semantics, recursive, with path diffs)
✅ JSON schema validation (jsonschema)
✅ Header value substring (header name case-insensitive, value untouched)
✅ Raw body substring
✅ Response-time ceiling, reported apart from correctness failures
✅ Known-defect whitelist that fails loudly once the defect disappears
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import jsonschema

from cfpflow.types import (
    ExpectedOutcome,
    Mismatch,
    MismatchKind,
    StepResult,
    StepStatus,
    Verdict,
)

logger = logging.getLogger(__name__)


def subset_diff(expected: Any, actual: Any, path: str = "") -> List[str]:
    """
    Differences between `expected` and `actual` under subset semantics.

    Dict keys missing from `expected` are ignored; lists must have equal
    length and each element is compared with the same rules.
    """
    label = path or "body"
    diffs: List[str] = []

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            return [f"{label}: type mismatch (expected object, got {type(actual).__name__})"]
        for key, exp_val in expected.items():
            new_path = f"{path}.{key}" if path else str(key)
            if key not in actual:
                diffs.append(f"{new_path}: missing key in actual")
            else:
                diffs.extend(subset_diff(exp_val, actual[key], new_path))
        return diffs

    if isinstance(expected, list):
        if not isinstance(actual, list):
            return [f"{label}: type mismatch (expected array, got {type(actual).__name__})"]
        if len(expected) != len(actual):
            return [f"{label}: length mismatch (expected {len(expected)}, got {len(actual)})"]
        for i, (exp_item, act_item) in enumerate(zip(expected, actual)):
            diffs.extend(subset_diff(exp_item, act_item, f"{label}[{i}]"))
        return diffs

    # bool is an int subclass; True must not match 1
    if isinstance(expected, bool) != isinstance(actual, bool) or expected != actual:
        diffs.append(f"{label}: {expected!r} != {actual!r}")

    return diffs


def _header(headers: Dict[str, str], name: str) -> Optional[str]:
    wanted = name.lower()
    for k, v in headers.items():
        if k.lower() == wanted:
            return v
    return None


class ExpectationEvaluator:
    """Stateless apart from the default response-time ceiling."""

    def __init__(self, default_max_response_time_ms: Optional[int] = None):
        self.default_max_response_time_ms = default_max_response_time_ms

    def evaluate(self, expected: ExpectedOutcome, actual: StepResult) -> Verdict:
        if not actual.reached:
            return Verdict(
                StepStatus.ERROR,
                [Mismatch(MismatchKind.TRANSPORT, actual.transport_error or "no response")],
            )

        mismatches: List[Mismatch] = []

        # Status code
        if expected.status is not None and actual.status_code != int(expected.status):
            mismatches.append(Mismatch(
                MismatchKind.STATUS, f"status {actual.status_code} != {expected.status}"
            ))

        # JSON
        if expected.json_subset or expected.json_schema:
            if actual.body is None:
                mismatches.append(Mismatch(MismatchKind.JSON, "response is not valid JSON"))
            else:
                if expected.json_subset:
                    for d in subset_diff(expected.json_subset, actual.body):
                        mismatches.append(Mismatch(MismatchKind.JSON, d))
                if expected.json_schema:
                    error = self._schema_error(actual.body, expected.json_schema)
                    if error:
                        mismatches.append(Mismatch(MismatchKind.SCHEMA, error))

        # Headers
        for name, needle in expected.header_contains.items():
            val = _header(actual.headers, name)
            if val is None or str(needle) not in val:
                mismatches.append(Mismatch(
                    MismatchKind.HEADER,
                    f"header {name} missing substring {needle!r} (got {val!r})",
                ))

        # Body text
        for needle in expected.body_contains:
            if needle not in actual.text:
                mismatches.append(Mismatch(MismatchKind.BODY, f"body missing substring {needle!r}"))

        # Response time
        ceiling = expected.max_response_time_ms or self.default_max_response_time_ms
        if ceiling is not None and actual.elapsed_ms is not None and actual.elapsed_ms > int(ceiling):
            mismatches.append(Mismatch(
                MismatchKind.LATENCY, f"slow response: {actual.elapsed_ms}ms > {ceiling}ms"
            ))

        return Verdict(self._classify(expected, mismatches), mismatches)

    @staticmethod
    def _classify(expected: ExpectedOutcome, mismatches: List[Mismatch]) -> StepStatus:
        correctness = [m for m in mismatches if m.kind != MismatchKind.LATENCY]

        if expected.known_defect:
            if correctness:
                mismatches.append(Mismatch(
                    MismatchKind.KNOWN_DEFECT_CHANGED,
                    f"known defect {expected.known_defect!r} no longer reproduces as documented; "
                    "the upstream service changed and this whitelist entry needs review",
                ))
                return StepStatus.FAIL
            return StepStatus.SLOW if mismatches else StepStatus.KNOWN_DEFECT

        if correctness:
            return StepStatus.FAIL
        if mismatches:
            return StepStatus.SLOW
        return StepStatus.PASS

    @staticmethod
    def _schema_error(data: Any, schema: Dict[str, Any]) -> Optional[str]:
        try:
            jsonschema.validate(instance=data, schema=schema)
        except jsonschema.ValidationError as e:
            return f"schema validation failed: {e.message}"
        except jsonschema.SchemaError as e:
            return f"invalid schema: {e.message}"
        return None
