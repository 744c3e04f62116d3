# cfpflow/utils.py
"""Small helpers shared by the executor, session and reporter."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Optional

_SENSITIVE_KEYS = {
    "authorization", "x-api-key", "api_key", "apikey", "token",
    "access_token", "cookie", "set-cookie", "x-auth-token", "x-access-token",
    "bearer", "session", "csrf", "jwt", "password",
}

_TEMPLATE_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


def extract_dotted(obj: Any, dotted: str) -> Any:
    """Extract value from nested object using dotted path"""
    parts = [p for p in dotted.split(".") if p]
    cur = obj

    for p in parts:
        if isinstance(cur, list):
            try:
                idx = int(p)
            except ValueError:
                return None
            if idx < 0 or idx >= len(cur):
                return None
            cur = cur[idx]
        elif isinstance(cur, dict):
            if p not in cur:
                return None
            cur = cur[p]
        else:
            return None

    return cur


def first_non_empty(obj: Any, paths: Iterable[str]) -> Optional[str]:
    """Return the first dotted path value that is a non-empty scalar, as a string."""
    for path in paths:
        val = extract_dotted(obj, path)
        if isinstance(val, bool) or val is None:
            continue
        if isinstance(val, (str, int)):
            text = str(val).strip()
            if text:
                return text
    return None


def render_template(value: Any, ctx: Dict[str, Any]) -> Any:
    """Render {{var}} placeholders; unknown names are left in place."""
    if value is None:
        return None

    if isinstance(value, str):
        def replace(match: re.Match) -> str:
            v = ctx.get(match.group(1))
            return str(v) if v is not None else match.group(0)
        return _TEMPLATE_RE.sub(replace, value)

    if isinstance(value, dict):
        return {k: render_template(v, ctx) for k, v in value.items()}

    if isinstance(value, list):
        return [render_template(v, ctx) for v in value]

    return value


def template_names(value: Any) -> set:
    """Names referenced by {{var}} placeholders anywhere in value."""
    if isinstance(value, str):
        return set(_TEMPLATE_RE.findall(value))
    if isinstance(value, dict):
        return set().union(*(template_names(v) for v in value.values())) if value else set()
    if isinstance(value, list):
        return set().union(*(template_names(v) for v in value)) if value else set()
    return set()


def redact_sensitive(data: Any) -> Any:
    """Recursively redact sensitive information"""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in _SENSITIVE_KEYS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data
