# cfpflow/session.py
"""
Session Context

Per-run state produced by one step and consumed by later ones: the auth
credential from sign-in and identifiers of created resources. One instance
per run, passed explicitly; nothing here is module-level.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from cfpflow.errors import PreconditionNotMet
from cfpflow.types import StepResult
from cfpflow.utils import first_non_empty

logger = logging.getLogger(__name__)

AUTH_HEADER = "auth_header"

_BODY_TOKEN_PATHS = ("token", "data.token", "accessToken", "access_token")


class SessionContext:
    """Key/value store for one run; the credential is write-once."""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def capture(self, key: str, value: Any) -> None:
        if key == AUTH_HEADER and key in self._values:
            raise ValueError("auth credential already captured for this run")
        self._values[key] = value
        logger.debug(f"📌 captured {key}")

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def has(self, key: str) -> bool:
        return self._values.get(key) not in (None, "")

    def missing(self, keys: Iterable[str]) -> Tuple[str, ...]:
        """Keys from `keys` that were never captured."""
        return tuple(k for k in keys if not self.has(k))

    def require(self, *keys: str) -> Dict[str, Any]:
        """Values for `keys`; raises PreconditionNotMet naming the absent ones."""
        missing = self.missing(keys)
        if missing:
            raise PreconditionNotMet(missing)
        return {k: self._values[k] for k in keys}

    def template_vars(self) -> Dict[str, Any]:
        return {k: v for k, v in self._values.items() if k != AUTH_HEADER}

    # ==================== Auth ====================

    @property
    def authenticated(self) -> bool:
        return self.has(AUTH_HEADER)

    def auth_headers(self) -> Dict[str, str]:
        """Header carrying the captured credential, verbatim."""
        cred = self.get(AUTH_HEADER)
        if not cred:
            return {}
        name, value = cred
        return {name: value}

    def capture_auth(self, result: StepResult) -> bool:
        """
        Pull the credential out of a sign-in response.

        Session cookies win; a body token is the fallback and is sent as a
        bearer header. Returns False when the response carries neither.
        """
        header = credential_from_response(result)
        if header is None:
            return False
        self.capture(AUTH_HEADER, header)
        return True

    def capture_from_body(self, key: str, result: StepResult, paths: Iterable[str]) -> Optional[str]:
        """Capture the first non-empty value found at one of `paths`."""
        value = first_non_empty(result.body, paths)
        if value is not None:
            self.capture(key, value)
        return value


def credential_from_response(result: StepResult) -> Optional[Tuple[str, str]]:
    if result.cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in result.cookies.items() if v)
        if cookie:
            return ("Cookie", cookie)

    token = first_non_empty(result.body, _BODY_TOKEN_PATHS)
    if token:
        return ("Authorization", f"Bearer {token}")

    return None
