# cfpflow/executor.py
"""
Request Executor

Issues one HTTP exchange against the configured base URL and folds the
outcome into a StepResult:

- JSON bodies and raw string bodies (for intentionally malformed payloads)
- Transport failures (connect, timeout) surfaced as StepResult.transport_error,
  never as a failed expectation
- Explicit, bounded retry for transport errors of idempotent GETs
- Cookie jar cleared after each exchange: the only credential ever sent is
  the one the caller passes in headers
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from cfpflow.config import FlowSettings
from cfpflow.types import StepResult
from cfpflow.utils import redact_sensitive

logger = logging.getLogger(__name__)

_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}
_MAX_RETRIES = 1


class RequestExecutor:
    """Thin blocking wrapper around httpx.Client for one flow run."""

    def __init__(
        self,
        settings: Optional[FlowSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings or FlowSettings()
        self.base_url = self.settings.base_url
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.settings.timeout_sec),
            verify=self.settings.verify_ssl,
            follow_redirects=False,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def execute(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        raw_body: Optional[str] = None,
        retries: int = 0,
    ) -> StepResult:
        """
        Perform a single request.

        Args:
            method: HTTP verb
            path: path relative to the base URL
            headers: extra headers, including any session credential
            json_body: structured body, serialized as JSON
            raw_body: literal body sent verbatim; wins over json_body
            retries: extra attempts on transport errors, GET only, at most 1

        Returns:
            StepResult with either a response or transport_error set
        """
        method = method.upper()
        if method not in _METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        if method != "GET":
            retries = 0
        retries = max(0, min(int(retries), _MAX_RETRIES))

        request_kwargs: Dict[str, Any] = {"headers": headers or None}
        if raw_body is not None:
            request_kwargs["content"] = raw_body.encode("utf-8")
        elif json_body is not None:
            request_kwargs["json"] = json_body

        logger.debug(
            f"→ {method} {path} headers={redact_sensitive(dict(headers or {}))}"
        )

        last_exc: Optional[Exception] = None
        attempts = 0

        for attempt in range(retries + 1):
            attempts = attempt + 1
            t0 = time.perf_counter()
            try:
                resp = self._client.request(method, path, **request_kwargs)
            except httpx.TransportError as e:
                elapsed_ms = int((time.perf_counter() - t0) * 1000)
                last_exc = e
                if attempt < retries:
                    logger.warning(f"🔁 {method} {path}: {type(e).__name__}, retrying once")
                    continue
                logger.error(f"🔌 {method} {path}: {type(e).__name__} after {elapsed_ms}ms")
                return StepResult(
                    method=method,
                    path=path,
                    elapsed_ms=elapsed_ms,
                    transport_error=f"{type(e).__name__}: {e}",
                    attempts=attempts,
                )
            finally:
                self._client.cookies.clear()

            elapsed_ms = int((time.perf_counter() - t0) * 1000)
            return self._to_result(method, path, resp, elapsed_ms, attempts)

        # Unreachable: the loop either returns a response or a transport error
        raise RuntimeError(f"request loop exited without result: {last_exc!r}")

    @staticmethod
    def _to_result(
        method: str,
        path: str,
        resp: httpx.Response,
        elapsed_ms: int,
        attempts: int,
    ) -> StepResult:
        try:
            body = resp.json()
        except ValueError:
            body = None

        logger.debug(f"← {method} {path} → {resp.status_code} ({elapsed_ms}ms)")

        return StepResult(
            method=method,
            path=path,
            status_code=resp.status_code,
            headers=dict(resp.headers),
            cookies={c.name: c.value for c in resp.cookies.jar},
            body=body,
            text=resp.text,
            elapsed_ms=elapsed_ms,
            attempts=attempts,
        )
