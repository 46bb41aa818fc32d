"""
Report persistence gateway.

All outbound HTTP calls from the client to the report API go through this
class. Direct ``requests`` calls in services are not allowed.

  - GET  {base}/reports            full snapshot, newest period first
  - POST {base}/reports            upsert one report (entries replaced)
  - GET  {base}/reports?test=true  health probe, returns server time

No retry loop here: a failed push is retried by the sync client on the next
local change, never in place. Timeouts are whatever the transport enforces
(``timeout`` seconds per call).

Testability: pass a stub ``session`` (anything with ``request(method, url,
**kwargs)``) instead of letting the gateway create a requests.Session.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10


class GatewayResult:
    """Structured return value from ReportGateway calls.

    Attributes:
        ok:           True if the call succeeded (HTTP 2xx + no exception).
        status_code:  HTTP status code (None if network-level failure).
        data:         Parsed JSON response body (dict or list), else None.
        error:        Human-readable error message or None.
        duration_ms:  Round-trip latency in milliseconds.
        payload_hash: SHA-256 of the serialised request payload (hex).
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
        payload_hash: str | None = None,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms
        self.payload_hash = payload_hash

    @property
    def is_stale(self) -> bool:
        """Server refused the push because it already holds a newer revision."""
        return self.status_code == 409 and isinstance(self.data, dict) \
            and self.data.get("code") == "ERR_CONFLICT_STATE"

    def __repr__(self) -> str:
        return f"<GatewayResult ok={self.ok} status={self.status_code} error={self.error!r}>"


class ReportGateway:
    """HTTP client for the report persistence API.

    Usage:
        gateway = ReportGateway("http://localhost:5000/api/v1")
        result = gateway.fetch_reports()
        if result.ok:
            reports = result.data
    """

    def __init__(
        self,
        base_url: str,
        session: Any | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    @property
    def session(self):
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @property
    def reports_url(self) -> str:
        return f"{self.base_url}/reports"

    # ── Operations ───────────────────────────────────────────────────────────

    def fetch_reports(self) -> GatewayResult:
        """Pull the full report snapshot. ``data`` is a list on success."""
        result = self._request("GET", self.reports_url)
        if result.ok and not isinstance(result.data, list):
            return GatewayResult(
                ok=False,
                status_code=result.status_code,
                data=None,
                error="Snapshot response is not a list",
                duration_ms=result.duration_ms,
            )
        return result

    def push_report(self, payload: dict) -> GatewayResult:
        """Upsert one serialised report (entries embedded)."""
        return self._request("POST", self.reports_url, json_body=payload)

    def probe(self) -> GatewayResult:
        """Health probe; ``data["time"]`` is the server timestamp on success."""
        return self._request("GET", self.reports_url, params={"test": "true"})

    # ── Core request dispatcher ──────────────────────────────────────────────

    @staticmethod
    def _compute_payload_hash(payload: dict | list | None) -> str | None:
        if payload is None:
            return None
        raw = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(raw).hexdigest()

    def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: dict | list | None = None,
        params: dict | None = None,
    ) -> GatewayResult:
        """Execute one request. Always returns a GatewayResult, never raises."""
        payload_hash = self._compute_payload_hash(json_body)
        kwargs: dict[str, Any] = {
            "headers": {"Accept": "application/json"},
            "timeout": self.timeout,
        }
        if json_body is not None:
            kwargs["json"] = json_body
        if params:
            kwargs["params"] = params

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout:
            logger.warning("Report API timed out after %ss: %s %s", self.timeout, method, url)
            return GatewayResult(
                ok=False,
                status_code=None,
                data=None,
                error=f"Request timed out after {self.timeout}s",
                duration_ms=int(self.timeout * 1000),
                payload_hash=payload_hash,
            )
        except requests.RequestException as exc:
            logger.warning("Report API unreachable: %s %s error=%s", method, url, exc)
            return GatewayResult(
                ok=False,
                status_code=None,
                data=None,
                error=str(exc)[:500],
                duration_ms=int((time.perf_counter() - t0) * 1000),
                payload_hash=payload_hash,
            )

        duration_ms = int((time.perf_counter() - t0) * 1000)
        try:
            data = resp.json() if resp.content else None
        except ValueError:
            data = None

        if resp.ok:
            return GatewayResult(
                ok=True,
                status_code=resp.status_code,
                data=data,
                error=None,
                duration_ms=duration_ms,
                payload_hash=payload_hash,
            )

        message = data.get("error") if isinstance(data, dict) else None
        error = message or f"HTTP {resp.status_code}: {resp.text[:500]}"
        logger.warning(
            "Report API request failed status=%d %s %s (%dms)",
            resp.status_code, method, url, duration_ms,
        )
        return GatewayResult(
            ok=False,
            status_code=resp.status_code,
            data=data,
            error=error,
            duration_ms=duration_ms,
            payload_hash=payload_hash,
        )
