"""
Remote Backend Gateway: hosted relational store over its REST API.

All outbound HTTP calls to the live backend go through this class.
Direct `requests` calls in services or blueprints are FORBIDDEN.

The backend exposes one PostgREST-style resource per table under
``<base_url>/rest/v1/<table>`` (Supabase REST API):

    select-all ordered   GET    ?select=*&order=<column>.desc
    insert returning     POST   Prefer: return=representation
    update by id         PATCH  ?id=eq.<id>   Prefer: return=representation
    delete by id         DELETE ?id=eq.<id>

Failure policy:
  - No retry and no circuit breaker: a failed call is reported once and the
    caller decides what to do (the store falls back to mock data on load
    failures and leaves its collections untouched on mutation failures).
  - Timeout: ``timeout`` seconds when configured, else the transport default.

Testability: pass a mock `session` to RestGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

logger = logging.getLogger(__name__)

_REST_PATH = "/rest/v1"


class GatewayResult:
    """Structured return value from RestGateway calls.

    Attributes:
        ok:             True if the call succeeded (HTTP 2xx + no exception).
        status_code:    HTTP status code (None if network-level failure).
        data:           Parsed JSON response body (list of rows), else None.
        error:          Human-readable error message or None.
        duration_ms:    Round-trip latency in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    @property
    def rows(self) -> list:
        """Response body as a list of rows (single objects are wrapped)."""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]

    def __repr__(self):
        return f"<GatewayResult ok={self.ok} status={self.status_code} error={self.error!r}>"


class RestGateway:
    """REST gateway for the live CRM backend.

    Usage:
        gateway = RestGateway(base_url, api_key)
        result = gateway.select_all("deals", order_by="closeDate")
        if result.ok:
            rows = result.rows

    A gateway built without a URL or key is "not configured": every call
    returns an error result without touching the network, which keeps the
    store in mock-only mode.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Core request dispatcher ───────────────────────────────────────────────

    def _headers(self, *, returning: bool = False) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if returning:
            headers["Prefer"] = "return=representation"
        return headers

    def _url(self, table: str) -> str:
        return f"{self.base_url}{_REST_PATH}/{table}"

    def request(
        self,
        method: str,
        table: str,
        *,
        params: dict | None = None,
        json_body: Any = None,
        returning: bool = False,
    ) -> GatewayResult:
        """Execute one request against a table resource.

        Returns:
            GatewayResult. Always returns (never raises). Callers check .ok.
        """
        if not self.configured:
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error="Remote backend is not configured", duration_ms=0,
            )

        url = self._url(table)
        kwargs: dict[str, Any] = {"headers": self._headers(returning=returning)}
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout:
            logger.warning("Backend request timed out method=%s table=%s", method, table)
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=f"Request timed out after {self.timeout}s",
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )
        except requests.RequestException as exc:
            logger.warning(
                "Backend network error method=%s table=%s error=%s", method, table, exc,
            )
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=str(exc)[:500],
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )

        duration_ms = int((time.perf_counter() - t0) * 1000)
        if not resp.ok:
            logger.warning(
                "Backend request failed method=%s table=%s status=%d",
                method, table, resp.status_code,
            )
            return GatewayResult(
                ok=False, status_code=resp.status_code, data=None,
                error=f"HTTP {resp.status_code}: {resp.text[:500]}",
                duration_ms=duration_ms,
            )

        try:
            data = resp.json() if resp.content else []
        except ValueError:
            return GatewayResult(
                ok=False, status_code=resp.status_code, data=None,
                error="Backend returned a non-JSON body", duration_ms=duration_ms,
            )
        return GatewayResult(
            ok=True, status_code=resp.status_code, data=data,
            error=None, duration_ms=duration_ms,
        )

    # ── Table operations ──────────────────────────────────────────────────────

    def select_all(self, table: str, *, order_by: str, descending: bool = True) -> GatewayResult:
        """GET every row of *table* ordered by one column."""
        direction = "desc" if descending else "asc"
        return self.request(
            "GET", table,
            params={"select": "*", "order": f"{order_by}.{direction}"},
        )

    def insert(self, table: str, row: dict) -> GatewayResult:
        """POST one row; the backend returns the stored row (id, defaults)."""
        return self.request("POST", table, json_body=[row], returning=True)

    def update(self, table: str, row_id: str, row: dict) -> GatewayResult:
        """PATCH the row with ``id = row_id``; returns the post-write row."""
        return self.request(
            "PATCH", table,
            params={"id": f"eq.{row_id}"},
            json_body=row,
            returning=True,
        )

    def delete(self, table: str, row_id: str) -> GatewayResult:
        return self.request("DELETE", table, params={"id": f"eq.{row_id}"})
