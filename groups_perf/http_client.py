"""Thin HTTP abstraction for talking to the Groups and Members APIs.

Wraps ``requests`` with the few things every call in the perf run needs:

- Bearer token authentication
- JSON request bodies and query parameters
- Wall-clock timing of each round-trip (``APIResponse.elapsed_ms``)
- ``redact_auth()`` helper for safe logging of headers

Every request is sent exactly once; there is no retry on 429 or 5xx.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class APIResponse:
    """Normalized HTTP response wrapper.

    Attributes:
        status_code: HTTP status.
        headers:     Response headers as a plain dict.
        body:        Decoded response text.
        elapsed_ms:  Round-trip time measured around the request, in milliseconds.
    """

    def __init__(self, status_code: int, headers: Dict[str, str], body: str, elapsed_ms: float = 0.0):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self.elapsed_ms = elapsed_ms
        self._json = None

    def json(self) -> Any:
        """Parse and cache the response body as JSON."""
        if self._json is None:
            self._json = json.loads(self.body) if self.body else None
        return self._json


class APIClient:
    """HTTP client bound to one base URL.

    Args:
        base_url:       Root URL of the API (e.g. ``http://localhost:3000``)
        token:          Bearer token for authentication
        timeout:        Per-request socket timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: int = 60,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = requests.Session()

    # -- Public API ----------------------------------------------------------

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> APIResponse:
        """Send a GET request, with optional query parameters."""
        return self._request("GET", path, params=params)

    def post(self, path: str, payload: Dict[str, Any]) -> APIResponse:
        """Send a POST request with a JSON payload."""
        return self._request("POST", path, payload)

    def patch(self, path: str, payload: Dict[str, Any]) -> APIResponse:
        """Send a PATCH request with a JSON payload."""
        return self._request("PATCH", path, payload)

    def delete(self, path: str) -> APIResponse:
        """Send a DELETE request."""
        return self._request("DELETE", path)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "APIClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -- Internals -----------------------------------------------------------

    def _build_headers(self, with_body: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if with_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> APIResponse:
        """Execute one HTTP request and time it.

        Transport failures (connection refused, socket timeout) propagate as
        ``requests.RequestException``.
        """
        url = f"{self.base_url}{path}"
        headers = self._build_headers(payload is not None)

        kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": self.timeout,
        }
        if params:
            kwargs["params"] = params
        if payload is not None:
            kwargs["json"] = payload

        logger.debug("%s %s headers=%s", method, url, redact_auth(headers))
        started = time.perf_counter()
        resp = self._session.request(method, url, **kwargs)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug("%s %s -> %s in %.0f ms", method, url, resp.status_code, elapsed_ms)

        return APIResponse(resp.status_code, dict(resp.headers), resp.text, elapsed_ms)


def redact_auth(headers: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of headers with Authorization values replaced by ``***REDACTED***``.

    Use this when including headers in logs or error messages to avoid
    leaking bearer tokens.
    """
    redacted = dict(headers)
    for key in list(redacted.keys()):
        if key.lower() == "authorization":
            redacted[key] = "***REDACTED***"
    return redacted
