"""Calculation Chain API client.

A thin wrapper around the HTTP API using the ``requests`` library.
It keeps the Bearer token returned by :meth:`register` or
:meth:`login` and sends it with every later request.

Every method returns a tuple ``(data, error)``: ``data`` holds the
parsed JSON on success and ``error`` is ``None``; on failure ``data``
is ``None`` and ``error`` is a dictionary with ``status_code`` and
``message`` keys.  Methods never raise for HTTP or network errors.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]


class CalcChainAPI:
    """Client for the calculation chain API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: URL the API is mounted at, e.g. ``http://localhost:8000/api``.
            token: Optional Bearer token from an earlier login.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user: Optional[Dict[str, Any]] = None

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, *, json_body: Any | None = None) -> Result:
        """Perform an HTTP request to the API and return ``(data, error)``."""
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if not response.content:
                return None, None
            try:
                return response.json(), None
            except ValueError:
                logger.error("API returned a non-JSON body from %s", url)
                return None, {"status_code": response.status_code, "message": "Invalid JSON in response"}
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                except ValueError:
                    message = exc.response.text
                else:
                    if isinstance(err_json, dict):
                        message = err_json.get("detail") or str(err_json)
                    else:
                        message = str(err_json)
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    def _authenticate(self, path: str, username: str, password: str) -> Result:
        data, error = self._request("POST", path, json_body={"username": username, "password": password})
        if error:
            return None, error
        self.token = data["token"]
        self.user = data["user"]
        return data, None

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def register(self, username: str, password: str) -> Result:
        """Create an account and remember its token."""
        return self._authenticate("/auth/register", username, password)

    def login(self, username: str, password: str) -> Result:
        """Log in and remember the token."""
        return self._authenticate("/auth/login", username, password)

    def me(self) -> Result:
        return self._request("GET", "/auth/me")

    # ------------------------------------------------------------------
    # Calculations
    # ------------------------------------------------------------------
    def list_trees(self) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Return the forest of calculation chains (roots with nested ``children``)."""
        data, error = self._request("GET", "/calculations")
        if error:
            return [], error
        return data or [], None

    def list_flat(self) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request("GET", "/calculations/flat")
        if error:
            return [], error
        return data or [], None

    def get_calculation(self, calculation_id: str) -> Result:
        return self._request("GET", f"/calculations/{calculation_id}")

    def start(self, number: float) -> Result:
        """Post a starting number.  Requires a token."""
        return self._request("POST", "/calculations/start", json_body={"number": number})

    def operate(self, parent_id: str, operation: str, operand: float) -> Result:
        """Append ``operation operand`` to ``parent_id``.  Requires a token."""
        return self._request(
            "POST",
            "/calculations/operate",
            json_body={"parentId": parent_id, "operation": operation, "operand": operand},
        )
