"""HTTP client for the remote ``searchItineraries`` callable.

The endpoint speaks the callable-function protocol: the request body is
``{"data": <payload>}`` and a successful response is ``{"result": <payload>}``.
Errors come back as ``{"error": {"message": ..., "status": ...}}`` with a
non-2xx status code.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import requests

from tripmatch.config import Settings, load_settings
from tripmatch.search.models import SearchRequest

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SEARCH_FUNCTION = "searchItineraries"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RpcError(Exception):
    """Base exception for remote search failures."""


class RpcTimeoutError(RpcError):
    """The remote call did not answer in time."""


class RpcConnectionError(RpcError):
    """The remote endpoint could not be reached."""


class RpcResponseError(RpcError):
    """The endpoint answered with an HTTP or callable-level error."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class SearchClient(Protocol):
    """Anything that can run one remote search and return its raw payload."""

    def search(self, request: SearchRequest) -> Any: ...


class ItineraryRpcClient:
    """Calls ``searchItineraries`` over HTTPS using ``requests``."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ItineraryRpcClient":
        settings = settings or load_settings()
        return cls(settings.rpc_url, settings.rpc_token, settings.rpc_timeout)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def call(self, function: str, payload: dict[str, Any]) -> Any:
        """Invoke a callable function and return its ``result`` payload."""
        url = f"{self.base_url}/{function}"
        try:
            resp = self._session.post(
                url, json={"data": payload}, headers=self._headers(), timeout=self.timeout
            )
        except requests.Timeout as exc:
            logger.warning("%s timed out after %.0fs", function, self.timeout)
            raise RpcTimeoutError(f"Request timeout calling {function}") from exc
        except requests.ConnectionError as exc:
            logger.warning("%s connection error: %s", function, exc)
            raise RpcConnectionError(f"Connection refused calling {function}: {exc}") from exc
        except requests.RequestException as exc:
            logger.warning("%s network error: %s", function, exc)
            raise RpcConnectionError(f"Network error calling {function}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            message = f"HTTP {resp.status_code} from {function}"
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                message = body["error"].get("message") or message
            raise RpcResponseError(message, status_code=resp.status_code)

        if not isinstance(body, dict) or "result" not in body:
            raise RpcResponseError(f"{function} returned a body without 'result'")
        return body["result"]

    def search(self, request: SearchRequest) -> Any:
        logger.debug(
            "Searching %s (page size %d, %d excluded, %d blocked)",
            request.destination,
            request.page_size,
            len(request.excluded_ids),
            len(request.blocked_user_ids),
        )
        return self.call(SEARCH_FUNCTION, request.to_wire())
