"""Tagged results for the remote search boundary.

The wire payload is loosely shaped; it is converted to ``Ok`` or ``Err``
as soon as it arrives so the orchestrator never re-checks it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

GENERIC_SEARCH_ERROR = "Failed to search itineraries. Please try again later."

# Failure categories whose message is shown to the user as-is.
_TECHNICAL_PATTERNS = [
    re.compile(r"time(d)?\s*out|timeout", re.IGNORECASE),
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"ECONNREFUSED|connection", re.IGNORECASE),
    re.compile(r"proxy", re.IGNORECASE),
    re.compile(r"constraint", re.IGNORECASE),
]


@dataclass(frozen=True)
class Ok:
    """A well-formed page of raw itinerary records."""

    records: list[Any]


@dataclass(frozen=True)
class Err:
    """A failed search, carrying the message to surface."""

    message: str


SearchOutcome = Union[Ok, Err]


def parse_search_response(payload: Any) -> SearchOutcome:
    """Convert a wire payload into Ok(records) or Err(message).

    Only ``{"success": True, "data": [...]}`` is accepted.
    """
    if not isinstance(payload, dict):
        return Err(f"Malformed search response: expected an object, got {type(payload).__name__}")
    if payload.get("success") is not True:
        error = payload.get("error")
        if isinstance(error, str) and error:
            return Err(error)
        if "success" not in payload:
            return Err("Malformed search response: missing 'success' field")
        return Err("Search request was not successful")
    data = payload.get("data")
    if not isinstance(data, list):
        return Err(f"Malformed search response: 'data' is {type(data).__name__}, not a list")
    return Ok(list(data))


def describe_error(message: str) -> str:
    """User-facing text for a failed search.

    Timeouts, network, connection, proxy, and constraint failures keep
    their message; everything else gets the generic retry message.
    """
    if message and any(p.search(message) for p in _TECHNICAL_PATTERNS):
        return message
    return GENERIC_SEARCH_ERROR
