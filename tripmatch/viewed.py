"""Persisted set of itinerary ids the current user has already been shown."""

import logging
from pathlib import Path
from typing import Iterator, Optional

from tripmatch.storage import JsonSlot

logger = logging.getLogger(__name__)

_DEFAULT_VIEWED_PATH = Path.home() / ".tripmatch" / "viewed_itineraries.json"


def normalize_viewed(raw: object) -> list[str]:
    """Turn a persisted blob into an ordered, de-duplicated list of ids.

    Accepts plain id strings and legacy ``{"id": ...}`` objects. Anything
    else (including a blob that is not a list) is discarded.
    """
    if not isinstance(raw, list):
        return []
    ids: list[str] = []
    seen: set[str] = set()
    for item in raw:
        if isinstance(item, dict):
            item = item.get("id")
        if not isinstance(item, str) or not item.strip():
            continue
        if item not in seen:
            seen.add(item)
            ids.append(item)
    return ids


class ViewedSet:
    """Itinerary ids already consumed by the user, persisted across sessions.

    The set only grows during normal use. Every ``add`` re-reads the slot,
    appends, and writes it back in one synchronous step, so other writers
    sharing the file are not clobbered. Storage failures are logged and
    the in-memory copy keeps working.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._slot = JsonSlot(path or _DEFAULT_VIEWED_PATH)
        self._ids: list[str] = normalize_viewed(self._slot.read(default=[]))

    @property
    def path(self) -> Path:
        return self._slot.path

    def reload(self) -> None:
        """Merge ids written by other processes into memory."""
        for item in normalize_viewed(self._slot.read(default=[])):
            if item not in self._ids:
                self._ids.append(item)

    def ids(self) -> list[str]:
        return list(self._ids)

    def add(self, itinerary_id: str) -> None:
        if not isinstance(itinerary_id, str) or not itinerary_id:
            return
        self.reload()
        if itinerary_id not in self._ids:
            self._ids.append(itinerary_id)
        try:
            self._slot.write(self._ids)
        except OSError as exc:
            logger.warning("Could not persist viewed itineraries: %s", exc)

    def clear(self) -> None:
        """Forget every viewed id. Administrative reset only."""
        self._ids = []
        try:
            self._slot.remove()
        except OSError as exc:
            logger.warning("Could not remove viewed itineraries: %s", exc)

    def __contains__(self, itinerary_id: object) -> bool:
        return itinerary_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)
