"""Two-tier search result cache with TTL expiry.

Entries live in an in-memory dict (authoritative for this process) and in a
JSON slot on disk so a fresh process can reuse recent searches. Each entry
records ``data``, ``timestamp`` and ``expiresAt``. The memory tier holds at
most ``max_entries`` keys; inserting a new key into a full cache evicts the
oldest-inserted key from both tiers.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from tripmatch.storage import JsonSlot

logger = logging.getLogger(__name__)

_DEFAULT_CACHE_PATH = Path.home() / ".tripmatch" / "search_cache.json"
_DEFAULT_TTL_SECONDS = 5 * 60
_DEFAULT_MAX_ENTRIES = 50
_DEFAULT_CLEANUP_INTERVAL = 10 * 60


def generate_key(params: Any) -> str:
    """Canonical cache key for a set of search parameters.

    ``{"destination": ..., "userProfile": {...}}`` becomes
    ``search_<destination>_<gender>_<status>_<orientation>`` with commas and
    whitespace in the destination replaced by underscores. Strings are used
    as-is; anything else is serialized to JSON with sorted keys.
    """
    if isinstance(params, str):
        return params
    if isinstance(params, dict):
        destination = params.get("destination")
        profile = params.get("userProfile")
        if destination and isinstance(profile, dict):
            clean = "".join("_" if (ch == "," or ch.isspace()) else ch for ch in str(destination))
            return (
                f"search_{clean}_{profile.get('gender')}_{profile.get('status')}"
                f"_{profile.get('sexualOrientation')}"
            )
    return json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)


@dataclass
class CacheEntry:
    """One cached result set."""

    data: Any
    timestamp: float
    expires_at: float
    metadata: Optional[dict] = field(default=None)

    def expired(self, now: float) -> bool:
        return self.expires_at <= now

    def to_json(self) -> dict:
        out = {"data": self.data, "timestamp": self.timestamp, "expiresAt": self.expires_at}
        if self.metadata is not None:
            out["metadata"] = self.metadata
        return out

    @classmethod
    def from_json(cls, raw: Any) -> Optional["CacheEntry"]:
        if not isinstance(raw, dict):
            return None
        try:
            return cls(
                data=raw.get("data"),
                timestamp=float(raw.get("timestamp", 0)),
                expires_at=float(raw["expiresAt"]),
                metadata=raw.get("metadata") if isinstance(raw.get("metadata"), dict) else None,
            )
        except (KeyError, TypeError, ValueError):
            return None


class ResultCache:
    """TTL cache for search results, memory first and disk second.

    Disk failures never reach the caller: reads treat a bad slot as empty
    and writes are logged and dropped.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        ttl_seconds: float = _DEFAULT_TTL_SECONDS,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._slot = JsonSlot(path or _DEFAULT_CACHE_PATH)
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()
        self._cleanup_thread: Optional[threading.Thread] = None
        self._cleanup_stop = threading.Event()

    # -- persisted tier -----------------------------------------------------

    def _read_persisted(self) -> dict:
        raw = self._slot.read(default={})
        return raw if isinstance(raw, dict) else {}

    def _write_persisted(self, persisted: dict) -> None:
        try:
            self._slot.write(persisted)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not persist search cache: %s", exc)

    # -- public API ---------------------------------------------------------

    def set(self, key: str, data: Any) -> None:
        """Store ``data`` under ``key`` for ``ttl_seconds``."""
        self.set_with_metadata(key, data, None)

    def set_with_metadata(self, key: str, data: Any, metadata: Optional[dict]) -> None:
        """Store ``data`` along with paging metadata (has_more, page_size, ...)."""
        with self._lock:
            persisted = self._read_persisted()

            if key not in self._memory and len(self._memory) >= self.max_entries:
                oldest = next(iter(self._memory))
                del self._memory[oldest]
                persisted.pop(oldest, None)
                logger.debug("Evicted oldest cache entry %s", oldest)

            now = self._clock()
            entry = CacheEntry(data=data, timestamp=now, expires_at=now + self.ttl_seconds)
            if metadata is not None:
                entry.metadata = {
                    "has_more": bool(metadata.get("has_more", False)),
                    "last_doc_id": metadata.get("last_doc_id"),
                    "page_size": metadata.get("page_size"),
                    "total_results": metadata.get("total_results"),
                    "timestamp": now,
                }
            self._memory[key] = entry
            persisted[key] = entry.to_json()
            self._write_persisted(persisted)

    def preload(self, key: str, data: Any) -> None:
        """Seed the cache with fresh data."""
        self.set(key, data)

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        now = self._clock()
        entry = self._memory.get(key)
        if entry is not None:
            if not entry.expired(now):
                return entry
            del self._memory[key]

        persisted_entry = CacheEntry.from_json(self._read_persisted().get(key))
        if persisted_entry is not None and not persisted_entry.expired(now):
            if len(self._memory) < self.max_entries:
                self._memory[key] = persisted_entry
            return persisted_entry
        return None

    def get(self, key: str) -> Optional[Any]:
        """Return cached data, or None when missing or expired."""
        with self._lock:
            entry = self._lookup(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.data

    def get_metadata(self, key: str) -> Optional[dict]:
        """Metadata stored alongside ``key``. Does not affect hit/miss counts."""
        with self._lock:
            entry = self._lookup(key)
            return entry.metadata if entry is not None else None

    def has(self, key: str) -> bool:
        with self._lock:
            if key in self._memory:
                return True
            entry = CacheEntry.from_json(self._read_persisted().get(key))
            return entry is not None and not entry.expired(self._clock())

    def delete(self, key: str) -> None:
        with self._lock:
            self._memory.pop(key, None)
            persisted = self._read_persisted()
            if key in persisted:
                del persisted[key]
                self._write_persisted(persisted)

    def cleanup(self) -> int:
        """Drop expired entries from both tiers. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            removed = 0
            for key in [k for k, e in self._memory.items() if e.expired(now)]:
                del self._memory[key]
                removed += 1

            persisted = self._read_persisted()
            stale = []
            for key, raw in persisted.items():
                entry = CacheEntry.from_json(raw)
                if entry is None or entry.expired(now):
                    stale.append(key)
            for key in stale:
                del persisted[key]
            if stale:
                self._write_persisted(persisted)
            if removed or stale:
                logger.debug("Cache cleanup removed %d memory, %d persisted", removed, len(stale))
            return removed + len(stale)

    def clear(self) -> None:
        """Empty both tiers and reset hit/miss counters."""
        with self._lock:
            self._memory.clear()
            self._hits = 0
            self._misses = 0
            try:
                self._slot.remove()
            except OSError as exc:
                logger.warning("Could not clear persisted search cache: %s", exc)

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            now = self._clock()
            persisted_live = 0
            for raw in self._read_persisted().values():
                entry = CacheEntry.from_json(raw)
                if entry is not None and not entry.expired(now):
                    persisted_live += 1
            return {
                "memorySize": len(self._memory),
                "localStorageSize": persisted_live,
                "totalKeys": max(len(self._memory), persisted_live),
                "hits": self._hits,
                "misses": self._misses,
            }

    # -- background cleanup -------------------------------------------------

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_thread is not None and self._cleanup_thread.is_alive()

    def start_cleanup(self, interval_seconds: float = _DEFAULT_CLEANUP_INTERVAL) -> None:
        """Run ``cleanup`` every ``interval_seconds`` on a daemon thread.

        Calling it again restarts the timer with the new interval.
        """
        self.stop_cleanup()
        self._cleanup_stop = threading.Event()
        stop = self._cleanup_stop

        def _loop() -> None:
            while not stop.wait(interval_seconds):
                try:
                    self.cleanup()
                except Exception as exc:
                    logger.warning("Scheduled cache cleanup failed: %s", exc)

        self._cleanup_thread = threading.Thread(
            target=_loop, name="tripmatch-cache-cleanup", daemon=True
        )
        self._cleanup_thread.start()

    def stop_cleanup(self) -> None:
        """Stop the background cleanup thread, if running."""
        self._cleanup_stop.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout=5)
            self._cleanup_thread = None
