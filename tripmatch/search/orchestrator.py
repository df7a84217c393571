"""Search orchestrator: one remote page per search, consumed one candidate at a time.

Runs on a single asyncio event loop. The remote call is the only await in a
search; ``next`` is purely local. Each search is stamped with a generation
number and a response that arrives after a newer search started is thrown
away, so the cursor always belongs to the latest search. ``next`` called
while a search is in flight does nothing.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from typing import Any, Callable, Optional

from tripmatch.cache import ResultCache, generate_key
from tripmatch.config import Settings, load_settings
from tripmatch.models import Itinerary
from tripmatch.search.filters import FilterOptions, dedupe_by_destination, filter_candidates
from tripmatch.search.models import SearchRequest, SearchState
from tripmatch.search.response import Err, Ok, SearchOutcome, describe_error, parse_search_response
from tripmatch.search.rpc import ItineraryRpcClient, SearchClient
from tripmatch.viewed import ViewedSet

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

Listener = Callable[[SearchState], None]


class SearchOrchestrator:
    """Owns the cursor over one batch of filtered candidates."""

    def __init__(
        self,
        client: SearchClient,
        viewed: Optional[ViewedSet] = None,
        cache: Optional[ResultCache] = None,
        page_size: int = PAGE_SIZE,
        options: FilterOptions = FilterOptions(),
        today: Optional[datetime.date] = None,
    ) -> None:
        self.client = client
        self.viewed = viewed if viewed is not None else ViewedSet()
        self.cache = cache
        self.page_size = page_size
        self.options = options
        self.today = today

        self.loading = False
        self.error: Optional[str] = None
        self.has_more = True

        self._candidates: list[Itinerary] = []
        self._index = 0
        self._generation = 0
        # Cache key of the page behind the current batch, dropped once it is used up.
        self._batch_key: Optional[str] = None
        self._listeners: list[Listener] = []

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, use_cache: bool = True
    ) -> "SearchOrchestrator":
        settings = settings or load_settings()
        return cls(
            client=ItineraryRpcClient.from_settings(settings),
            viewed=ViewedSet(settings.viewed_path),
            cache=ResultCache(settings.cache_path) if use_cache else None,
            page_size=settings.page_size,
            options=FilterOptions(bidirectional_age=settings.bidirectional_age),
        )

    # -- observable state ---------------------------------------------------

    @property
    def matching_itineraries(self) -> list[Itinerary]:
        """Candidates from the cursor onward; empty once the batch is used up."""
        if self._index >= len(self._candidates):
            return []
        return self._candidates[self._index:]

    @property
    def current(self) -> Optional[Itinerary]:
        remaining = self.matching_itineraries
        return remaining[0] if remaining else None

    @property
    def state(self) -> SearchState:
        return SearchState(
            loading=self.loading,
            error=self.error,
            has_more=self.has_more,
            matching_itineraries=self.matching_itineraries,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh SearchState after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.warning("State listener failed: %s", exc)

    # -- operations ---------------------------------------------------------

    async def search(
        self, current_itinerary: Itinerary, current_user_id: str, use_cache: bool = True
    ) -> None:
        """Fetch one page of candidates and point the cursor at the first one."""
        self._generation += 1
        generation = self._generation
        self._candidates = []
        self._index = 0
        self._batch_key = None
        self.loading = True
        self.error = None
        self._notify()

        try:
            self.viewed.reload()
            request = SearchRequest.build(
                current_itinerary, current_user_id, self.page_size, self.viewed.ids()
            )
            key = self._cache_key(request)
            outcome, cached_has_more = await self._fetch(request, key, use_cache)
            if generation != self._generation:
                logger.debug("Discarding results of superseded search %d", generation)
                return

            if isinstance(outcome, Err):
                self._fail(outcome.message)
                return

            raw = outcome.records
            if cached_has_more is not None:
                self.has_more = cached_has_more
            else:
                self.has_more = len(raw) == self.page_size

            survivors = filter_candidates(
                raw,
                current_itinerary,
                current_user_id,
                viewed_ids=self.viewed.ids(),
                options=self.options,
                today=self.today,
            )
            candidates = dedupe_by_destination(survivors)
            if cached_has_more is not None and not candidates and self._has_viewed(raw):
                # Everything on the cached page was viewed since it was stored.
                logger.debug("Cached page %s fully viewed, asking the server", key)
                self.cache.delete(key)
                await self.search(current_itinerary, current_user_id, use_cache=False)
                return

            self._candidates = candidates
            self._index = 0
            self._batch_key = key if self.cache is not None else None
            logger.info(
                "Search for %s: %d raw, %d matching, has_more=%s",
                request.destination,
                len(raw),
                len(self._candidates),
                self.has_more,
            )
        except Exception as exc:
            if generation == self._generation:
                logger.warning("Search failed: %s", exc)
                self._fail(str(exc))
        finally:
            if generation == self._generation:
                self.loading = False
                self._notify()

    search_itineraries = search

    async def force_refresh_search(self, current_itinerary: Itinerary, current_user_id: str) -> None:
        """Search again, skipping any cached page."""
        await self.search(current_itinerary, current_user_id, use_cache=False)

    def next(self) -> Optional[Itinerary]:
        """Mark the current candidate viewed and advance to the next one.

        Returns the new current candidate, or None when the batch is used up.
        Never fetches another page; callers run ``force_refresh_search``.
        """
        if self.loading:
            logger.warning("Ignoring next() while a search is in flight")
            return None

        if self._index < len(self._candidates):
            self.viewed.add(self._candidates[self._index].id)
        self._index += 1
        if self._index >= len(self._candidates):
            self.has_more = False
            self._drop_consumed_page()
        self._notify()
        return self.current

    get_next_itinerary = next
    load_next_itinerary = next

    # -- internals ----------------------------------------------------------

    def _fail(self, message: str) -> None:
        self.error = describe_error(message)
        self._candidates = []
        self._index = 0
        self.has_more = False

    def _has_viewed(self, raw: list[Any]) -> bool:
        viewed = set(self.viewed.ids())
        return any(
            isinstance(r, dict) and isinstance(r.get("id"), str) and r["id"] in viewed for r in raw
        )

    def _drop_consumed_page(self) -> None:
        """Forget the cached page once every candidate from it has been consumed.

        The next search then reaches the server, which skips the viewed ids.
        """
        if self.cache is not None and self._batch_key is not None:
            logger.debug("Batch exhausted, dropping cached page %s", self._batch_key)
            self.cache.delete(self._batch_key)
        self._batch_key = None

    async def _fetch(
        self, request: SearchRequest, key: str, use_cache: bool
    ) -> tuple[SearchOutcome, Optional[bool]]:
        if self.cache is not None and use_cache:
            cached = self.cache.get(key)
            if isinstance(cached, list):
                metadata = self.cache.get_metadata(key) or {}
                logger.debug("Serving %s from cache", key)
                return Ok(list(cached)), metadata.get("has_more")

        payload: Any = await asyncio.to_thread(self.client.search, request)
        outcome = parse_search_response(payload)
        if self.cache is not None and isinstance(outcome, Ok):
            self.cache.set_with_metadata(
                key,
                outcome.records,
                {
                    "has_more": len(outcome.records) == request.page_size,
                    "page_size": request.page_size,
                    "total_results": len(outcome.records),
                },
            )
        return outcome, None

    @staticmethod
    def _cache_key(request: SearchRequest) -> str:
        base = generate_key(request.cache_key_params())
        return generate_key(
            f"{base}_{request.current_user_id}_{request.min_start_day}_{request.max_end_day}"
        )
