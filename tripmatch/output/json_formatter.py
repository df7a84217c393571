"""JSON output formatter -- valid JSON suitable for piping to jq."""

from __future__ import annotations

import json

from tripmatch.models import Itinerary
from tripmatch.search.models import SearchState


class JsonFormatter:
    """Format TripMatch results as pretty-printed JSON."""

    def format_candidate(self, candidate: Itinerary) -> str:
        return json.dumps(candidate.model_dump(mode="json", by_alias=True), indent=2)

    def format_search(self, state: SearchState) -> str:
        data = {
            "type": "search_result",
            "summary": {
                "error": state.error,
                "has_more": state.has_more,
                "matching": len(state.matching_itineraries),
            },
            "itineraries": [
                c.model_dump(mode="json", by_alias=True) for c in state.matching_itineraries
            ],
        }
        return json.dumps(data, indent=2)

    def format_cache_stats(self, stats: dict[str, int]) -> str:
        return json.dumps({"type": "cache_stats", **stats}, indent=2)

    def format_viewed(self, ids: list[str]) -> str:
        return json.dumps({"type": "viewed_itineraries", "count": len(ids), "ids": ids}, indent=2)
