"""Plain text output formatter -- no ANSI escapes."""

from __future__ import annotations

from tripmatch.models import Itinerary
from tripmatch.predicates import age
from tripmatch.search.models import SearchState


def _header(title: str) -> str:
    """Create a plain text section header."""
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}\n"


def _dates(candidate: Itinerary) -> str:
    if candidate.start_date and candidate.end_date:
        return f"{candidate.start_date} to {candidate.end_date}"
    return "dates not set"


def _owner(candidate: Itinerary) -> str:
    info = candidate.user_info
    if info is None:
        return "unknown traveller"
    name = info.username or info.uid or "unknown traveller"
    years = age(info.dob)
    return f"{name} ({years})" if years is not None else name


class PlainFormatter:
    """Format TripMatch results as plain text without ANSI escapes."""

    def format_candidate(self, candidate: Itinerary) -> str:
        lines = [
            f"  Destination: {candidate.destination or '-'}",
            f"  Traveller:   {_owner(candidate)}",
            f"  Dates:       {_dates(candidate)}",
        ]
        if candidate.lower_range is not None and candidate.upper_range is not None:
            lines.append(f"  Looking for: ages {candidate.lower_range}-{candidate.upper_range}")
        if candidate.description:
            lines.append(f"  About:       {candidate.description}")
        return "\n".join(lines)

    def format_search(self, state: SearchState) -> str:
        lines = [_header("Matching Itineraries")]
        if state.error:
            lines.append(f"  Error: {state.error}")
            return "\n".join(lines)
        if not state.matching_itineraries:
            lines.append("  No matching itineraries.")
        for i, candidate in enumerate(state.matching_itineraries, start=1):
            lines.append(f"  [{i}] {candidate.id}")
            lines.append(self.format_candidate(candidate))
            lines.append("")
        lines.append(f"  More on server: {'yes' if state.has_more else 'no'}")
        return "\n".join(lines)

    def format_cache_stats(self, stats: dict[str, int]) -> str:
        lines = [_header("Search Cache")]
        for key in ("memorySize", "localStorageSize", "totalKeys", "hits", "misses"):
            lines.append(f"  {key:<18} {stats.get(key, 0)}")
        return "\n".join(lines)

    def format_viewed(self, ids: list[str]) -> str:
        lines = [_header(f"Viewed Itineraries ({len(ids)})")]
        lines.extend(f"  {i}" for i in ids)
        return "\n".join(lines)
