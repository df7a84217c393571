"""Output formatters for TripMatch.

Provides a Formatter protocol and three implementations:
- RichFormatter: colored Rich tables and panels
- PlainFormatter: plain text without ANSI escapes
- JsonFormatter: valid JSON for piping to jq
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tripmatch.models import Itinerary
    from tripmatch.search.models import SearchState


class Formatter(Protocol):
    """Protocol for formatting search results and housekeeping output."""

    def format_search(self, state: SearchState) -> str:
        """Format the orchestrator state after a search."""
        ...

    def format_candidate(self, candidate: Itinerary) -> str:
        """Format a single candidate itinerary."""
        ...

    def format_cache_stats(self, stats: dict[str, int]) -> str:
        """Format result cache statistics."""
        ...

    def format_viewed(self, ids: list[str]) -> str:
        """Format the viewed-itinerary set."""
        ...


def get_formatter(name: str = "rich") -> Formatter:
    """Get a formatter by name.

    Args:
        name: One of "rich", "plain", "json".

    Returns:
        A Formatter instance.

    Raises:
        ValueError: If the name is not recognized.
    """
    if name == "rich":
        from tripmatch.output.rich_formatter import RichFormatter

        return RichFormatter()
    elif name == "plain":
        from tripmatch.output.plain_formatter import PlainFormatter

        return PlainFormatter()
    elif name == "json":
        from tripmatch.output.json_formatter import JsonFormatter

        return JsonFormatter()
    else:
        raise ValueError(f"Unknown formatter: {name!r}. Use 'rich', 'plain', or 'json'.")
