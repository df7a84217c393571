"""Rich-based output formatter with tables and panels."""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tripmatch.models import Itinerary
from tripmatch.predicates import age
from tripmatch.search.models import SearchState


def _render(renderable) -> str:
    """Render a Rich object to a string."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=True, width=120)
    console.print(renderable)
    return buf.getvalue()


class RichFormatter:
    """Format TripMatch results using Rich tables and panels."""

    def format_candidate(self, candidate: Itinerary) -> str:
        info = candidate.user_info
        text = Text()
        text.append(f"{candidate.destination or '-'}\n", style="bold cyan")
        if info is not None:
            years = age(info.dob)
            name = info.username or info.uid or "unknown traveller"
            text.append(f"{name}" + (f", {years}" if years is not None else "") + "\n")
        if candidate.start_date and candidate.end_date:
            text.append(f"{candidate.start_date} → {candidate.end_date}\n", style="dim")
        if candidate.lower_range is not None and candidate.upper_range is not None:
            text.append(f"Looking for ages {candidate.lower_range}-{candidate.upper_range}\n")
        if candidate.description:
            text.append(candidate.description + "\n", style="italic")
        return _render(Panel(text, title=candidate.id, border_style="cyan"))

    def format_search(self, state: SearchState) -> str:
        if state.error:
            return _render(Panel(state.error, title="Search failed", border_style="red"))

        table = Table(title="Matching Itineraries", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Destination", style="cyan")
        table.add_column("Traveller")
        table.add_column("Age", justify="right")
        table.add_column("Dates")
        for i, c in enumerate(state.matching_itineraries, start=1):
            info = c.user_info
            years = age(info.dob) if info else None
            table.add_row(
                str(i),
                c.destination or "-",
                str(info.username or info.uid or "-") if info else "-",
                str(years) if years is not None else "-",
                f"{c.start_date} → {c.end_date}" if c.start_date and c.end_date else "-",
            )
        footer = Text(
            f"{len(state.matching_itineraries)} candidates | more on server: "
            f"{'yes' if state.has_more else 'no'}",
            style="dim",
        )
        return _render(table) + _render(footer)

    def format_cache_stats(self, stats: dict[str, int]) -> str:
        table = Table(title="Search Cache")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        for key in ("memorySize", "localStorageSize", "totalKeys", "hits", "misses"):
            table.add_row(key, str(stats.get(key, 0)))
        return _render(table)

    def format_viewed(self, ids: list[str]) -> str:
        body = "\n".join(ids) if ids else "(none)"
        return _render(Panel(body, title=f"Viewed itineraries ({len(ids)})"))
