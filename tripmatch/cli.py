"""TripMatch CLI -- find travel companions whose itineraries match yours.

Provides commands for searching and browsing matching itineraries, and for
managing the search cache, the viewed-itinerary set, and configuration.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
import yaml
from pydantic import ValidationError

from tripmatch.config import KEYRING_SERVICE, KEYRING_USER, load_settings
from tripmatch.models import Itinerary

# ---------------------------------------------------------------------------
# App and sub-apps
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="tripmatch",
    help="Travel companion matching -- search, browse, and manage matches.",
    no_args_is_help=True,
)

cache_app = typer.Typer(
    name="cache",
    help="Manage the search result cache.",
    no_args_is_help=True,
)

viewed_app = typer.Typer(
    name="viewed",
    help="Inspect or reset itineraries you have already seen.",
    no_args_is_help=True,
)

config_app = typer.Typer(
    name="config",
    help="Manage TripMatch configuration.",
    no_args_is_help=True,
)

app.add_typer(cache_app, name="cache")
app.add_typer(viewed_app, name="viewed")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global option types
# ---------------------------------------------------------------------------

JsonFlag = Annotated[bool, typer.Option("--json", help="Output as JSON.")]
PlainFlag = Annotated[bool, typer.Option("--plain", help="Output as plain text (no color).")]
VerboseFlag = Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output.")]
QuietFlag = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress non-essential output.")]
UserIdOption = Annotated[str, typer.Option("--user-id", "-u", help="Your user id")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_format(json_flag: bool = False, plain_flag: bool = False) -> str:
    """Determine output format: json > plain > TTY auto-detect > rich."""
    if json_flag:
        return "json"
    if plain_flag:
        return "plain"
    if sys.stdout.isatty():
        return "rich"
    return "plain"


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)


def _load_itinerary(file: str) -> Itinerary:
    """Read an itinerary YAML file into an Itinerary.

    Raises typer.BadParameter with a readable message for a missing file,
    a YAML syntax error (with its position), or fields that fail validation.
    """
    path = Path(file)
    if not path.is_file():
        where = "" if path.is_absolute() else f" (relative to {Path.cwd()})"
        raise typer.BadParameter(f"No itinerary file at {file}{where}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" (line {mark.line + 1}, column {mark.column + 1})" if mark else ""
        problem = getattr(exc, "problem", None) or "invalid YAML"
        raise typer.BadParameter(f"Cannot parse {file}{where}: {problem}")

    if not isinstance(raw, dict):
        raise typer.BadParameter(
            f"{file} must contain a single itinerary mapping, not {type(raw).__name__}"
        )

    # YAML turns bare dates into date objects; the model keeps them as strings.
    for key in ("startDate", "endDate"):
        if raw.get(key) is not None and not isinstance(raw[key], str):
            raw[key] = str(raw[key])
    info = raw.get("userInfo")
    if isinstance(info, dict) and info.get("dob") is not None and not isinstance(info["dob"], str):
        info["dob"] = str(info["dob"])

    try:
        return Itinerary.model_validate(raw)
    except ValidationError as exc:
        problems = [
            f"  {'.'.join(str(part) for part in err['loc']) or '(root)'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise typer.BadParameter("\n".join([f"Invalid itinerary in {file}:", *problems]))


def _error_panel(message: str) -> None:
    """Print an error message, using Rich panel if available."""
    try:
        from rich.console import Console
        from rich.panel import Panel

        console = Console(stderr=True)
        console.print(Panel(message, title="Error", border_style="red"))
    except Exception:
        typer.echo(f"Error: {message}", err=True)


def _itinerary_or_exit(file: str, user_id: str) -> Itinerary:
    """Validate the shared search/browse arguments, exiting with code 2 on bad input."""
    if not user_id:
        _error_panel("Missing --user-id. Example: --user-id abc123")
        raise typer.Exit(code=2)
    try:
        return _load_itinerary(file)
    except typer.BadParameter as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


def _build_orchestrator(use_cache: bool = True):
    from tripmatch.search.orchestrator import SearchOrchestrator

    return SearchOrchestrator.from_settings(load_settings(), use_cache=use_cache)


# ---------------------------------------------------------------------------
# Search commands
# ---------------------------------------------------------------------------


@app.command()
def search(
    file: str = typer.Argument(help="Path to your itinerary YAML file"),
    user_id: UserIdOption = "",
    refresh: Annotated[bool, typer.Option("--refresh", help="Skip the result cache")] = False,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Search for itineraries matching yours and list them."""
    _setup_logging(verbose, quiet)
    itinerary = _itinerary_or_exit(file, user_id)

    from tripmatch.output import get_formatter

    orchestrator = _build_orchestrator()
    if refresh:
        asyncio.run(orchestrator.force_refresh_search(itinerary, user_id))
    else:
        asyncio.run(orchestrator.search(itinerary, user_id))

    state = orchestrator.state
    fmt = _get_format(json, plain)
    if state.error and fmt != "json":
        _error_panel(state.error)
        raise typer.Exit(code=1)

    typer.echo(get_formatter(fmt).format_search(state))
    if state.error:
        raise typer.Exit(code=1)


@app.command()
def browse(
    file: str = typer.Argument(help="Path to your itinerary YAML file"),
    user_id: UserIdOption = "",
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Step through matches one at a time: like, skip, or quit."""
    _setup_logging(verbose, quiet)
    itinerary = _itinerary_or_exit(file, user_id)

    from tripmatch.output import get_formatter

    formatter = get_formatter(_get_format(False, plain))
    orchestrator = _build_orchestrator()
    asyncio.run(orchestrator.search(itinerary, user_id))

    if orchestrator.error:
        _error_panel(orchestrator.error)
        raise typer.Exit(code=1)

    liked: list[str] = []
    while orchestrator.current is not None:
        candidate = orchestrator.current
        typer.echo(formatter.format_candidate(candidate))
        choice = typer.prompt("[l]ike / [s]kip / [q]uit", default="s").strip().lower()
        if choice.startswith("q"):
            break
        if choice.startswith("l"):
            liked.append(candidate.id)
        orchestrator.next()

    if orchestrator.current is None and not quiet:
        typer.echo("No more matches in this batch. Run `tripmatch search --refresh` to fetch again.")
    if liked:
        typer.echo(f"Liked: {', '.join(liked)}")


# ---------------------------------------------------------------------------
# Cache commands
# ---------------------------------------------------------------------------


def _open_cache():
    from tripmatch.cache import ResultCache

    return ResultCache(load_settings().cache_path)


@cache_app.command(name="stats")
def cache_stats(json: JsonFlag = False, plain: PlainFlag = False) -> None:
    """Show search cache statistics."""
    from tripmatch.output import get_formatter

    stats = _open_cache().get_stats()
    typer.echo(get_formatter(_get_format(json, plain)).format_cache_stats(stats))


@cache_app.command(name="cleanup")
def cache_cleanup() -> None:
    """Remove expired entries from the search cache."""
    removed = _open_cache().cleanup()
    typer.echo(f"Removed {removed} expired cache entries.")


@cache_app.command(name="clear")
def cache_clear() -> None:
    """Clear the search cache."""
    _open_cache().clear()
    typer.echo("Search cache cleared.")


# ---------------------------------------------------------------------------
# Viewed commands
# ---------------------------------------------------------------------------


@viewed_app.command(name="list")
def viewed_list(json: JsonFlag = False, plain: PlainFlag = False) -> None:
    """List itineraries you have already been shown."""
    from tripmatch.output import get_formatter
    from tripmatch.viewed import ViewedSet

    ids = ViewedSet(load_settings().viewed_path).ids()
    typer.echo(get_formatter(_get_format(json, plain)).format_viewed(ids))


@viewed_app.command(name="clear")
def viewed_clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Forget every viewed itinerary so they can be shown again."""
    from tripmatch.viewed import ViewedSet

    if not yes and not typer.confirm("Forget all viewed itineraries?"):
        typer.echo("Keeping viewed itineraries.")
        return
    ViewedSet(load_settings().viewed_path).clear()
    typer.echo("Viewed itineraries cleared.")


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command(name="show")
def config_show(json: JsonFlag = False) -> None:
    """Show the effective configuration."""
    import json as json_mod

    settings = load_settings()
    data = {
        "home": str(settings.home),
        "rpc_url": settings.rpc_url,
        "rpc_token": settings.masked_token(),
        "rpc_timeout": settings.rpc_timeout,
        "page_size": settings.page_size,
        "bidirectional_age": settings.bidirectional_age,
    }
    if json:
        typer.echo(json_mod.dumps(data, indent=2))
        return
    for key, value in data.items():
        typer.echo(f"{key:<18} {value}")


@config_app.command(name="set-token")
def config_set_token() -> None:
    """Store the RPC bearer token in the system keyring."""
    token = typer.prompt("RPC token", hide_input=True)
    try:
        import keyring

        keyring.set_password(KEYRING_SERVICE, KEYRING_USER, token)
        typer.echo("RPC token saved to system keyring.")
    except ImportError:
        _error_panel("keyring library not available. Install with: pip install keyring")
        raise typer.Exit(code=1)
    except Exception as exc:
        _error_panel(f"Failed to save token: {exc}")
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
