"""
Command-line interface for Room Calendar Sync.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from room_calendar_sync.config import load_config
from room_calendar_sync.config import load_rooms
from room_calendar_sync.config import read_config_file
from room_calendar_sync.models import DEFAULT_CONFIG
from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import ConfigError
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.sync import CalendarSynchronizer

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Keep room calendars in EDS in step with the scheduling API.",
)

console = Console()


# ---------------------------------------------------------------------------
# Global state shared across subcommands
# ---------------------------------------------------------------------------


@dataclass
class _State:
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG)
    verbose: bool = False


state = _State()


@app.callback()
def _global(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help=f"Config file path (default: {DEFAULT_CONFIG})"),
    ] = DEFAULT_CONFIG,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug output"),
    ] = False,
) -> None:
    state.config_path = config
    state.verbose = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )


def _build_config(
    rooms: list[str] | None,
    from_date: str | None,
    days: int | None,
    dry_run: bool,
    yes: bool,
) -> SyncConfig:
    try:
        return load_config(
            state.config_path,
            rooms=rooms,
            start_date=from_date,
            days=days,
            dry_run=dry_run,
            verbose=state.verbose,
            yes=yes,
        )
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None


def _run(cfg: SyncConfig, clear: bool) -> None:
    """Core runner: display panel, confirm, run, show results."""
    from room_calendar_sync.preflight import run_preflight_checks

    if not run_preflight_checks(cfg, console):
        raise typer.Exit(1)

    # -- Info panel ----------------------------------------------------------
    info = Text()
    info.append("  Rooms:     ", style="bold")
    info.append(", ".join(room.name for room in cfg.rooms) + "\n")
    info.append("  API:       ", style="bold")
    info.append(f"{cfg.api_base_path}\n")
    info.append("  Window:    ", style="bold")
    info.append(f"{cfg.window.start} .. {cfg.window.end} ")
    info.append("(end excluded)\n", style="dim")
    info.append("  Operation: ")
    if clear:
        info.append("CLEAR (remove synced entries, no resync)", style="bold red")
    else:
        info.append("SYNC", style="bold green")
    if cfg.dry_run:
        info.append("\n  Mode:      ")
        info.append("DRY RUN", style="bold magenta")

    console.print(Panel(info, title="[bold]Room Calendar Sync[/bold]"))

    # -- Confirmation --------------------------------------------------------
    if not cfg.yes and not cfg.dry_run:
        typer.confirm("Proceed?", abort=True)

    # -- Run -----------------------------------------------------------------
    try:
        stats = CalendarSynchronizer(cfg).run(clear=clear)
    except CalendarSyncError as e:
        console.print(f"[bold red]Sync failed:[/] {e}")
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted by user[/]")
        raise typer.Exit(130) from None
    except Exception as e:
        console.print_exception()
        console.print(f"[bold red]Unexpected error:[/] {e}")
        raise typer.Exit(1) from e

    # -- Results table -------------------------------------------------------
    results = Table.grid(padding=(0, 2))
    results.add_column(style="bold")
    results.add_column(justify="right")
    if clear:
        results.add_row("Deleted", str(stats.deleted))
    else:
        results.add_row("Added", str(stats.added))
        results.add_row("Modified", str(stats.modified))
        results.add_row("Unchanged", str(stats.unchanged))
    error_val = Text(str(stats.errors))
    if stats.errors == 0:
        error_val.append(" ✓", style="green")
    else:
        error_val.stylize("bold red")
    results.add_row("Errors", error_val)
    if stats.rooms_failed:
        results.add_row("Rooms failed", Text(str(stats.rooms_failed), style="bold red"))

    console.print(Panel(results, title="[bold]Results[/bold]", expand=False))

    if stats.errors or stats.rooms_failed:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Subcommands: sync / clear share the same options
# ---------------------------------------------------------------------------

_ROOM_OPT = Annotated[
    list[str] | None,
    typer.Option("--room", "-r", help="Room name from the config file (repeatable; default: all)"),
]
_FROM_DATE = Annotated[
    str | None,
    typer.Option("--from-date", help="Window start YYYY-MM-DD (default: start_date or today)"),
]
_DAYS = Annotated[
    int | None,
    typer.Option("--days", help="Window length in days (default: days_ahead from config)"),
]
_DRY_RUN = Annotated[bool, typer.Option("--dry-run", "-n", help="Preview changes without applying")]
_YES = Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")]


@app.command()
def sync(
    room: _ROOM_OPT = None,
    from_date: _FROM_DATE = None,
    days: _DAYS = None,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Create and update room calendar entries from the scheduling API.

    Entries that no longer exist in the scheduling API are [bold]not[/bold]
    removed; use [cyan]clear[/] to start over.
    """
    _run(_build_config(room, from_date, days, dry_run, yes), clear=False)


@app.command()
def clear(
    room: _ROOM_OPT = None,
    from_date: _FROM_DATE = None,
    days: _DAYS = None,
    dry_run: _DRY_RUN = False,
    yes: _YES = False,
) -> None:
    """Remove synced entries from room calendars without re-syncing.

    Only entries this tool generated are removed; hand-made bookings stay.
    """
    _run(_build_config(room, from_date, days, dry_run, yes), clear=True)


# ---------------------------------------------------------------------------
# Subcommand: status
# ---------------------------------------------------------------------------


@app.command()
def status() -> None:
    """Show configuration and whether each room's calendar resolves in EDS."""
    from room_calendar_sync.eds_client import get_calendar_display_info
    from room_calendar_sync.eds_client import open_registry

    config_exists = state.config_path.exists()

    cfg_info = Text()
    cfg_info.append("  Config:   ", style="bold")
    cfg_info.append(str(state.config_path) + " ")
    cfg_info.append(
        "✓" if config_exists else "(not found)", style="green" if config_exists else "red"
    )
    console.print(Panel(cfg_info, title="[bold]Room Calendar Sync - Status[/bold]"))

    try:
        rooms = load_rooms(read_config_file(state.config_path))
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None
    if not rooms:
        console.print("[yellow]No rooms configured.[/]")
        return

    try:
        registry = open_registry()
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Room", style="bold")
    table.add_column("Room number")
    table.add_column("Calendar")
    table.add_column("Status")
    for room in rooms:
        name, account = get_calendar_display_info(registry, room.calendar_mailbox)
        if name:
            calendar = name + (f" ({account})" if account else "")
            status_cell = Text("✓ Found", style="green")
        else:
            calendar = room.calendar_mailbox
            status_cell = Text("✗ Missing", style="bold red")
        table.add_row(room.name, room.room_number, calendar, status_cell)
    console.print(table)


# ---------------------------------------------------------------------------
# Subcommand: calendars
# ---------------------------------------------------------------------------


@app.command()
def calendars() -> None:
    """List all configured EDS calendars."""
    from room_calendar_sync.debug import list_calendars as _list_calendars
    from room_calendar_sync.eds_client import open_registry

    try:
        registry = open_registry()
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None
    _list_calendars(registry, console)


# ---------------------------------------------------------------------------
# Subcommand: inspect
# ---------------------------------------------------------------------------


@app.command()
def inspect(
    room: Annotated[str, typer.Argument(help="Room name from the config file")],
    from_date: _FROM_DATE = None,
    days: _DAYS = None,
    no_raw: Annotated[bool, typer.Option("--no-raw", help="Omit the raw body block")] = False,
    generated_only: Annotated[
        bool, typer.Option("--generated-only", help="Show only entries created by sync")
    ] = False,
) -> None:
    """Inspect / debug the entries of a room calendar and their decoded metadata."""
    from room_calendar_sync.codec import is_generated
    from room_calendar_sync.debug import dump_entry
    from room_calendar_sync.eds_client import EDSCalendarClient
    from room_calendar_sync.eds_client import open_registry
    from room_calendar_sync.sync.utils import config_timezone

    cfg = _build_config([room], from_date, days, dry_run=True, yes=True)
    target = cfg.rooms[0]

    try:
        client = EDSCalendarClient(open_registry(), target.calendar_mailbox, config_timezone(cfg))
        client.connect(timeout=30)
        entries = client.list_entries(cfg.window)
    except CalendarSyncError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1) from None

    console.print(f"[bold]Room:[/] {target.name} [dim]({target.calendar_mailbox})[/dim]")
    console.print(f"[bold]Entries:[/] {len(entries)} between {cfg.window.start} and {cfg.window.end}")

    count = 0
    for entry in entries:
        if generated_only and not is_generated(entry.body):
            continue
        count += 1
        dump_entry(entry, console, show_raw=not no_raw)

    console.print(f"\n[bold]Matched {count} entr{'y' if count == 1 else 'ies'}[/bold]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()
