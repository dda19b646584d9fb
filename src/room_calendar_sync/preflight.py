"""
Preflight checks run before sync to catch common misconfigurations early.
"""

import logging

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from room_calendar_sync.models import SyncConfig

logger = logging.getLogger(__name__)

_OFFLINE_KEYWORDS = frozenset(
    {
        "offline",
        "network",
        "transport",
        "unreachable",
        "not connected",
        "no route",
        "authentication failed",
        "connection refused",
        "temporary failure",
    }
)


def run_preflight_checks(cfg: SyncConfig, console: Console) -> bool:
    """Return True if sync may proceed; print issues and return False otherwise.

    Only backend-wide problems block the run. A room whose calendar is
    missing or offline is reported as a warning and fails on its own when
    the run reaches it.
    """
    try:
        import gi

        gi.require_version("ECal", "2.0")
        gi.require_version("EDataServer", "1.2")
        from gi.repository import ECal
        from gi.repository import EDataServer
        from gi.repository import GLib
    except (ImportError, ValueError) as e:
        logger.error("Calendar backend library unavailable: %s", e)
        _print_issues(
            [("Calendar backend", str(e), "Install PyGObject and evolution-data-server")],
            console,
        )
        return False

    # 1. EDS registry reachable
    try:
        registry = EDataServer.SourceRegistry.new_sync(None)
    except Exception as e:
        logger.error("EDS registry unreachable: %s", e)
        _print_issues(
            [("EDS registry", str(e), "Is evolution-data-server running?")],
            console,
        )
        return False

    # 2. Each room's calendar exists and is connectable
    warnings: list[tuple[str, str, str]] = []  # (label, detail, hint)
    for room in cfg.rooms:
        label = f"Room '{room.name}'"
        source = registry.ref_source(room.calendar_mailbox)
        if source is None:
            logger.warning("Calendar UID not found in EDS: %s", room.calendar_mailbox)
            warnings.append(
                (
                    label,
                    f"UID not found: {room.calendar_mailbox}",
                    "Run: room-calendar-sync calendars",
                )
            )
            continue

        try:
            ECal.Client.connect_sync(source, ECal.ClientSourceType.EVENTS, 5, None)
        except GLib.Error as e:
            msg = e.message or str(e)
            logger.warning("Cannot connect to %s calendar (%s): %s", label, room.calendar_mailbox, msg)
            if any(kw in msg.lower() for kw in _OFFLINE_KEYWORDS):
                account_name = _get_parent_display_name(registry, source)
                if account_name:
                    hint = f"Account '{account_name}' appears offline; check GNOME Online Accounts"
                else:
                    hint = "Calendar appears offline; check GNOME Online Accounts"
            else:
                hint = msg
            warnings.append((label, f"Connection failed: {msg}", hint))

    if warnings:
        _print_issues(warnings, console, title="[bold yellow]Rooms that will be skipped[/bold yellow]")

    return True


def _get_parent_display_name(registry, source) -> str:
    """Return the display name of the source's parent account, or empty string."""
    parent_uid = source.get_parent()
    if not parent_uid:
        return ""
    parent_source = registry.ref_source(parent_uid)
    if not parent_source:
        return ""
    return parent_source.get_display_name() or ""


def _print_issues(
    issues: list[tuple[str, str, str]],
    console: Console,
    title: str = "[bold red]Preflight checks failed[/bold red]",
) -> None:
    body = Text()
    for i, (label, detail, hint) in enumerate(issues):
        if i:
            body.append("\n")
        body.append(f"  ✗  {label}: ", style="bold red")
        body.append(detail, style="bold red")
        body.append(f"\n       → {hint}", style="yellow")

    console.print(Panel(body, title=title))
