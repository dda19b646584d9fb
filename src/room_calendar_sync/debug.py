"""
Debug/inspect tools for room calendars.

Importable functions:
  list_calendars(registry, console)  -> render a Rich table of all calendars
  dump_entry(entry, console, show_raw=True)  -> render one decoded entry in a Rich Panel
"""

import gi
gi.require_version('EDataServer', '1.2')
gi.require_version('ECal', '2.0')
from gi.repository import EDataServer, ECal

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from room_calendar_sync.codec import decode
from room_calendar_sync.codec import is_generated
from room_calendar_sync.models import CalendarEntry


def list_calendars(registry, console: Console) -> None:
    """Render all configured EDS calendars as a Rich table."""
    sources = registry.list_sources(EDataServer.SOURCE_EXTENSION_CALENDAR)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Display Name", style="bold")
    table.add_column("Account")
    table.add_column("Mode")
    table.add_column("UID", style="dim")

    for source in sources:
        name = source.get_display_name() or "(unnamed)"
        uid = source.get_uid() or ""
        parent = source.get_parent()
        account = ""
        if parent:
            parent_source = registry.ref_source(parent)
            if parent_source:
                account = parent_source.get_display_name() or ""
        try:
            client = ECal.Client.connect_sync(source, ECal.ClientSourceType.EVENTS, 5, None)
            mode = "Read-write" if not client.is_readonly() else "Read-only"
            mode_style = "green" if not client.is_readonly() else "yellow"
        except Exception:
            mode = "Unknown"
            mode_style = "red"

        table.add_row(name, account, Text(mode, style=mode_style), uid)

    console.print(table)


def dump_entry(entry: CalendarEntry, console: Console, show_raw: bool = True) -> None:
    """Render a single calendar entry, with its decoded metadata, as a Rich Panel."""
    record = decode(entry.body)
    generated = is_generated(entry.body)

    lines = Text()

    def row(label: str, value) -> None:
        if value in (None, ""):
            return
        lines.append(f"  {label:<14}: ", style="bold cyan")
        lines.append(f"{value}\n")

    row("HANDLE", entry.handle)
    row("SUMMARY", entry.summary or "(no summary)")
    row("ORGANIZER", entry.organizer)
    lines.append(f"  {'GENERATED':<14}: ", style="bold cyan")
    lines.append("yes\n" if generated else "no (hand-created)\n",
                 style="green" if generated else "yellow")

    if generated:
        row("Id", record.id)
        row("Title", record.title)
        row("AllDay", record.all_day)
        row("Start", record.start)
        row("End", record.end)
        row("MeetingType", record.meeting_type)
        row("Location", record.location)
        row("Term", record.term)
        row("Course", record.course)
        row("Section", record.section)
        for instructor in record.instructors:
            name = instructor.display_name or f"{instructor.first_name} {instructor.last_name}"
            row("Instructor", f"{name} <{instructor.email}>" if instructor.email else name)

    console.print(Panel(lines, title=f"[bold]{entry.summary or entry.handle}[/bold]", expand=False))

    if show_raw and entry.body:
        console.print(Panel(
            Syntax(entry.body, "text", theme="monokai", word_wrap=True),
            title="Body",
            expand=False,
        ))
