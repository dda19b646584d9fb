"""
Stateless helpers shared by the snapshot builders.
"""

import logging
from datetime import date
from datetime import datetime
from datetime import time
from datetime import timedelta
from datetime import tzinfo
from typing import Optional
from typing import Tuple
from zoneinfo import ZoneInfo

from dateutil import tz as dateutil_tz

from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncWindow

_logger = logging.getLogger(__name__)

# Composite section strings look like "CS-101-02": department, number, section.
SECTION_DELIMITER = "-"


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Return the configured zone, or the machine's local zone when unset.

    The local zone follows its own daylight-saving rules, so a meeting after
    a DST change gets that date's offset rather than today's.
    """
    if name:
        return ZoneInfo(name)
    return dateutil_tz.tzlocal()


def config_timezone(config: SyncConfig) -> tzinfo:
    return resolve_timezone(config.timezone)


def window_bounds(window: SyncWindow, tz: tzinfo) -> Tuple[datetime, datetime]:
    """Return the window as aware datetimes: midnight of start to midnight of end."""
    return (
        datetime.combine(window.start, time.min, tzinfo=tz),
        datetime.combine(window.end, time.min, tzinfo=tz),
    )


def parse_date(value) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` (a trailing time part is ignored)."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_time(value) -> Optional[time]:
    """Parse ``HH:MM`` or ``HH:MM:SS``; None for blanks and garbage."""
    if not value:
        return None
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        _logger.debug("Unparseable time value %r", value)
        return None


def meeting_span(
    day: date, start: Optional[time], end: Optional[time], tz: tzinfo
) -> Tuple[bool, datetime, datetime]:
    """Return (all_day, start, end) for a meeting on ``day``.

    A meeting without both a start and an end time covers the whole day.
    """
    if start is None or end is None:
        midnight = datetime.combine(day, time.min, tzinfo=tz)
        return True, midnight, midnight + timedelta(days=1)
    starts = datetime.combine(day, start, tzinfo=tz)
    ends = datetime.combine(day, end, tzinfo=tz)
    if ends < starts:
        ends = starts
    return False, starts, ends


def split_section(composite: str) -> Tuple[str, str]:
    """Split ``"CS-101-02"`` into (``"CS 101"``, ``"02"``).

    Anything that does not have exactly three parts yields empty strings.
    """
    parts = (composite or "").split(SECTION_DELIMITER)
    if len(parts) != 3:
        return "", ""
    department, number, section = (part.strip() for part in parts)
    return f"{department} {number}", section


def compose_location(room: Optional[dict]) -> str:
    """Return ``"<buildingCode> <room>"`` from a summary's room object."""
    if not isinstance(room, dict):
        room = {}
    parts = [str(room.get("buildingCode") or "").strip(), str(room.get("room") or "").strip()]
    return " ".join(part for part in parts if part)
