"""
Configuration file loading.

The file is INI-style: one ``[room-calendar-sync]`` section for the API and
window settings, and one ``[room:<Name>]`` section per room.
"""

import os
from configparser import ConfigParser
from configparser import Error as ConfigParserError
from datetime import date
from datetime import timedelta
from pathlib import Path
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from room_calendar_sync.models import ConfigError
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncWindow

MAIN_SECTION = "room-calendar-sync"
ROOM_SECTION_PREFIX = "room:"
ACCESS_KEY_ENV = "ROOM_CALENDAR_SYNC_ACCESS_KEY"
DEFAULT_DAYS_AHEAD = 14


def read_config_file(config_path: Path) -> ConfigParser:
    parser = ConfigParser(interpolation=None)
    if not config_path.exists():
        return parser
    try:
        parser.read(config_path)
    except ConfigParserError as e:
        raise ConfigError(f"Cannot parse {config_path}: {e}") from e
    return parser


def load_rooms(parser: ConfigParser) -> List[RoomConfig]:
    rooms = []
    for section in parser.sections():
        if not section.startswith(ROOM_SECTION_PREFIX):
            continue
        name = section[len(ROOM_SECTION_PREFIX):].strip()
        values = parser[section]
        room_number = values.get("room_number", "").strip()
        mailbox = values.get("calendar_mailbox", "").strip()
        if not name or not room_number or not mailbox:
            raise ConfigError(
                f"[{section}] needs a name, room_number and calendar_mailbox"
            )
        rooms.append(RoomConfig(name=name, room_number=room_number, calendar_mailbox=mailbox))
    return rooms


def _int_option(values: Dict[str, str], key: str, default: int) -> int:
    raw = values.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def build_window(start_date: Optional[str], days: int) -> SyncWindow:
    if start_date:
        try:
            start = date.fromisoformat(start_date)
        except ValueError:
            raise ConfigError(f"Invalid date: {start_date!r}") from None
    else:
        start = date.today()
    if days < 1:
        raise ConfigError(f"Window must span at least one day, got {days}")
    return SyncWindow(start=start, end=start + timedelta(days=days))


def load_config(
    config_path: Path,
    *,
    rooms: Optional[Sequence[str]] = None,
    start_date: Optional[str] = None,
    days: Optional[int] = None,
    dry_run: bool = False,
    verbose: bool = False,
    yes: bool = False,
) -> SyncConfig:
    """Build the run configuration from the config file plus CLI overrides.

    Raises:
        ConfigError: if anything required is missing or malformed
    """
    parser = read_config_file(config_path)
    values: Dict[str, str] = dict(parser[MAIN_SECTION]) if MAIN_SECTION in parser else {}

    api_base_path = values.get("api_base_path", "").strip()
    if not api_base_path:
        raise ConfigError(f"api_base_path is not set in [{MAIN_SECTION}] of {config_path}")

    access_key = os.environ.get(ACCESS_KEY_ENV) or values.get("access_key", "").strip()
    if not access_key:
        raise ConfigError(
            f"No API access key: set access_key in {config_path} or ${ACCESS_KEY_ENV}"
        )

    timezone = values.get("timezone", "").strip() or None
    if timezone:
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError(f"Unknown timezone {timezone!r}") from None

    all_rooms = load_rooms(parser)
    if rooms:
        by_name = {room.name: room for room in all_rooms}
        unknown = [name for name in rooms if name not in by_name]
        if unknown:
            raise ConfigError(f"Unknown room(s): {', '.join(unknown)}")
        selected = [by_name[name] for name in rooms]
    else:
        selected = all_rooms
    if not selected:
        raise ConfigError(f"No [{ROOM_SECTION_PREFIX}<Name>] sections in {config_path}")

    window_days = days if days is not None else _int_option(values, "days_ahead", DEFAULT_DAYS_AHEAD)
    window = build_window(start_date or values.get("start_date") or None, window_days)

    return SyncConfig(
        rooms=tuple(selected),
        api_base_path=api_base_path,
        access_key=access_key,
        window=window,
        email_domain=values.get("email_domain", "").strip(),
        timezone=timezone,
        request_timeout=_int_option(values, "request_timeout", 30),
        max_retries=_int_option(values, "max_retries", 3),
        max_workers=max(_int_option(values, "max_workers", 1), 1),
        run_deadline=_int_option(values, "run_deadline", 0),
        dry_run=dry_run,
        verbose=verbose,
        yes=yes,
    )
