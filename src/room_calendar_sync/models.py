"""
Pure data models: no EDS or HTTP imports.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from pathlib import Path
from typing import FrozenSet
from typing import Optional
from typing import Tuple
from typing import Union

DEFAULT_CONFIG = Path.home() / ".config/room-calendar-sync.conf"

SOURCE_API_TAG = "source-api"
MIRROR_TAG_PREFIX = "mirror/"


class CalendarSyncError(Exception):
    """Base exception for calendar sync errors."""

    pass


class ConfigError(CalendarSyncError):
    """Configuration is missing or invalid; nothing can be synced."""

    pass


class SourceApiError(CalendarSyncError):
    """A call to the scheduling API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class InstructorRecord:
    """One instructor attached to a meeting."""

    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    office: str = ""
    title: str = ""
    department: str = ""
    division: str = ""
    email: str = ""


@dataclass(frozen=True)
class EventRecord:
    """One meeting occurrence, as seen by either the source API or the mirror."""

    id: str = ""
    source: str = ""
    title: str = ""
    all_day: bool = False
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    meeting_type: str = ""
    location: str = ""
    term: str = ""
    course: str = ""
    section: str = ""
    instructors: Tuple[InstructorRecord, ...] = ()
    # Native calendar UID; only mirror records carry one.
    external_handle: Optional[str] = field(default=None, compare=False)


# Fields compared when deciding whether a mirrored entry is stale.
COMPARED_FIELDS = (
    "title",
    "start",
    "end",
    "all_day",
    "meeting_type",
    "location",
    "term",
    "course",
    "section",
)

# Subset of COMPARED_FIELDS with a native calendar-store representation.
NATIVE_FIELDS = frozenset({"title", "start", "end", "all_day", "location"})


@dataclass(frozen=True)
class CreateAction:
    record: EventRecord


@dataclass(frozen=True)
class UpdateAction:
    handle: str
    record: EventRecord
    changed_fields: FrozenSet[str]


Action = Union[CreateAction, UpdateAction]


@dataclass(frozen=True)
class CalendarEntry:
    """Store-neutral view of one appointment in a room calendar."""

    handle: str
    body: str = ""
    summary: str = ""
    organizer: str = ""


@dataclass(frozen=True)
class RoomConfig:
    name: str
    room_number: str
    calendar_mailbox: str


@dataclass(frozen=True)
class SyncWindow:
    """Closed-open date window: start is included, end is excluded."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for a sync run."""

    rooms: Tuple[RoomConfig, ...]
    api_base_path: str
    access_key: str
    window: SyncWindow
    email_domain: str = ""
    timezone: Optional[str] = None  # IANA name; None means the local zone
    request_timeout: int = 30
    max_retries: int = 3
    max_workers: int = 1
    run_deadline: int = 0  # seconds, 0 disables
    dry_run: bool = False
    verbose: bool = False
    yes: bool = False  # Auto-confirm without prompting


@dataclass
class SyncStats:
    """Statistics for sync operation."""

    added: int = 0
    modified: int = 0
    deleted: int = 0
    unchanged: int = 0
    errors: int = 0
    rooms_failed: int = 0
