"""
In-memory fakes for testing.

FakeCalendarClient is a duck-type-compatible stand-in for EDSCalendarClient
and FakeSourceApi for SourceApiClient.  No EDS daemon or network connection
is required.
"""

import itertools
from datetime import date
from datetime import datetime
from datetime import timezone

from room_calendar_sync.codec import encode
from room_calendar_sync.models import CalendarEntry
from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import NATIVE_FIELDS
from room_calendar_sync.models import SourceApiError
from room_calendar_sync.models import SyncWindow
from room_calendar_sync.sync.utils import window_bounds


class FakeCalendarClient:
    """In-memory stub that satisfies the EDSCalendarClient duck-type contract."""

    def __init__(self, organizer: str = "rooms@example.edu"):
        # handle → CalendarEntry, plus the native attributes written to it
        self._entries: dict[str, CalendarEntry] = {}
        self.native: dict[str, dict] = {}
        self.organizer = organizer
        self._ids = itertools.count(1)
        self.creates: list[str] = []
        self.updates: list[tuple[str, frozenset]] = []
        self.removes: list[str] = []
        self.fail_on: set[str] = set()  # record ids whose writes fail

    # ------------------------------------------------------------------ #
    # EDSCalendarClient interface                                           #
    # ------------------------------------------------------------------ #

    def list_entries(self, window: SyncWindow) -> list[CalendarEntry]:
        start, end = window_bounds(window, timezone.utc)
        entries = []
        for handle, entry in self._entries.items():
            when = self.native[handle].get("start")
            if when is not None and not (start <= when < end):
                continue
            entries.append(entry)
        return entries

    def create(self, record: EventRecord) -> str:
        if record.id in self.fail_on:
            raise CalendarSyncError(f"Failed to create event {record.id}")
        handle = f"entry-{next(self._ids)}"
        self.native[handle] = {name: getattr(record, name) for name in NATIVE_FIELDS}
        self._store(handle, record)
        self.creates.append(handle)
        return handle

    def update(self, handle: str, record: EventRecord, changed_fields):
        if record.id in self.fail_on:
            raise CalendarSyncError(f"Failed to modify event {handle}")
        if handle not in self._entries:
            raise CalendarSyncError(f"Event {handle}: object not found")
        for name in NATIVE_FIELDS & set(changed_fields):
            self.native[handle][name] = getattr(record, name)
        self._store(handle, record)
        self.updates.append((handle, frozenset(changed_fields)))

    def remove(self, handle: str):
        if handle not in self._entries:
            raise CalendarSyncError(f"Event {handle}: object not found")
        del self._entries[handle]
        del self.native[handle]
        self.removes.append(handle)

    # ------------------------------------------------------------------ #
    # Test helpers                                                          #
    # ------------------------------------------------------------------ #

    def _store(self, handle: str, record: EventRecord):
        self._entries[handle] = CalendarEntry(
            handle=handle,
            body=encode(record),
            summary=self.native[handle]["title"],
            organizer=self.organizer,
        )

    def add_raw_entry(self, handle: str, body: str, summary: str = "", start: datetime | None = None):
        """Insert an entry as a person (or an older run) would have left it."""
        self._entries[handle] = CalendarEntry(
            handle=handle, body=body, summary=summary, organizer=self.organizer
        )
        self.native[handle] = {"title": summary, "start": start}

    def body(self, handle: str) -> str:
        return self._entries[handle].body

    @property
    def event_count(self) -> int:
        return len(self._entries)

    def reset_counters(self):
        """Clear the create/update/remove lists between sync runs."""
        self.creates.clear()
        self.updates.clear()
        self.removes.clear()


class FakeSourceApi:
    """In-memory scheduling API keyed by room number, meeting id and instructor id."""

    def __init__(self):
        self.summaries: dict[str, list[dict]] = {}
        self.meetings: dict[str, dict] = {}
        self.instructors: dict[str, dict] = {}
        self.failing: set[str] = set()  # meeting/instructor ids or room numbers that fail
        self.calls: list[tuple[str, str]] = []

    def add_meeting(
        self,
        room_number: str,
        meeting_id: str,
        day: str = "2026-03-03",
        start: str | None = "10:00",
        end: str | None = "10:50",
        section: str = "CS-101-02",
        instructor_ids: tuple = ("I1",),
        title: str = "Intro to Computing",
        building: str = "SCI",
        room: str = "101",
    ):
        self.summaries.setdefault(room_number, []).append(
            {"id": meeting_id, "date": day, "room": {"buildingCode": building, "room": room}}
        )
        self.meetings[meeting_id] = {
            "id": meeting_id,
            "meetingType": "course",
            "date": day,
            "start": start,
            "end": end,
            "meeting": {"title": title},
            "course": {"term": "2026SP", "section": section, "instructors": list(instructor_ids)},
        }

    def add_instructor(self, instructor_id: str, surname: str, given_name: str = "Ada"):
        self.instructors[instructor_id] = {
            "givenName": given_name,
            "surname": surname,
            "displayName": f"{given_name} {surname}",
            "officeLocation": "SCI 310",
            "title": "Professor",
            "department": "Computer Science",
            "division": "Sciences",
            "uid": surname.lower(),
        }

    # ------------------------------------------------------------------ #
    # SourceApiClient interface                                             #
    # ------------------------------------------------------------------ #

    def list_meetings(self, room_number: str, start: date, end: date) -> list[dict]:
        self.calls.append(("list", room_number))
        if room_number in self.failing:
            raise SourceApiError(f"GET rooms/{room_number}/meetings failed: HTTP 503", 503)
        return list(self.summaries.get(room_number, []))

    def get_meeting(self, meeting_id: str) -> dict:
        self.calls.append(("meeting", meeting_id))
        if meeting_id in self.failing or meeting_id not in self.meetings:
            raise SourceApiError(f"GET meetings/{meeting_id} failed: HTTP 404", 404)
        return self.meetings[meeting_id]

    def get_instructor(self, instructor_id: str) -> dict:
        self.calls.append(("instructor", instructor_id))
        if instructor_id in self.failing or instructor_id not in self.instructors:
            raise SourceApiError(f"GET instructors/{instructor_id} failed: HTTP 404", 404)
        return self.instructors[instructor_id]
