"""
Shared pytest fixtures and record helpers.
"""

import logging
import time
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import pytest

from room_calendar_sync.models import SOURCE_API_TAG
from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import InstructorRecord
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncStats
from room_calendar_sync.models import SyncWindow

WINDOW = SyncWindow(start=date(2026, 3, 2), end=date(2026, 3, 9))
ROOM = RoomConfig(name="Science 101", room_number="SCI-101", calendar_mailbox="sci-101-calendar")
OTHER_ROOM = RoomConfig(name="Library 2", room_number="LIB-2", calendar_mailbox="lib-2-calendar")


def make_instructor(last_name: str, first_name: str = "Ada") -> InstructorRecord:
    return InstructorRecord(
        first_name=first_name,
        last_name=last_name,
        display_name=f"{first_name} {last_name}",
        office="SCI 310",
        title="Professor",
        department="Computer Science",
        division="Sciences",
        email=f"{last_name.lower()}@example.edu",
    )


def make_record(record_id: str = "M1", **overrides) -> EventRecord:
    """Return a fully populated source record; any field can be overridden."""
    start = datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc)
    values = dict(
        id=record_id,
        source=SOURCE_API_TAG,
        title="CS 101 02 (Smith)",
        all_day=False,
        start=start,
        end=start + timedelta(minutes=50),
        meeting_type="course",
        location="SCI 101",
        term="2026SP",
        course="CS 101",
        section="02",
        instructors=(make_instructor("Smith"),),
    )
    values.update(overrides)
    return EventRecord(**values)


@pytest.fixture
def sync_config():
    return SyncConfig(
        rooms=(ROOM,),
        api_base_path="https://schedule.example.edu/api/v1",
        access_key="test-key",
        window=WINDOW,
        email_domain="example.edu",
        timezone="UTC",
        dry_run=False,
        verbose=False,
    )


@pytest.fixture
def new_york_local_time(monkeypatch):
    """Run with the machine's local zone set to America/New_York."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def sync_logger():
    return logging.getLogger("test_sync")


@pytest.fixture
def sync_stats():
    return SyncStats()
