"""
Unit tests for the ICalGLib helpers in room_calendar_sync.eds_client.

These use real ICalGLib components, so they are skipped on machines without
PyGObject and libical-glib.
"""

from datetime import datetime
from datetime import timedelta
from datetime import timezone

import pytest

gi = pytest.importorskip("gi")
try:
    gi.require_version("GLib", "2.0")
    gi.require_version("ICalGLib", "3.0")
    gi.require_version("EDataServer", "1.2")
    gi.require_version("ECal", "2.0")
except ValueError as e:
    pytest.skip(f"EDS introspection data unavailable: {e}", allow_module_level=True)
from gi.repository import GLib
from gi.repository import ICalGLib

from room_calendar_sync.codec import decode
from room_calendar_sync.codec import encode
from room_calendar_sync.eds_client import _apply_fields
from room_calendar_sync.eds_client import entry_from_component
from room_calendar_sync.eds_client import is_not_found_error
from room_calendar_sync.eds_client import parse_component
from room_calendar_sync.eds_client import to_ical_time
from room_calendar_sync.models import NATIVE_FIELDS
from tests.conftest import make_record

_VEVENT = (
    "BEGIN:VEVENT\r\n"
    "UID:native-1\r\n"
    "SUMMARY:CS 101 02 (Smith)\r\n"
    "DTSTART:20260303T100000Z\r\n"
    "DTEND:20260303T105000Z\r\n"
    "ORGANIZER:mailto:rooms@example.edu\r\n"
    "DESCRIPTION:# Id: M1\\n# Term: 2026SP\r\n"
    "END:VEVENT\r\n"
)


class _GLibError(GLib.Error):
    """Lightweight GLib.Error subclass with controllable domain/code/message."""

    def __init__(self, domain: str = "", code: int = 0, message: str = ""):
        self.domain = domain
        self.code = code
        self.message = message


class TestToIcalTime:
    def test_aware_datetime_is_written_in_utc(self):
        value = datetime(2026, 3, 3, 4, 0, tzinfo=timezone(timedelta(hours=-6)))
        t = to_ical_time(value)
        assert (t.get_year(), t.get_month(), t.get_day(), t.get_hour()) == (2026, 3, 3, 10)
        assert t.is_utc()

    def test_all_day_is_a_date(self):
        t = to_ical_time(datetime(2026, 3, 3, tzinfo=timezone.utc), all_day=True)
        assert t.is_date()
        assert (t.get_year(), t.get_month(), t.get_day()) == (2026, 3, 3)


class TestEntryFromComponent:
    def test_reads_handle_body_and_organizer(self):
        entry = entry_from_component(parse_component(_VEVENT))

        assert entry.handle == "native-1"
        assert entry.summary == "CS 101 02 (Smith)"
        assert entry.organizer == "rooms@example.edu"
        assert decode(entry.body).id == "M1"
        assert decode(entry.body).term == "2026SP"

    def test_vcalendar_is_unwrapped(self):
        wrapped = "BEGIN:VCALENDAR\r\nVERSION:2.0\r\n" + _VEVENT + "END:VCALENDAR\r\n"
        assert entry_from_component(parse_component(wrapped)).handle == "native-1"


def test_new_component_round_trips_body():
    record = make_record("M9", location="SCI 101")
    comp = ICalGLib.Component.new_vevent()
    comp.set_uid("native-9")
    _apply_fields(comp, record, NATIVE_FIELDS)
    comp.set_description(encode(record))

    reparsed = parse_component(comp.as_ical_string())
    entry = entry_from_component(reparsed)

    assert reparsed.get_summary() == record.title
    assert reparsed.get_location() == "SCI 101"
    assert decode(entry.body) == record


def test_apply_fields_touches_only_named_fields():
    comp = parse_component(_VEVENT)
    _apply_fields(comp, make_record("M1", title="New title", location="SCI 202"), {"location"})

    assert comp.get_summary() == "CS 101 02 (Smith)"
    assert comp.get_location() == "SCI 202"


class TestIsNotFoundError:
    def test_eds_not_found_code(self):
        assert is_not_found_error(_GLibError("e-cal-client-error-quark", 1, "gone")) is True

    def test_exchange_message(self):
        err = _GLibError("e-m365-error-quark", 99, "ErrorItemNotFound: item missing")
        assert is_not_found_error(err) is True

    def test_other_error(self):
        assert is_not_found_error(_GLibError("e-cal-client-error-quark", 2, "denied")) is False

    def test_plain_exception_message(self):
        assert is_not_found_error(RuntimeError("Object not found")) is True
