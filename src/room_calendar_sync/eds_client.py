"""
Evolution Data Server calendar connectivity wrapper.

Each room's calendar is an EDS calendar source; its UID is the room's
"calendar mailbox" in the configuration.
"""

import uuid
from datetime import datetime
from datetime import timezone
from datetime import tzinfo
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple

import gi
gi.require_version('EDataServer', '1.2')
gi.require_version('ECal', '2.0')
gi.require_version('ICalGLib', '3.0')
from gi.repository import EDataServer, ECal, ICalGLib, GLib

from room_calendar_sync.codec import encode
from room_calendar_sync.models import CalendarEntry
from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import NATIVE_FIELDS
from room_calendar_sync.models import SyncWindow
from room_calendar_sync.sync.utils import resolve_timezone
from room_calendar_sync.sync.utils import window_bounds

# E_CAL_CLIENT_ERROR_OBJECT_NOT_FOUND = 1  (from e-cal-client-error-quark)
_EDS_NOT_FOUND_CODE = 1
_EDS_CLIENT_ERROR_DOMAIN = "e-cal-client-error-quark"

# The M365/EWS backends embed the Exchange error name in the message.
_EXCHANGE_NOT_FOUND_MSG = "ErrorItemNotFound"


def is_not_found_error(e: Exception) -> bool:
    """Return True when EDS reports that a calendar object does not exist."""
    if isinstance(e, GLib.Error):
        domain = e.domain or ""
        if e.code == _EDS_NOT_FOUND_CODE and _EDS_CLIENT_ERROR_DOMAIN in domain:
            return True
        if _EXCHANGE_NOT_FOUND_MSG in (e.message or ""):
            return True
    return "object not found" in str(e).lower()


def open_registry() -> EDataServer.SourceRegistry:
    """Connect to the EDS source registry."""
    try:
        return EDataServer.SourceRegistry.new_sync(None)
    except GLib.Error as e:
        raise CalendarSyncError(f"Evolution Data Server unreachable: {e.message}")


def get_calendar_display_info(registry, calendar_uid: str) -> Tuple[str, str]:
    """
    Get human-readable information about a calendar.

    Returns:
        Tuple of (display_name, account_name); display_name is empty when
        the calendar does not exist.
    """
    source = registry.ref_source(calendar_uid)
    if not source:
        return ("", "")

    account_name = ""
    parent_uid = source.get_parent()
    if parent_uid:
        parent_source = registry.ref_source(parent_uid)
        if parent_source:
            account_name = parent_source.get_display_name() or ""

    return (source.get_display_name() or "Unnamed Calendar", account_name)


def to_ical_time(value: datetime, all_day: bool = False) -> ICalGLib.Time:
    """Convert a datetime to an ICalGLib.Time.

    Aware datetimes are written in UTC, naive ones as floating time, and
    all-day values as DATE.
    """
    if all_day:
        return ICalGLib.Time.new_from_string(value.strftime("%Y%m%d"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
        return ICalGLib.Time.new_from_string(value.strftime("%Y%m%dT%H%M%SZ"))
    return ICalGLib.Time.new_from_string(value.strftime("%Y%m%dT%H%M%S"))


def parse_component(obj) -> ICalGLib.Component:
    """Handle both string and native Component objects from EDS API,
    unwrapping a VCALENDAR to its first VEVENT."""
    comp = ICalGLib.Component.new_from_string(obj) if isinstance(obj, str) else obj
    if comp is not None and comp.isa() == ICalGLib.ComponentKind.VCALENDAR_COMPONENT:
        vevent = comp.get_first_component(ICalGLib.ComponentKind.VEVENT_COMPONENT)
        if vevent is not None:
            return vevent
    return comp


def entry_from_component(comp: ICalGLib.Component) -> CalendarEntry:
    """Reduce a VEVENT to the parts the mirror reader needs."""
    organizer = ""
    prop = comp.get_first_property(ICalGLib.PropertyKind.ORGANIZER_PROPERTY)
    if prop:
        organizer = prop.get_organizer() or ""
        if organizer.lower().startswith("mailto:"):
            organizer = organizer[len("mailto:"):]
    return CalendarEntry(
        handle=comp.get_uid() or "",
        body=comp.get_description() or "",
        summary=comp.get_summary() or "",
        organizer=organizer,
    )


def _apply_fields(comp: ICalGLib.Component, record: EventRecord, fields: Iterable[str]):
    """Copy the named native attributes of record onto comp."""
    fields = set(fields)
    if "title" in fields:
        comp.set_summary(record.title)
    if fields & {"start", "end", "all_day"}:
        # DTSTART and DTEND must agree on DATE vs DATE-TIME.
        if record.start is not None:
            comp.set_dtstart(to_ical_time(record.start, record.all_day))
        if record.end is not None:
            comp.set_dtend(to_ical_time(record.end, record.all_day))
    if "location" in fields:
        comp.set_location(record.location)


class EDSCalendarClient:
    """Wrapper for Evolution Data Server operations on one room calendar."""

    def __init__(
        self,
        registry: EDataServer.SourceRegistry,
        calendar_uid: str,
        tz: Optional[tzinfo] = None,
    ):
        self.registry = registry
        self.calendar_uid = calendar_uid
        self.tz = tz or resolve_timezone(None)
        self.client: Optional[ECal.Client] = None

    def connect(self, timeout: int = 10):
        """Connect to the specified calendar in EDS."""
        source = self.registry.ref_source(self.calendar_uid)
        if not source:
            raise CalendarSyncError(
                f"Calendar with UID '{self.calendar_uid}' not found in EDS"
            )

        try:
            self.client = ECal.Client.connect_sync(
                source,
                ECal.ClientSourceType.EVENTS,
                timeout,
                None
            )
        except GLib.Error as e:
            raise CalendarSyncError(
                f"Failed to connect to calendar {self.calendar_uid}: {e.message}"
            )

    def _require_client(self) -> ECal.Client:
        if not self.client:
            raise CalendarSyncError("Client not connected")
        return self.client

    def get_events_in_range(self, start: datetime, end: datetime) -> list:
        """Retrieve raw events that occur between start and end."""
        client = self._require_client()
        sexp = (
            f'(occur-in-time-range? '
            f'(make-time "{start.astimezone(timezone.utc):%Y%m%dT%H%M%SZ}") '
            f'(make-time "{end.astimezone(timezone.utc):%Y%m%dT%H%M%SZ}"))'
        )
        try:
            _, objects = client.get_object_list_sync(sexp, None)
            return objects
        except GLib.Error as e:
            raise CalendarSyncError(f"Failed to fetch events: {e.message}")

    def list_entries(self, window: SyncWindow) -> List[CalendarEntry]:
        """Return every entry intersecting the window."""
        start, end = window_bounds(window, self.tz)
        entries = []
        for obj in self.get_events_in_range(start, end):
            comp = parse_component(obj)
            if comp is None or not comp.get_uid():
                continue
            entries.append(entry_from_component(comp))
        return entries

    def get_event(self, uid: str) -> Optional[ICalGLib.Component]:
        """Retrieve a single event by UID."""
        client = self._require_client()
        try:
            success, icalcomp = client.get_object_sync(uid, None, None)
        except GLib.Error as e:
            if is_not_found_error(e):
                return None
            raise CalendarSyncError(f"Failed to load event {uid}: {e.message}")
        if success and icalcomp:
            return parse_component(icalcomp)
        return None

    def create(self, record: EventRecord) -> str:
        """Create an entry for record and return its native UID."""
        client = self._require_client()

        comp = ICalGLib.Component.new_vevent()
        uid = str(uuid.uuid4())
        comp.set_uid(uid)
        _apply_fields(comp, record, NATIVE_FIELDS)
        comp.set_description(encode(record))

        try:
            success, out_uid = client.create_object_sync(
                comp,
                ECal.OperationFlags.NONE,
                None
            )
        except GLib.Error as e:
            raise CalendarSyncError(f"Failed to create event {record.id}: {e.message}")
        if not success:
            raise CalendarSyncError(f"Failed to create event {record.id}")
        # Use the server-assigned UID when there is one.
        return out_uid or uid

    def update(self, handle: str, record: EventRecord, changed_fields: Iterable[str]):
        """Rewrite the entry's body and the native attributes that changed."""
        client = self._require_client()

        comp = self.get_event(handle)
        if comp is None:
            raise CalendarSyncError(f"Event {handle}: object not found")

        _apply_fields(comp, record, NATIVE_FIELDS & set(changed_fields))
        comp.set_description(encode(record))

        try:
            success = client.modify_object_sync(
                comp,
                ECal.ObjModType.THIS,
                ECal.OperationFlags.NONE,
                None
            )
        except GLib.Error as e:
            raise CalendarSyncError(f"Failed to modify event {handle}: {e.message}")
        if not success:
            raise CalendarSyncError(f"Failed to modify event {handle}")

    def remove(self, handle: str):
        """Hard-delete an entry."""
        client = self._require_client()
        try:
            success = client.remove_object_sync(
                handle,
                None,  # rid (recurrence-id)
                ECal.ObjModType.THIS,
                ECal.OperationFlags.NONE,
                None  # cancellable
            )
        except GLib.Error as e:
            if is_not_found_error(e):
                raise CalendarSyncError(f"Event {handle}: object not found")
            raise CalendarSyncError(f"Failed to remove event {handle}: {e.message}")
        if not success:
            raise CalendarSyncError(f"Failed to remove event {handle}")
