"""
Source snapshot: meetings from the scheduling API as EventRecords.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict
from typing import List
from typing import Optional

from room_calendar_sync.models import SOURCE_API_TAG
from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import InstructorRecord
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncStats
from room_calendar_sync.source_api import SourceApiClient
from room_calendar_sync.sync.utils import compose_location
from room_calendar_sync.sync.utils import config_timezone
from room_calendar_sync.sync.utils import meeting_span
from room_calendar_sync.sync.utils import parse_date
from room_calendar_sync.sync.utils import parse_time
from room_calendar_sync.sync.utils import split_section
from room_calendar_sync.titles import derive_title


def _instructor_ref(ref) -> Optional[str]:
    """Instructor references are plain ids or objects carrying an id."""
    if isinstance(ref, dict):
        ref = ref.get("id")
    return str(ref) if ref not in (None, "") else None


class SourceFetcher:
    """Builds a room's snapshot from the scheduling API."""

    def __init__(self, config: SyncConfig, api: SourceApiClient, logger=None):
        self.config = config
        self.api = api
        self.logger = logger or logging.getLogger(__name__)
        self.tz = config_timezone(config)
        self._stats_lock = threading.Lock()

    def fetch(self, room: RoomConfig, stats: Optional[SyncStats] = None) -> Dict[str, EventRecord]:
        """Return the room's meetings inside the window, keyed by meeting id.

        Raises:
            CalendarSyncError: if the room's meeting list cannot be fetched
        """
        stats = stats if stats is not None else SyncStats()
        window = self.config.window

        summaries = self.api.list_meetings(room.room_number, window.start, window.end)
        retained = []
        for summary in summaries:
            if not isinstance(summary, dict):
                self.logger.warning(f"[{room.name}] Skipping malformed meeting summary {summary!r}")
                self._count_error(stats)
                continue
            day = parse_date(summary.get("date"))
            if day is None:
                self.logger.warning(
                    f"[{room.name}] Skipping meeting {summary.get('id')}: "
                    f"unparseable date {summary.get('date')!r}"
                )
                continue
            if not window.contains(day):
                continue
            retained.append(summary)

        self.logger.debug(
            f"[{room.name}] {len(retained)} of {len(summaries)} meetings fall in "
            f"{window.start} .. {window.end}"
        )

        if self.config.max_workers > 1 and len(retained) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                results = list(pool.map(lambda s: self._build_record(room, s, stats), retained))
        else:
            results = [self._build_record(room, summary, stats) for summary in retained]

        snapshot: Dict[str, EventRecord] = {}
        for record in results:
            if record is None:
                continue
            if record.id in snapshot:
                self.logger.warning(f"[{room.name}] Duplicate meeting id {record.id}, keeping first")
                continue
            snapshot[record.id] = record
        return snapshot

    def _build_record(self, room: RoomConfig, summary: dict, stats: SyncStats) -> Optional[EventRecord]:
        meeting_id = str(summary.get("id") or "")
        if not meeting_id:
            self.logger.warning(f"[{room.name}] Skipping meeting summary without an id")
            return None

        try:
            detail = self.api.get_meeting(meeting_id)
        except CalendarSyncError as e:
            self.logger.error(f"[{room.name}] Failed to fetch meeting {meeting_id}: {e}")
            self._count_error(stats)
            return None

        course = detail.get("course") or {}
        meeting = detail.get("meeting") or {}
        refs = (course.get("instructors") or []) if isinstance(course, dict) else []
        if not isinstance(course, dict) or not isinstance(meeting, dict) or not isinstance(refs, list):
            self.logger.error(f"[{room.name}] Skipping meeting {meeting_id}: malformed detail payload")
            self._count_error(stats)
            return None

        instructors = self._fetch_instructors(room, meeting_id, refs, stats)
        course_name, section = split_section(course.get("section") or "")

        day = parse_date(detail.get("date")) or parse_date(summary.get("date"))
        all_day, start, end = meeting_span(
            day, parse_time(detail.get("start")), parse_time(detail.get("end")), self.tz
        )
        meeting_title = str(meeting.get("title") or "")

        return EventRecord(
            id=meeting_id,
            source=SOURCE_API_TAG,
            title=derive_title(course_name, section, instructors, meeting_title),
            all_day=all_day,
            start=start,
            end=end,
            meeting_type=str(detail.get("meetingType") or ""),
            location=compose_location(summary.get("room")),
            term=str(course.get("term") or ""),
            course=course_name,
            section=section,
            instructors=tuple(instructors),
        )

    def _fetch_instructors(
        self, room: RoomConfig, meeting_id: str, refs: list, stats: SyncStats
    ) -> List[InstructorRecord]:
        instructors = []
        for ref in refs:
            instructor_id = _instructor_ref(ref)
            if instructor_id is None:
                continue
            try:
                data = self.api.get_instructor(instructor_id)
            except CalendarSyncError as e:
                self.logger.error(
                    f"[{room.name}] Failed to fetch instructor {instructor_id} "
                    f"for meeting {meeting_id}: {e}"
                )
                self._count_error(stats)
                continue
            instructors.append(self._instructor_record(data))
        return instructors

    def _instructor_record(self, data: dict) -> InstructorRecord:
        uid = str(data.get("uid") or "")
        email = f"{uid}@{self.config.email_domain}" if uid and self.config.email_domain else uid
        return InstructorRecord(
            first_name=str(data.get("givenName") or ""),
            last_name=str(data.get("surname") or ""),
            display_name=str(data.get("displayName") or ""),
            office=str(data.get("officeLocation") or ""),
            title=str(data.get("title") or ""),
            department=str(data.get("department") or ""),
            division=str(data.get("division") or ""),
            email=email,
        )

    def _count_error(self, stats: SyncStats) -> None:
        with self._stats_lock:
            stats.errors += 1
