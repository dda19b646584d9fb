"""
Body-text codec: makes a calendar entry self-describing.

An entry body is a block of comment-style lines::

    # Generated by room-calendar-sync. Changes to this text are overwritten.
    # Id: 48213
    # Source: source-api
    # Title: CS 101 02 (Smith)
    ...
    # InstructorCount: 1
    # Instructor: FirstName: Ada
    # Instructor: LastName: Smith
    ...

The next run decodes it to recover what was last written, so no state is kept
anywhere except the calendar itself.
"""

import logging
from datetime import datetime
from typing import List
from typing import Optional

from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import InstructorRecord

_logger = logging.getLogger(__name__)

SENTINEL = "# Generated by room-calendar-sync. Changes to this text are overwritten."
SEPARATOR = "\n"

_PREFIX = "# "
_INSTRUCTOR_PREFIX = "# Instructor: "

# (tag, record attribute) in emission order.
_SCALAR_TAGS = (
    ("Id", "id"),
    ("Source", "source"),
    ("Title", "title"),
    ("AllDay", "all_day"),
    ("Start", "start"),
    ("End", "end"),
    ("MeetingType", "meeting_type"),
    ("Location", "location"),
    ("Term", "term"),
    ("Course", "course"),
    ("Section", "section"),
)
_COUNT_TAG = "InstructorCount"

_INSTRUCTOR_TAGS = (
    ("FirstName", "first_name"),
    ("LastName", "last_name"),
    ("DisplayName", "display_name"),
    ("Office", "office"),
    ("Title", "title"),
    ("Department", "department"),
    ("Division", "division"),
    ("Email", "email"),
)
_BLOCK_SIZE = len(_INSTRUCTOR_TAGS)


def _flatten(value: str) -> str:
    return " ".join(value.splitlines()) if value else ""


def _format_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, datetime):
        return value.isoformat()
    return _flatten(str(value))


def encode(record: EventRecord) -> str:
    """Render record as a body blob; the inverse of decode()."""
    lines = [SENTINEL]
    for tag, attr in _SCALAR_TAGS:
        lines.append(f"{_PREFIX}{tag}: {_format_value(getattr(record, attr))}")
    lines.append(f"{_PREFIX}{_COUNT_TAG}: {len(record.instructors)}")
    for instructor in record.instructors:
        for tag, attr in _INSTRUCTOR_TAGS:
            lines.append(f"{_INSTRUCTOR_PREFIX}{tag}: {_flatten(getattr(instructor, attr))}")
    return SEPARATOR.join(lines)


def is_generated(text: Optional[str]) -> bool:
    """Return True if text was produced by encode()."""
    for line in (text or "").replace("\r\n", "\n").split(SEPARATOR):
        if line.strip():
            return line.rstrip() == SENTINEL
    return False


def _match(line: str, prefix: str) -> Optional[str]:
    """Return the value after ``prefix`` + ':' or None if line has another tag.

    Accepts both ``# Tag: value`` and ``# Tag:`` (stores sometimes trim the
    trailing space of an empty value).
    """
    head = prefix + ":"
    if not line.startswith(head):
        return None
    rest = line[len(head):]
    return rest[1:] if rest.startswith(" ") else rest


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _parse_datetime(value: str, tag: str) -> Optional[datetime]:
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        _logger.debug("decode: unparseable %s value %r", tag, value)
        return None


def _parse_count(value: str) -> int:
    try:
        return max(int(value.strip()), 0)
    except ValueError:
        _logger.debug("decode: unparseable %s value %r", _COUNT_TAG, value)
        return 0


def _read_instructor(lines: List[str]) -> InstructorRecord:
    """Build an instructor from exactly one block of lines, by position."""
    values = {}
    for line, (tag, attr) in zip(lines, _INSTRUCTOR_TAGS):
        value = _match(line, f"{_INSTRUCTOR_PREFIX}{tag}")
        values[attr] = value if value is not None else ""
    return InstructorRecord(**values)


def decode(text: Optional[str]) -> EventRecord:
    """Recover a record from a body blob.

    Never raises: missing tags keep their defaults, unknown lines are
    skipped, and a truncated instructor section yields fewer instructors
    than declared.
    """
    lines = (text or "").replace("\r\n", "\n").split(SEPARATOR)
    fields = {}
    instructors: List[InstructorRecord] = []

    # Scanner states: top level, or inside the instructor section with
    # ``remaining`` blocks still to read.
    remaining = 0
    i = 0
    while i < len(lines):
        if remaining:
            if len(lines) - i < _BLOCK_SIZE:
                _logger.debug(
                    "decode: %d instructor block(s) missing, body truncated", remaining
                )
                remaining = 0
                break
            instructors.append(_read_instructor(lines[i:i + _BLOCK_SIZE]))
            i += _BLOCK_SIZE
            remaining -= 1
            continue

        line = lines[i]
        i += 1
        if line.startswith(_INSTRUCTOR_PREFIX):
            # Instructor lines outside a declared block carry no position.
            continue

        count = _match(line, f"{_PREFIX}{_COUNT_TAG}")
        if count is not None:
            remaining = _parse_count(count)
            continue

        for tag, attr in _SCALAR_TAGS:
            value = _match(line, f"{_PREFIX}{tag}")
            if value is None:
                continue
            if attr == "all_day":
                fields[attr] = _parse_bool(value)
            elif attr in ("start", "end"):
                fields[attr] = _parse_datetime(value, tag)
            else:
                fields[attr] = value
            break

    return EventRecord(instructors=tuple(instructors), **fields)
