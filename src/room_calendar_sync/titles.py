"""
Display title for a room booking.
"""

from typing import Sequence

from room_calendar_sync.models import InstructorRecord


def derive_title(
    course: str,
    section: str,
    instructors: Sequence[InstructorRecord],
    fallback_title: str = "",
) -> str:
    """Return ``"<course> <section> (Last1, Last2)"``.

    Meetings that are not course sections (no course and no section) keep
    their own title when they have one.
    """
    if not course and not section and fallback_title:
        return fallback_title

    title = f"{course} {section}"
    if instructors:
        names = ", ".join(instructor.last_name for instructor in instructors)
        title += f" ({names})"
    return title
