"""
Snapshot diff: decides which calendar entries to create or update.
"""

import dataclasses
from typing import Dict
from typing import List

from room_calendar_sync.models import COMPARED_FIELDS
from room_calendar_sync.models import Action
from room_calendar_sync.models import CreateAction
from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import UpdateAction
from room_calendar_sync.titles import derive_title


def changed_fields(wanted: EventRecord, current: EventRecord) -> frozenset:
    """Return the compared fields on which two records disagree."""
    return frozenset(
        name for name in COMPARED_FIELDS if getattr(wanted, name) != getattr(current, name)
    )


class Reconciler:
    """Diffs a source snapshot against a mirror snapshot."""

    def reconcile(
        self, source: Dict[str, EventRecord], mirror: Dict[str, EventRecord]
    ) -> List[Action]:
        """Return actions in ascending key order.

        Keys only present in the mirror are left alone: removing entries
        is never decided here.
        """
        actions: List[Action] = []
        for key in sorted(source):
            wanted = source[key]
            current = mirror.get(key)
            if current is None:
                actions.append(CreateAction(wanted))
                continue

            wanted = dataclasses.replace(
                wanted,
                title=derive_title(wanted.course, wanted.section, wanted.instructors, wanted.title),
            )
            changed = changed_fields(wanted, current)
            if changed:
                actions.append(UpdateAction(current.external_handle, wanted, changed))
        return actions
