"""
Mirror snapshot: EventRecords recovered from a room calendar's entries.
"""

import dataclasses
import logging
from typing import Dict

from room_calendar_sync.codec import decode
from room_calendar_sync.models import MIRROR_TAG_PREFIX
from room_calendar_sync.models import EventRecord
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig


class MirrorReader:
    """Decodes what a previous run wrote into a room calendar."""

    def __init__(self, config: SyncConfig, logger=None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def read(self, room: RoomConfig, client) -> Dict[str, EventRecord]:
        """Return the room calendar's entries in the window, keyed by record id.

        Entries without embedded metadata (created by hand) are keyed by
        their native UID so every entry stays addressable.
        """
        entries = client.list_entries(self.config.window)
        self.logger.debug(f"[{room.name}] {len(entries)} calendar entries in window")

        snapshot: Dict[str, EventRecord] = {}
        for entry in entries:
            decoded = decode(entry.body)
            record = dataclasses.replace(
                decoded,
                id=decoded.id or entry.handle,
                source=MIRROR_TAG_PREFIX + (entry.organizer or room.calendar_mailbox),
                external_handle=entry.handle,
            )
            existing = snapshot.get(record.id)
            if existing is not None:
                self.logger.warning(
                    f"[{room.name}] Entries {existing.external_handle} and {entry.handle} "
                    f"both carry id {record.id}; ignoring {entry.handle}"
                )
                continue
            snapshot[record.id] = record
        return snapshot
