"""
Apply step: executes reconciliation actions against a room calendar.
"""

from typing import List

from room_calendar_sync.models import Action
from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import CreateAction
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncStats
from room_calendar_sync.models import UpdateAction


def _process_create(config: SyncConfig, stats: SyncStats, logger, room: RoomConfig,
                    action: CreateAction, writer):
    record = action.record
    if config.dry_run:
        logger.info(f"[DRY RUN] [{room.name}] Would CREATE {record.id}: {record.title}")
        stats.added += 1
        return

    try:
        handle = writer.create(record)
        stats.added += 1
        logger.debug(f"[{room.name}] Created {record.id} as {handle}")
    except CalendarSyncError as e:
        logger.error(f"[{room.name}] Failed to create {record.id}: {e}")
        stats.errors += 1


def _process_update(config: SyncConfig, stats: SyncStats, logger, room: RoomConfig,
                    action: UpdateAction, writer):
    record = action.record
    fields = ", ".join(sorted(action.changed_fields))
    if config.dry_run:
        logger.info(
            f"[DRY RUN] [{room.name}] Would UPDATE {record.id} "
            f"(entry {action.handle}): {fields}"
        )
        stats.modified += 1
        return

    try:
        writer.update(action.handle, record, action.changed_fields)
        stats.modified += 1
        logger.debug(f"[{room.name}] Updated {record.id} (entry {action.handle}): {fields}")
    except CalendarSyncError as e:
        logger.error(f"[{room.name}] Failed to update {record.id} (entry {action.handle}): {e}")
        stats.errors += 1


def apply_actions(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    room: RoomConfig,
    actions: List[Action],
    writer,
):
    """Run actions one at a time; a failed write never stops the rest."""
    for action in actions:
        if isinstance(action, CreateAction):
            _process_create(config, stats, logger, room, action, writer)
        elif isinstance(action, UpdateAction):
            _process_update(config, stats, logger, room, action, writer)
        else:
            raise TypeError(f"Unknown action {action!r}")
