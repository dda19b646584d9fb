"""
Clear operation: remove generated entries from a room calendar.
"""

from room_calendar_sync.codec import is_generated
from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncStats


def perform_clear(
    config: SyncConfig,
    stats: SyncStats,
    logger,
    room: RoomConfig,
    client,
):
    """Delete every entry in the window that this tool generated.

    Entries without the generated-body marker were created by hand and are
    left untouched.
    """
    logger.warning(f"[{room.name}] CLEAR MODE: removing synced entries...")

    handles = [
        entry.handle for entry in client.list_entries(config.window) if is_generated(entry.body)
    ]
    if not handles:
        logger.info(f"[{room.name}] No synced entries found - calendar is clean")
        return

    if config.dry_run:
        logger.info(f"[DRY RUN] [{room.name}] Would delete {len(handles)} synced entries")
        for handle in handles:
            logger.debug(f"[DRY RUN] Would delete: {handle}")
        stats.deleted += len(handles)
        return

    removed = 0
    for handle in handles:
        try:
            client.remove(handle)
            removed += 1
            stats.deleted += 1
            logger.debug(f"[{room.name}] Deleted synced entry: {handle}")
        except CalendarSyncError as e:
            if "not found" in str(e).lower():
                logger.debug(f"[{room.name}] Entry {handle} already gone")
                continue
            logger.error(f"[{room.name}] Failed to remove {handle}: {e}")
            stats.errors += 1

    logger.info(f"[{room.name}] Clear complete: removed {removed} synced entries")
