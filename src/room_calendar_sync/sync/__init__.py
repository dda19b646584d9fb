"""
CalendarSynchronizer: runs each configured room through fetch, mirror, reconcile and apply.
"""

import logging
import time
from typing import Callable
from typing import Optional

from room_calendar_sync.models import CalendarSyncError
from room_calendar_sync.models import RoomConfig
from room_calendar_sync.models import SyncConfig
from room_calendar_sync.models import SyncStats
from room_calendar_sync.source_api import SourceApiClient
from room_calendar_sync.sync.apply import apply_actions
from room_calendar_sync.sync.clear import perform_clear
from room_calendar_sync.sync.mirror import MirrorReader
from room_calendar_sync.sync.reconcile import Reconciler
from room_calendar_sync.sync.source import SourceFetcher
from room_calendar_sync.sync.utils import config_timezone

# Returns a connected calendar client for a room; raises CalendarSyncError.
ClientFactory = Callable[[RoomConfig], object]


class CalendarSynchronizer:
    """Main synchronization engine."""

    def __init__(
        self,
        config: SyncConfig,
        api: Optional[SourceApiClient] = None,
        client_factory: Optional[ClientFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.stats = SyncStats()
        self.api = api
        self.client_factory = client_factory
        self.clock = clock

    def _eds_client_factory(self) -> ClientFactory:
        from room_calendar_sync.eds_client import EDSCalendarClient
        from room_calendar_sync.eds_client import open_registry

        self.logger.info("Connecting to Evolution Data Server...")
        registry = open_registry()
        tz = config_timezone(self.config)

        def connect(room: RoomConfig):
            client = EDSCalendarClient(registry, room.calendar_mailbox, tz)
            client.connect(timeout=self.config.request_timeout)
            return client

        return connect

    def _source_api(self) -> SourceApiClient:
        return SourceApiClient(
            self.config.api_base_path,
            self.config.access_key,
            timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
        )

    def run(self, clear: bool = False) -> SyncStats:
        """Execute the synchronization (or clear) for every configured room.

        Raises:
            CalendarSyncError: when the calendar backend itself is unavailable
        """
        if self.client_factory is None:
            self.client_factory = self._eds_client_factory()
        if self.api is None and not clear:
            self.api = self._source_api()

        started = self.clock()
        rooms = self.config.rooms
        for index, room in enumerate(rooms):
            deadline = self.config.run_deadline
            if deadline and self.clock() - started >= deadline:
                skipped = rooms[index:]
                self.logger.error(
                    f"Run deadline of {deadline}s passed; skipping "
                    + ", ".join(r.name for r in skipped)
                )
                self.stats.rooms_failed += len(skipped)
                break

            try:
                client = self.client_factory(room)
            except CalendarSyncError as e:
                self.logger.error(f"[{room.name}] Cannot open calendar {room.calendar_mailbox}: {e}")
                self.stats.rooms_failed += 1
                continue

            try:
                if clear:
                    perform_clear(self.config, self.stats, self.logger, room, client)
                else:
                    self.sync_room(room, client)
            except CalendarSyncError as e:
                self.logger.error(f"[{room.name}] Room sync failed: {e}")
                self.stats.rooms_failed += 1

        return self.stats

    def sync_room(self, room: RoomConfig, client) -> None:
        """Bring one room calendar in line with the scheduling API."""
        self.logger.info(f"[{room.name}] Fetching meetings from the scheduling API...")
        source = SourceFetcher(self.config, self.api, self.logger).fetch(room, self.stats)

        self.logger.info(f"[{room.name}] Reading calendar entries...")
        mirror = MirrorReader(self.config, self.logger).read(room, client)

        actions = Reconciler().reconcile(source, mirror)
        self.stats.unchanged += len(source) - len(actions)
        self.logger.info(
            f"[{room.name}] {len(source)} meetings, {len(mirror)} entries, "
            f"{len(actions)} change(s)"
        )
        apply_actions(self.config, self.stats, self.logger, room, actions, client)
