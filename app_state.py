import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request

from db.store import LocalRecordStore
from sync.cloud import HttpCloudAdapter
from sync.coordinator import SyncCoordinator
from utils.bookmarks import BookmarkService
from utils.progress import MemorizationService
from utils.reading import ReadingService
from utils.settings import SettingsService

logger = logging.getLogger(__name__)


class AppState:
    """Wires the store, services and sync coordinator for one running app."""

    def __init__(self, config: Dict[str, Any], db_path: Optional[Path] = None, adapter=None):
        sync_cfg = config.get("sync", {})
        self.config = config
        self.store = LocalRecordStore(db_path)
        self.memorization = MemorizationService(self.store)
        self.bookmarks = BookmarkService(self.store)
        self.reading = ReadingService(self.store)
        self.settings = SettingsService(self.store)
        if adapter is None and sync_cfg.get("cloud_url"):
            adapter = HttpCloudAdapter(
                sync_cfg["cloud_url"], timeout=sync_cfg.get("timeout_seconds", 15.0)
            )
        self.sync = SyncCoordinator(
            self.store,
            adapter,
            interval_seconds=sync_cfg.get("interval_seconds", 300),
        )

    async def init(self) -> None:
        self.store.init()
        user_id = self.config.get("sync", {}).get("user_id")
        if user_id and self.sync.enabled:
            await self.sync.sign_in(user_id)
        elif not self.sync.enabled:
            logger.info("Cloud sync disabled: no cloud_url configured")

    async def teardown(self) -> None:
        await self.sync.teardown()


def get_app_state(request: Request) -> AppState:
    return request.app.state.noor
