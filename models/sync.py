from pydantic import BaseModel
from typing import Optional
from enum import Enum


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"
    OFFLINE = "offline"
    DISABLED = "disabled"


class SyncState(BaseModel):
    status: SyncStatus = SyncStatus.IDLE
    last_synced_at: Optional[int] = None
    error: Optional[str] = None
    items_synced: int = 0
