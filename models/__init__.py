from .collection import Collection, CollectionCreate, CollectionUpdate
from .bookmark import Bookmark, BookmarkCreate, BookmarkUpdate
from .memorization import Confidence, MarkVerse, MemorizationProgress, ReviewLogEntry
from .reading import ReadingMode, ReadingPosition, ReadingHistoryEntry
from .settings import SettingEntry, SettingUpdate
from .sync import SyncState, SyncStatus

__all__ = [
    'Collection', 'CollectionCreate', 'CollectionUpdate',
    'Bookmark', 'BookmarkCreate', 'BookmarkUpdate',
    'Confidence', 'MarkVerse', 'MemorizationProgress', 'ReviewLogEntry',
    'ReadingMode', 'ReadingPosition', 'ReadingHistoryEntry',
    'SettingEntry', 'SettingUpdate',
    'SyncState', 'SyncStatus',
]
