from __future__ import annotations

from typing import Callable, List, Optional

from db.store import LocalRecordStore
from errors import ValidationError
from models.reading import ReadingHistoryEntry, ReadingMode
from utils.clock import now_ms
from utils.verses import make_verse_key, parse_verse_key

HISTORY = "reading_history"
READING_MODES = {mode.value for mode in ReadingMode}


class ReadingService:
    def __init__(self, store: LocalRecordStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    async def save_reading_position(
        self, chapter_id: int, verse_number: int, reading_mode: str = "translation"
    ) -> ReadingHistoryEntry:
        """Upsert the current position for a chapter; one entry per chapter."""
        parse_verse_key(make_verse_key(chapter_id, verse_number))
        mode = getattr(reading_mode, "value", reading_mode)
        if mode not in READING_MODES:
            raise ValidationError(f"Unknown reading mode: {reading_mode!r}")
        now = self.clock()
        existing = await self.store.get_by(HISTORY, chapter_id=int(chapter_id))
        if existing is None:
            entry_id = await self.store.create(
                HISTORY,
                {
                    "chapter_id": int(chapter_id),
                    "verse_number": int(verse_number),
                    "reading_mode": mode,
                    "verses_read": [int(verse_number)],
                    "timestamp": now,
                },
            )
        else:
            entry_id = existing.id
            verses_read = sorted(set(existing.verses_read) | {int(verse_number)})
            await self.store.update(
                HISTORY,
                entry_id,
                {
                    "verse_number": int(verse_number),
                    "reading_mode": mode,
                    "verses_read": verses_read,
                    "timestamp": now,
                },
            )
        return await self.store.get(HISTORY, entry_id)

    async def get_last_read(self) -> Optional[ReadingHistoryEntry]:
        entries = await self.store.list(HISTORY, order_by="timestamp", descending=True, limit=1)
        return entries[0] if entries else None

    async def get_reading_history(self, limit: int = 20) -> List[ReadingHistoryEntry]:
        return await self.store.list(HISTORY, order_by="timestamp", descending=True, limit=limit)
