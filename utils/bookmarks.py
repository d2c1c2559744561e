from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from db.store import LocalRecordStore
from errors import ValidationError
from models.bookmark import Bookmark
from models.collection import Collection
from utils.verses import make_verse_key, parse_verse_key

logger = logging.getLogger(__name__)

COLLECTIONS = "collections"
BOOKMARKS = "bookmarks"


class BookmarkService:
    def __init__(self, store: LocalRecordStore):
        self.store = store

    # Collections

    async def create_collection(
        self,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> str:
        if not name or not name.strip():
            raise ValidationError("Collection name is required")
        return await self.store.create(
            COLLECTIONS,
            {"name": name.strip(), "description": description, "color": color, "icon": icon},
        )

    async def get_collections(self) -> List[Collection]:
        return await self.store.list(COLLECTIONS, order_by="sort_order")

    async def get_collection(self, collection_id: str) -> Optional[Collection]:
        return await self.store.get(COLLECTIONS, collection_id)

    async def update_collection(self, collection_id: str, fields: Dict[str, Any]) -> bool:
        allowed = {key: value for key, value in fields.items() if key in {"name", "description", "color", "icon"}}
        if "name" in allowed and not (allowed["name"] or "").strip():
            raise ValidationError("Collection name is required")
        return await self.store.update(COLLECTIONS, collection_id, allowed)

    async def delete_collection(self, collection_id: str) -> int:
        return await self.store.delete_collection(collection_id)

    async def reorder_collections(self, ordered_ids: List[str]) -> None:
        for index, collection_id in enumerate(ordered_ids):
            await self.store.update(COLLECTIONS, collection_id, {"sort_order": index})

    # Bookmarks

    async def add_bookmark(
        self,
        collection_id: str,
        verse_key: str,
        note: Optional[str] = None,
        color: Optional[str] = None,
    ) -> str:
        chapter_id, verse_number = parse_verse_key(verse_key)
        if not collection_id:
            raise ValidationError("collection_id is required")
        if await self.store.get(COLLECTIONS, collection_id) is None:
            raise ValidationError(f"Collection not found: {collection_id}")
        bookmark_id = await self.store.create(
            BOOKMARKS,
            {
                "collection_id": collection_id,
                "verse_key": make_verse_key(chapter_id, verse_number),
                "chapter_id": chapter_id,
                "verse_number": verse_number,
                "note": note,
                "color": color,
            },
        )
        logger.debug("Bookmarked %s into %s", verse_key, collection_id)
        return bookmark_id

    async def get_bookmarks_by_collection(self, collection_id: str) -> List[Bookmark]:
        return await self.store.list(
            BOOKMARKS, where={"collection_id": collection_id}, order_by="sort_order"
        )

    async def get_bookmark_by_verse(self, verse_key: str) -> Optional[Bookmark]:
        chapter_id, verse_number = parse_verse_key(verse_key)
        return await self.store.get_by(BOOKMARKS, verse_key=make_verse_key(chapter_id, verse_number))

    async def get_bookmark_collections(self, verse_key: str) -> List[str]:
        chapter_id, verse_number = parse_verse_key(verse_key)
        bookmarks = await self.store.list(
            BOOKMARKS, where={"verse_key": make_verse_key(chapter_id, verse_number)}
        )
        return [bookmark.collection_id for bookmark in bookmarks]

    async def is_verse_bookmarked(self, verse_key: str) -> bool:
        chapter_id, verse_number = parse_verse_key(verse_key)
        count = await self.store.count(
            BOOKMARKS, where={"verse_key": make_verse_key(chapter_id, verse_number)}
        )
        return count > 0

    async def update_bookmark(self, bookmark_id: str, fields: Dict[str, Any]) -> bool:
        allowed = {key: value for key, value in fields.items() if key in {"note", "color", "collection_id"}}
        if allowed.get("collection_id") is not None:
            if await self.store.get(COLLECTIONS, allowed["collection_id"]) is None:
                raise ValidationError(f"Collection not found: {allowed['collection_id']}")
        elif "collection_id" in allowed:
            allowed.pop("collection_id")
        return await self.store.update(BOOKMARKS, bookmark_id, allowed)

    async def remove_bookmark(self, bookmark_id: str) -> bool:
        return await self.store.delete(BOOKMARKS, bookmark_id)

    async def reorder_bookmarks(self, collection_id: str, ordered_ids: List[str]) -> None:
        for index, bookmark_id in enumerate(ordered_ids):
            bookmark = await self.store.get(BOOKMARKS, bookmark_id)
            if bookmark is None or bookmark.collection_id != collection_id:
                continue
            await self.store.update(BOOKMARKS, bookmark_id, {"sort_order": index})
