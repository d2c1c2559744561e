from pydantic import BaseModel, model_validator
from typing import Optional

from utils.verses import parse_verse_key


class BookmarkBase(BaseModel):
    collection_id: str
    verse_key: str
    note: Optional[str] = None
    color: Optional[str] = None


class BookmarkCreate(BookmarkBase):
    pass


class BookmarkUpdate(BaseModel):
    note: Optional[str] = None
    color: Optional[str] = None
    collection_id: Optional[str] = None


class Bookmark(BookmarkBase):
    id: str
    chapter_id: int
    verse_number: int
    sort_order: int = 0
    created_at: int
    updated_at: int
    version: int = 1
    dirty: bool = True

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def check_verse_key(self):
        if parse_verse_key(self.verse_key) != (self.chapter_id, self.verse_number):
            raise ValueError(
                f"verse_key {self.verse_key} does not match {self.chapter_id}:{self.verse_number}"
            )
        return self
