from pydantic import BaseModel, Field
from typing import List
from enum import Enum


class ReadingMode(str, Enum):
    TRANSLATION = "translation"
    MUSHAF = "mushaf"
    WORD_BY_WORD = "word-by-word"
    TAFSIR = "tafsir"


class ReadingPosition(BaseModel):
    chapter_id: int
    verse_number: int
    reading_mode: ReadingMode = ReadingMode.TRANSLATION


class ReadingHistoryEntry(BaseModel):
    id: str
    chapter_id: int
    verse_number: int
    reading_mode: ReadingMode = ReadingMode.TRANSLATION
    verses_read: List[int] = Field(default_factory=list)
    timestamp: int
    created_at: int
    updated_at: int
    version: int = 1
    dirty: bool = True

    class Config:
        from_attributes = True
        use_enum_values = True
