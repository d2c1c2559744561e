from pydantic import BaseModel
from typing import Optional
from enum import Enum


class Confidence(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    SHAKY = "shaky"
    GOOD = "good"
    SOLID = "solid"


class MarkVerse(BaseModel):
    verse_key: str
    confidence: Confidence


class MemorizationProgress(BaseModel):
    id: str
    verse_key: str
    chapter_id: int
    verse_number: int
    confidence: Confidence = Confidence.NEW
    last_reviewed_at: Optional[int] = None
    next_review_at: Optional[int] = None
    review_count: int = 0
    ease_factor: float = 2.5
    interval_days: int = 0
    streak: int = 0
    created_at: int
    updated_at: int
    version: int = 1
    dirty: bool = True

    class Config:
        from_attributes = True
        use_enum_values = True


class ReviewLogEntry(BaseModel):
    id: str
    verse_key: str
    confidence: Confidence
    quality: int
    reviewed_at: int
    created_at: int
    updated_at: int

    class Config:
        from_attributes = True
        use_enum_values = True
