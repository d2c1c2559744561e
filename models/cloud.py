"""Payload shapes exchanged with the cloud backend.

Field names on the wire are camelCase; the Python attributes stay snake_case.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional


class CloudModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class CloudBookmark(CloudModel):
    surah_id: int
    ayah_number: int
    note: Optional[str] = None
    color: Optional[str] = None
    created_at: int
    updated_at: int


class CloudMemorizationItem(CloudModel):
    surah_id: int
    ayah_number: int
    status: str
    confidence_level: int
    last_reviewed_at: Optional[int] = None
    next_review_at: Optional[int] = None
    review_count: int = 0
    ease_factor: Optional[float] = None
    interval: Optional[int] = None
    streak: Optional[int] = None
    created_at: int
    updated_at: int


class CloudReadingProgress(CloudModel):
    surah_id: int
    last_ayah_read: int
    total_ayahs_read: int = 0
    ayahs_read: List[int] = Field(default_factory=list)
    reading_mode: Optional[str] = None
    last_read_at: int
    updated_at: int


class CloudSettings(CloudModel):
    theme: str = "system"
    arabic_font_size: int = 28
    translation_font_size: int = 16
    show_translation: bool = True
    preferred_reciter: str = "Alafasy_128kbps"
    preferred_translation: str = "en.sahih"
    playback_speed: float = 1.0
    auto_play_next: bool = True
    daily_ayah_goal: int = 10
    updated_at: int


class CloudSnapshot(CloudModel):
    bookmarks: List[CloudBookmark] = Field(default_factory=list)
    memorization: List[CloudMemorizationItem] = Field(default_factory=list)
    reading_progress: List[CloudReadingProgress] = Field(default_factory=list)
    settings: Optional[CloudSettings] = None


class PushResult(CloudModel):
    action: Literal["inserted", "updated", "skipped", "deleted"] = "skipped"
    surah_id: Optional[int] = None
    ayah_number: Optional[int] = None
