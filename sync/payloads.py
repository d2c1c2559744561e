"""Conversions between local records and cloud payloads.

Local records are compared with remote ones as plain dicts shaped like the
local model, so the resolver never sees wire field names.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from models.bookmark import Bookmark
from models.cloud import (
    CloudBookmark,
    CloudMemorizationItem,
    CloudReadingProgress,
    CloudSettings,
)
from models.memorization import MemorizationProgress
from models.reading import ReadingHistoryEntry
from utils.mastery import CONFIDENCE_LEVELS
from utils.sm2 import confidence_to_quality
from utils.verses import make_verse_key

# Local setting key -> cloud settings field
SYNCED_SETTINGS = {
    "theme": "theme",
    "arabic_font_size": "arabic_font_size",
    "translation_font_size": "translation_font_size",
    "show_translation": "show_translation",
    "default_reciter": "preferred_reciter",
    "default_translation": "preferred_translation",
    "playback_speed": "playback_speed",
    "auto_play_next": "auto_play_next",
    "daily_review_goal": "daily_ayah_goal",
}

CONFIDENCE_BY_LEVEL = {0: "new", 1: "learning", 2: "good", 3: "solid"}

SYNC_METADATA = ("version", "dirty")


# Bookmarks

def bookmark_to_cloud(bookmark: Bookmark) -> CloudBookmark:
    return CloudBookmark(
        surah_id=bookmark.chapter_id,
        ayah_number=bookmark.verse_number,
        note=bookmark.note,
        color=bookmark.color,
        created_at=bookmark.created_at,
        updated_at=bookmark.updated_at,
    )


def bookmark_from_cloud(item: CloudBookmark) -> Dict[str, Any]:
    return {
        "verse_key": make_verse_key(item.surah_id, item.ayah_number),
        "chapter_id": item.surah_id,
        "verse_number": item.ayah_number,
        "note": item.note,
        "color": item.color,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


# Memorization

def memorization_to_cloud(progress: MemorizationProgress) -> CloudMemorizationItem:
    return CloudMemorizationItem(
        surah_id=progress.chapter_id,
        ayah_number=progress.verse_number,
        status=progress.confidence,
        confidence_level=confidence_to_quality(progress.confidence),
        last_reviewed_at=progress.last_reviewed_at,
        next_review_at=progress.next_review_at,
        review_count=progress.review_count,
        ease_factor=progress.ease_factor,
        interval=progress.interval_days,
        streak=progress.streak,
        created_at=progress.created_at,
        updated_at=progress.updated_at,
    )


def memorization_from_cloud(item: CloudMemorizationItem) -> Dict[str, Any]:
    if item.status in CONFIDENCE_LEVELS:
        confidence = item.status
    else:
        confidence = CONFIDENCE_BY_LEVEL.get(item.confidence_level, "new")
    return {
        "verse_key": make_verse_key(item.surah_id, item.ayah_number),
        "chapter_id": item.surah_id,
        "verse_number": item.ayah_number,
        "confidence": confidence,
        "last_reviewed_at": item.last_reviewed_at,
        "next_review_at": item.next_review_at,
        "review_count": item.review_count,
        "ease_factor": item.ease_factor,
        "interval_days": item.interval,
        "streak": item.streak,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


# Reading progress

def reading_to_cloud(entry: ReadingHistoryEntry) -> CloudReadingProgress:
    return CloudReadingProgress(
        surah_id=entry.chapter_id,
        last_ayah_read=entry.verse_number,
        total_ayahs_read=len(entry.verses_read),
        ayahs_read=list(entry.verses_read),
        reading_mode=entry.reading_mode,
        last_read_at=entry.timestamp,
        updated_at=entry.updated_at,
    )


def reading_from_cloud(item: CloudReadingProgress) -> Dict[str, Any]:
    return {
        "chapter_id": item.surah_id,
        "verse_number": item.last_ayah_read,
        "reading_mode": item.reading_mode,
        "verses_read": sorted(set(item.ayahs_read)),
        "timestamp": item.last_read_at,
        "updated_at": item.updated_at,
    }


# Settings

def settings_to_cloud(values: Dict[str, Any], updated_at: int) -> CloudSettings:
    fields = {
        cloud_field: values[key]
        for key, cloud_field in SYNCED_SETTINGS.items()
        if values.get(key) is not None
    }
    return CloudSettings(updated_at=updated_at, **fields)


def settings_from_cloud(settings: Optional[CloudSettings]) -> Optional[Dict[str, Any]]:
    if settings is None:
        return None
    data = settings.model_dump()
    values = {key: data[cloud_field] for key, cloud_field in SYNCED_SETTINGS.items()}
    values["updated_at"] = settings.updated_at
    return values
