from __future__ import annotations

import re
from typing import Tuple

from errors import ValidationError

CHAPTER_COUNT = 114
TOTAL_VERSES = 6236

_VERSE_KEY_RE = re.compile(r"^\s*(\d{1,3})\s*:\s*(\d{1,3})\s*$")


def parse_verse_key(verse_key: str) -> Tuple[int, int]:
    """Split a "chapter:verse" key into integers, rejecting malformed keys."""
    if not verse_key or not isinstance(verse_key, str):
        raise ValidationError("verse_key is required")
    match = _VERSE_KEY_RE.match(verse_key)
    if not match:
        raise ValidationError(f"Invalid verse key: {verse_key!r}")
    chapter_id, verse_number = int(match.group(1)), int(match.group(2))
    if not 1 <= chapter_id <= CHAPTER_COUNT:
        raise ValidationError(f"Chapter out of range: {chapter_id}")
    if verse_number < 1:
        raise ValidationError(f"Verse number out of range: {verse_number}")
    return chapter_id, verse_number


def make_verse_key(chapter_id: int, verse_number: int) -> str:
    return f"{int(chapter_id)}:{int(verse_number)}"


def normalize_verse_key(verse_key: str) -> str:
    chapter_id, verse_number = parse_verse_key(verse_key)
    return make_verse_key(chapter_id, verse_number)
