from __future__ import annotations

from typing import Any, Dict, Optional

from db.store import LocalRecordStore
from errors import ValidationError

SETTINGS = "settings"

DEFAULT_VALUES: Dict[str, Any] = {
    "theme": "system",
    "arabic_font_size": 28,
    "translation_font_size": 16,
    "show_translation": True,
    "default_translation": "en.sahih",
    "default_reciter": "Alafasy_128kbps",
    "playback_speed": 1.0,
    "auto_play_next": True,
    "daily_review_goal": 10,
    "language": "en",
    "content_width": "100",
}


class SettingsService:
    def __init__(self, store: LocalRecordStore):
        self.store = store

    async def get_setting(self, key: str, default: Optional[Any] = None) -> Any:
        entry = await self.store.get(SETTINGS, key)
        if entry is not None:
            return entry.value
        if default is not None:
            return default
        return DEFAULT_VALUES.get(key)

    async def set_setting(self, key: str, value: Any) -> None:
        if not key or not key.strip():
            raise ValidationError("Setting key is required")
        if not isinstance(value, (bool, int, float, str)):
            raise ValidationError(f"Unsupported value for setting {key!r}")
        if not await self.store.update(SETTINGS, key, {"value": value}):
            await self.store.create(SETTINGS, {"key": key, "value": value})

    async def get_all_settings(self) -> Dict[str, Any]:
        result = dict(DEFAULT_VALUES)
        for entry in await self.store.list(SETTINGS):
            result[entry.key] = entry.value
        return result

    async def get_updated_at(self) -> int:
        entries = await self.store.list(SETTINGS)
        return max((entry.updated_at for entry in entries), default=0)
