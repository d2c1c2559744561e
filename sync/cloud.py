"""Cloud adapter interface and its HTTP implementation.

The backend exposes named mutations and queries over a JSON RPC endpoint:
``POST {base}/api/mutation`` or ``/api/query`` with
``{"path": "quranSync:<name>", "args": {...}, "format": "json"}``, answered by
``{"status": "success", "value": ...}`` or
``{"status": "error", "errorMessage": "..."}``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError as ModelValidationError

from errors import NetworkError, RemoteError
from models.cloud import (
    CloudBookmark,
    CloudMemorizationItem,
    CloudReadingProgress,
    CloudSettings,
    CloudSnapshot,
    PushResult,
)

logger = logging.getLogger(__name__)

SYNC_BOOKMARKS = "quranSync:syncBookmarks"
SYNC_MEMORIZATION = "quranSync:syncMemorization"
SYNC_READING_PROGRESS = "quranSync:syncReadingProgress"
SYNC_SETTINGS = "quranSync:syncSettings"
DELETE_BOOKMARK = "quranSync:deleteBookmark"
GET_ALL_USER_DATA = "quranSync:getAllUserData"


class CloudAdapter(Protocol):
    async def push_bookmarks(self, user_id: str, bookmarks: List[CloudBookmark]) -> List[PushResult]:
        ...

    async def push_memorization(
        self, user_id: str, items: List[CloudMemorizationItem]
    ) -> List[PushResult]:
        ...

    async def push_reading_progress(
        self, user_id: str, progress: List[CloudReadingProgress]
    ) -> List[PushResult]:
        ...

    async def push_settings(self, user_id: str, settings: CloudSettings) -> PushResult:
        ...

    async def delete_bookmark(self, user_id: str, surah_id: int, ayah_number: int) -> bool:
        ...

    async def fetch_snapshot(self, user_id: str) -> CloudSnapshot:
        ...


def _push_results(value: Any) -> List[PushResult]:
    if not isinstance(value, list):
        return []
    results = []
    for item in value:
        try:
            results.append(PushResult.model_validate(item))
        except ModelValidationError:
            logger.debug("Ignoring unrecognised push result: %r", item)
    return results


class HttpCloudAdapter:
    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, kind: str, path: str, args: Dict[str, Any]) -> Any:
        body = {"path": path, "args": args, "format": "json"}
        try:
            response = await self._client.post(f"/api/{kind}", json=body)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{path} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            message = payload.get("errorMessage") if isinstance(payload, dict) else None
            raise RemoteError(message or f"{path} failed with HTTP {response.status_code}")
        if not isinstance(payload, dict):
            raise RemoteError(f"{path} returned a malformed response")
        if payload.get("status") != "success":
            raise RemoteError(payload.get("errorMessage") or f"{path} failed")
        return payload.get("value")

    async def push_bookmarks(self, user_id: str, bookmarks: List[CloudBookmark]) -> List[PushResult]:
        value = await self._call(
            "mutation",
            SYNC_BOOKMARKS,
            {"clerkId": user_id, "bookmarks": [item.to_wire() for item in bookmarks]},
        )
        return _push_results(value)

    async def push_memorization(
        self, user_id: str, items: List[CloudMemorizationItem]
    ) -> List[PushResult]:
        value = await self._call(
            "mutation",
            SYNC_MEMORIZATION,
            {"clerkId": user_id, "items": [item.to_wire() for item in items]},
        )
        return _push_results(value)

    async def push_reading_progress(
        self, user_id: str, progress: List[CloudReadingProgress]
    ) -> List[PushResult]:
        value = await self._call(
            "mutation",
            SYNC_READING_PROGRESS,
            {"clerkId": user_id, "progress": [item.to_wire() for item in progress]},
        )
        return _push_results(value)

    async def push_settings(self, user_id: str, settings: CloudSettings) -> PushResult:
        value = await self._call(
            "mutation", SYNC_SETTINGS, {"clerkId": user_id, "settings": settings.to_wire()}
        )
        results = _push_results([value])
        return results[0] if results else PushResult()

    async def delete_bookmark(self, user_id: str, surah_id: int, ayah_number: int) -> bool:
        value = await self._call(
            "mutation",
            DELETE_BOOKMARK,
            {"clerkId": user_id, "surahId": surah_id, "ayahNumber": ayah_number},
        )
        return bool(isinstance(value, dict) and value.get("success"))

    async def fetch_snapshot(self, user_id: str) -> CloudSnapshot:
        value = await self._call("query", GET_ALL_USER_DATA, {"clerkId": user_id})
        try:
            return CloudSnapshot.model_validate(value or {})
        except ModelValidationError as exc:
            raise RemoteError(f"Malformed snapshot: {exc}") from exc
