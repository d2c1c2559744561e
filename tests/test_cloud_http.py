import json

import httpx
import pytest

from errors import NetworkError, RemoteError
from models.cloud import CloudBookmark, CloudSettings
from sync.cloud import HttpCloudAdapter
from sync.payloads import settings_from_cloud, settings_to_cloud
from utils.settings import DEFAULT_VALUES


def _adapter(handler):
    return HttpCloudAdapter("https://cloud.example", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_push_bookmarks_sends_named_mutation():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"status": "success", "value": [{"action": "inserted", "surahId": 2, "ayahNumber": 255}]},
        )

    adapter = _adapter(handler)
    results = await adapter.push_bookmarks(
        "user-1",
        [CloudBookmark(surah_id=2, ayah_number=255, note="Kursi", created_at=1, updated_at=2)],
    )
    await adapter.aclose()

    assert seen["path"] == "/api/mutation"
    assert seen["body"]["path"] == "quranSync:syncBookmarks"
    assert seen["body"]["format"] == "json"
    assert seen["body"]["args"] == {
        "clerkId": "user-1",
        "bookmarks": [
            {"surahId": 2, "ayahNumber": 255, "note": "Kursi", "createdAt": 1, "updatedAt": 2}
        ],
    }
    assert results[0].action == "inserted"
    assert results[0].surah_id == 2


@pytest.mark.asyncio
async def test_fetch_snapshot_parses_camel_case_payload():
    def handler(request):
        body = json.loads(request.content)
        assert request.url.path == "/api/query"
        assert body["path"] == "quranSync:getAllUserData"
        return httpx.Response(200, json={
            "status": "success",
            "value": {
                "bookmarks": [],
                "memorization": [{
                    "surahId": 1, "ayahNumber": 1, "status": "solid", "confidenceLevel": 3,
                    "reviewCount": 4, "createdAt": 1, "updatedAt": 9,
                }],
                "readingProgress": [{
                    "surahId": 18, "lastAyahRead": 10, "totalAyahsRead": 2,
                    "ayahsRead": [1, 10], "lastReadAt": 5, "updatedAt": 5,
                }],
                "settings": {"theme": "dark", "updatedAt": 3},
            },
        })

    adapter = _adapter(handler)
    snapshot = await adapter.fetch_snapshot("user-1")
    await adapter.aclose()

    assert snapshot.memorization[0].review_count == 4
    assert snapshot.reading_progress[0].ayahs_read == [1, 10]
    assert snapshot.settings.theme == "dark"
    assert snapshot.settings.arabic_font_size == 28


@pytest.mark.asyncio
async def test_backend_error_raises_remote_error():
    def handler(request):
        return httpx.Response(200, json={"status": "error", "errorMessage": "User not found"})

    adapter = _adapter(handler)
    with pytest.raises(RemoteError, match="User not found"):
        await adapter.push_settings("user-1", CloudSettings(updated_at=1))
    await adapter.aclose()


@pytest.mark.asyncio
async def test_http_failure_status_raises_remote_error():
    adapter = _adapter(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(RemoteError):
        await adapter.delete_bookmark("user-1", 2, 255)
    await adapter.aclose()


@pytest.mark.asyncio
async def test_transport_failure_raises_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    adapter = _adapter(handler)
    with pytest.raises(NetworkError):
        await adapter.fetch_snapshot("user-1")
    await adapter.aclose()


@pytest.mark.asyncio
async def test_malformed_snapshot_is_rejected():
    def handler(request):
        return httpx.Response(200, json={"status": "success", "value": {"bookmarks": [{"surahId": "x"}]}})

    adapter = _adapter(handler)
    with pytest.raises(RemoteError):
        await adapter.fetch_snapshot("user-1")
    await adapter.aclose()


def test_base_url_is_required():
    with pytest.raises(ValueError):
        HttpCloudAdapter("")


SETTINGS_WIRE_KEYS = {
    "theme",
    "arabicFontSize",
    "translationFontSize",
    "showTranslation",
    "preferredReciter",
    "preferredTranslation",
    "playbackSpeed",
    "autoPlayNext",
    "dailyAyahGoal",
    "updatedAt",
}


@pytest.mark.asyncio
async def test_push_settings_matches_backend_validator():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "success", "value": {"action": "updated"}})

    values = dict(DEFAULT_VALUES, daily_review_goal=15, show_translation=False)
    adapter = _adapter(handler)
    result = await adapter.push_settings("user-1", settings_to_cloud(values, 42))
    await adapter.aclose()

    assert seen["body"]["path"] == "quranSync:syncSettings"
    sent = seen["body"]["args"]["settings"]
    assert set(sent) == SETTINGS_WIRE_KEYS
    assert sent["dailyAyahGoal"] == 15
    assert sent["showTranslation"] is False
    assert sent["updatedAt"] == 42
    assert result.action == "updated"


def test_settings_from_cloud_maps_daily_goal_and_translation_toggle():
    settings = CloudSettings.model_validate(
        {"theme": "dark", "showTranslation": False, "dailyAyahGoal": 20, "updatedAt": 7}
    )
    values = settings_from_cloud(settings)
    assert values["daily_review_goal"] == 20
    assert values["show_translation"] is False
    assert values["updated_at"] == 7
    assert "language" not in values
