from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as ModelValidationError

from db.store import BOOKMARK_ENTITY, LocalRecordStore
from errors import NoorError
from models.bookmark import Bookmark
from models.cloud import CloudSnapshot
from models.collection import Collection
from models.memorization import MemorizationProgress
from models.reading import ReadingHistoryEntry
from models.settings import SettingEntry
from models.sync import SyncState, SyncStatus
from sync.cloud import CloudAdapter
from sync.memo import InFlightMemo
from sync.payloads import (
    SYNC_METADATA,
    SYNCED_SETTINGS,
    bookmark_from_cloud,
    bookmark_to_cloud,
    memorization_from_cloud,
    memorization_to_cloud,
    reading_from_cloud,
    reading_to_cloud,
    settings_from_cloud,
    settings_to_cloud,
)
from sync.resolver import records_differ, resolve
from utils.clock import now_ms
from utils.settings import DEFAULT_VALUES
from utils.sm2 import next_review_at
from utils.verses import parse_verse_key

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 300

Connectivity = Callable[[], Union[bool, Awaitable[bool]]]
Write = Tuple[str, Any, Optional[int]]


def _format_relative(ts_ms: int, now: int) -> str:
    seconds = max(0, (now - ts_ms) // 1000)
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


class SyncCoordinator:
    """Drives push/pull cycles between the local store and the cloud adapter.

    At most one cycle runs at a time; triggers arriving while a cycle is in
    flight are dropped, not queued.
    """

    def __init__(
        self,
        store: LocalRecordStore,
        adapter: Optional[CloudAdapter] = None,
        interval_seconds: float = DEFAULT_SYNC_INTERVAL,
        connectivity: Optional[Connectivity] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.adapter = adapter
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._connectivity = connectivity
        self._online = True
        self._user_id: Optional[str] = None
        self._session_started = False
        self._in_flight = False
        self._timer: Optional[asyncio.Task] = None
        self._snapshots = InFlightMemo()
        self.state = SyncState(
            status=SyncStatus.DISABLED if adapter is None else SyncStatus.IDLE
        )

    @property
    def enabled(self) -> bool:
        return self.adapter is not None

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _set_state(self, **changes) -> None:
        self.state = self.state.model_copy(update=changes)

    def status_label(self) -> str:
        status = self.state.status
        if status == SyncStatus.SYNCING:
            return "Syncing..."
        if status == SyncStatus.SUCCESS:
            if self.state.last_synced_at:
                return f"Synced {_format_relative(self.state.last_synced_at, self.clock())}"
            return "Synced"
        if status == SyncStatus.ERROR:
            return self.state.error or "Sync failed"
        if status == SyncStatus.OFFLINE:
            return "Offline"
        if status == SyncStatus.DISABLED:
            return "Sync disabled"
        return "Sync"

    # Triggers

    async def sign_in(self, user_id: str) -> SyncState:
        """Start a session: initial sync plus the periodic timer, once per session."""
        if not user_id:
            raise ValueError("user_id is required")
        if self._session_started and user_id == self._user_id:
            return self.state
        if self._session_started:
            await self.sign_out()
        self._user_id = user_id
        self._session_started = True
        if self.enabled:
            self._start_timer()
        logger.info("Signed in as %s", user_id)
        return await self.sync_all()

    async def sign_out(self) -> None:
        await self._cancel_timer()
        self._user_id = None
        self._session_started = False
        self._snapshots.invalidate()
        if not self._in_flight:
            self._set_state(status=SyncStatus.DISABLED if not self.enabled else SyncStatus.IDLE)

    async def set_online(self, online: bool) -> SyncState:
        was_online = self._online
        self._online = online
        if not online:
            if not self._in_flight and self.enabled:
                self._set_state(status=SyncStatus.OFFLINE)
            return self.state
        if not was_online:
            logger.info("Connectivity restored, syncing")
            return await self.sync_all()
        return self.state

    async def teardown(self) -> None:
        await self._cancel_timer()
        close = getattr(self.adapter, "aclose", None)
        if close is not None:
            await close()

    def _start_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            return
        self._timer = asyncio.create_task(self._run_periodic())

    async def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        try:
            await timer
        except asyncio.CancelledError:
            pass

    async def _run_periodic(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sync_all()
            except Exception:
                logger.exception("Periodic sync crashed")

    async def _is_online(self) -> bool:
        if self._connectivity is None:
            return self._online
        result = self._connectivity()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    # Cycle

    async def sync_all(self) -> SyncState:
        if not self.enabled:
            self._set_state(status=SyncStatus.DISABLED)
            return self.state
        if self._in_flight:
            logger.debug("Sync already in flight, ignoring trigger")
            return self.state
        user_id = self._user_id
        if not user_id:
            self._set_state(status=SyncStatus.IDLE)
            return self.state

        self._in_flight = True
        try:
            if not await self._is_online():
                self._set_state(status=SyncStatus.OFFLINE)
                return self.state
            self._set_state(status=SyncStatus.SYNCING, error=None)
            pushed, sent = await self._push_all(user_id)
            snapshot = await self._snapshots.get(
                user_id, lambda: self.adapter.fetch_snapshot(user_id)
            )
            writes = await self._merge_all(snapshot)
            changed = await self.store.apply_merge(writes)
            for table, pairs in pushed.items():
                await self.store.clear_dirty(table, pairs)
            self._set_state(
                status=SyncStatus.SUCCESS,
                last_synced_at=self.clock(),
                error=None,
                items_synced=sent + changed,
            )
            logger.info("Sync complete: %d pushed, %d merged", sent, changed)
        except (NoorError, ModelValidationError) as exc:
            logger.warning("Sync failed: %s", exc)
            self._set_state(status=SyncStatus.ERROR, error=str(exc) or "Sync failed")
        except Exception as exc:
            logger.exception("Sync crashed")
            self._set_state(status=SyncStatus.ERROR, error=str(exc) or type(exc).__name__)
        finally:
            self._in_flight = False
        return self.state

    async def _push_all(self, user_id: str) -> Tuple[Dict[str, List[Tuple[str, int]]], int]:
        pushed: Dict[str, List[Tuple[str, int]]] = {}
        sent = 0

        bookmarks = await self.store.list("bookmarks", where={"dirty": True})
        if bookmarks:
            latest: Dict[str, Bookmark] = {}
            for bookmark in bookmarks:
                current = latest.get(bookmark.verse_key)
                if current is None or bookmark.updated_at > current.updated_at:
                    latest[bookmark.verse_key] = bookmark
            payload = [bookmark_to_cloud(bookmark) for bookmark in latest.values()]
            await self.adapter.push_bookmarks(user_id, payload)
            pushed["bookmarks"] = [(bookmark.id, bookmark.version) for bookmark in bookmarks]
            sent += len(payload)

        for verse_key in await self.store.list_pending_deletes(BOOKMARK_ENTITY):
            chapter_id, verse_number = parse_verse_key(verse_key)
            await self.adapter.delete_bookmark(user_id, chapter_id, verse_number)
            await self.store.remove_pending_delete(BOOKMARK_ENTITY, verse_key)
            sent += 1

        progress = await self.store.list("memorization_progress", where={"dirty": True})
        if progress:
            await self.adapter.push_memorization(
                user_id, [memorization_to_cloud(item) for item in progress]
            )
            pushed["memorization_progress"] = [(item.id, item.version) for item in progress]
            sent += len(progress)

        history = await self.store.list("reading_history", where={"dirty": True})
        if history:
            await self.adapter.push_reading_progress(
                user_id, [reading_to_cloud(entry) for entry in history]
            )
            pushed["reading_history"] = [(entry.id, entry.version) for entry in history]
            sent += len(history)

        entries = await self.store.list("settings")
        dirty_settings = [entry for entry in entries if entry.dirty and entry.key in SYNCED_SETTINGS]
        if dirty_settings:
            values = dict(DEFAULT_VALUES)
            values.update({entry.key: entry.value for entry in entries})
            updated_at = max(
                entry.updated_at for entry in entries if entry.key in SYNCED_SETTINGS
            )
            await self.adapter.push_settings(user_id, settings_to_cloud(values, updated_at))
            pushed["settings"] = [(entry.key, entry.version) for entry in dirty_settings]
            sent += 1

        return pushed, sent

    async def _merge_all(self, snapshot: CloudSnapshot) -> List[Write]:
        writes: List[Write] = []
        writes.extend(await self._merge_bookmarks(snapshot))
        writes.extend(await self._merge_memorization(snapshot))
        writes.extend(await self._merge_reading(snapshot))
        writes.extend(await self._merge_settings(snapshot))
        return writes

    async def _merge_bookmarks(self, snapshot: CloudSnapshot) -> List[Write]:
        writes: List[Write] = []
        if not snapshot.bookmarks:
            return writes
        by_verse: Dict[str, List[Bookmark]] = defaultdict(list)
        for bookmark in await self.store.list("bookmarks"):
            by_verse[bookmark.verse_key].append(bookmark)
        collections = await self.store.list("collections", order_by="sort_order")
        target: Optional[Collection] = collections[0] if collections else None
        next_sort: Optional[int] = None

        for item in snapshot.bookmarks:
            remote = bookmark_from_cloud(item)
            local_copies = by_verse.get(remote["verse_key"])
            if local_copies:
                for local in local_copies:
                    current = local.model_dump()
                    merged = resolve(
                        current, remote, preserve=("id", "collection_id", "sort_order")
                    )
                    if records_differ(merged, current, ignore=SYNC_METADATA):
                        merged.update(version=local.version + 1, dirty=False)
                        writes.append(("bookmarks", Bookmark(**merged), local.version))
                continue
            if target is None:
                now = self.clock()
                target = Collection(
                    id=str(uuid.uuid4()), name="Favorites", sort_order=0,
                    created_at=now, updated_at=now,
                )
                writes.append(("collections", target, None))
            if next_sort is None:
                existing = [
                    bookmark.sort_order
                    for copies in by_verse.values()
                    for bookmark in copies
                    if bookmark.collection_id == target.id
                ]
                next_sort = max(existing, default=-1) + 1
            bookmark = Bookmark(
                id=str(uuid.uuid4()),
                collection_id=target.id,
                sort_order=next_sort,
                version=1,
                dirty=False,
                **remote,
            )
            next_sort += 1
            by_verse[bookmark.verse_key].append(bookmark)
            writes.append(("bookmarks", bookmark, None))
        return writes

    async def _merge_memorization(self, snapshot: CloudSnapshot) -> List[Write]:
        writes: List[Write] = []
        if not snapshot.memorization:
            return writes
        local_by_verse = {
            record.verse_key: record for record in await self.store.list("memorization_progress")
        }
        scheduling = ("ease_factor", "interval_days", "streak")
        for item in snapshot.memorization:
            remote = memorization_from_cloud(item)
            local = local_by_verse.get(remote["verse_key"])
            if local is None:
                data = {key: value for key, value in remote.items()
                        if not (key in scheduling and value is None)}
                record = MemorizationProgress(id=str(uuid.uuid4()), version=1, dirty=False, **data)
                local_by_verse[record.verse_key] = record
                writes.append(("memorization_progress", record, None))
                continue
            current = local.model_dump()
            merged = resolve(current, remote, preserve=("id",) + scheduling)
            if (
                local.updated_at <= remote["updated_at"]
                and remote.get("interval_days") is None
                and merged.get("last_reviewed_at") is not None
            ):
                # Kept interval must agree with the due date
                merged["next_review_at"] = next_review_at(
                    merged["interval_days"], merged["last_reviewed_at"]
                )
            if records_differ(merged, current, ignore=SYNC_METADATA):
                merged.update(version=local.version + 1, dirty=False)
                writes.append(
                    ("memorization_progress", MemorizationProgress(**merged), local.version)
                )
        return writes

    async def _merge_reading(self, snapshot: CloudSnapshot) -> List[Write]:
        writes: List[Write] = []
        if not snapshot.reading_progress:
            return writes
        local_by_chapter = {
            entry.chapter_id: entry for entry in await self.store.list("reading_history")
        }
        for item in snapshot.reading_progress:
            remote = reading_from_cloud(item)
            local = local_by_chapter.get(remote["chapter_id"])
            if local is None:
                data = {key: value for key, value in remote.items() if value is not None}
                if not data["verses_read"]:
                    data["verses_read"] = [data["verse_number"]]
                entry = ReadingHistoryEntry(
                    id=str(uuid.uuid4()),
                    created_at=remote["timestamp"],
                    version=1,
                    dirty=False,
                    **data,
                )
                local_by_chapter[entry.chapter_id] = entry
                writes.append(("reading_history", entry, None))
                continue
            current = local.model_dump()
            merged = resolve(
                current,
                remote,
                preserve=("id", "reading_mode", "created_at"),
                union_fields=("verses_read",),
            )
            if records_differ(merged, current, ignore=SYNC_METADATA):
                merged.update(version=local.version + 1, dirty=False)
                writes.append(
                    ("reading_history", ReadingHistoryEntry(**merged), local.version)
                )
        return writes

    async def _merge_settings(self, snapshot: CloudSnapshot) -> List[Write]:
        writes: List[Write] = []
        remote = settings_from_cloud(snapshot.settings)
        if remote is None:
            return writes
        stored = {entry.key: entry for entry in await self.store.list("settings")}
        values = dict(DEFAULT_VALUES)
        values.update({key: entry.value for key, entry in stored.items()})
        local = {key: values.get(key) for key in SYNCED_SETTINGS}
        local["updated_at"] = max(
            (entry.updated_at for key, entry in stored.items() if key in SYNCED_SETTINGS),
            default=0,
        )
        merged = resolve(local, remote)
        updated_at = merged["updated_at"]
        for key in SYNCED_SETTINGS:
            value = merged.get(key)
            if value is None or value == local.get(key):
                continue
            entry = stored.get(key)
            if entry is None:
                writes.append((
                    "settings",
                    SettingEntry(
                        key=key, value=value, created_at=updated_at,
                        updated_at=updated_at, version=1, dirty=False,
                    ),
                    None,
                ))
            else:
                writes.append((
                    "settings",
                    SettingEntry(
                        key=key, value=value, created_at=entry.created_at,
                        updated_at=updated_at, version=entry.version + 1, dirty=False,
                    ),
                    entry.version,
                ))
        return writes
