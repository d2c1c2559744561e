"""Async record store over the local SQLite database.

Every public method is a coroutine; the blocking sqlite3 work runs in a worker
thread via ``asyncio.to_thread`` and opens its own connection, so each call is
one transaction.
"""
from __future__ import annotations

import asyncio
import functools
import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from errors import ConflictError, StorageError, ValidationError
from models.bookmark import Bookmark
from models.collection import Collection
from models.memorization import MemorizationProgress, ReviewLogEntry
from models.reading import ReadingHistoryEntry
from models.settings import SettingEntry
from utils.clock import now_ms

from . import database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableDef:
    name: str
    model: Type[BaseModel]
    key: str = "id"
    synced: bool = False
    has_sort: bool = False
    sort_scope: Optional[str] = None
    json_columns: Tuple[str, ...] = ()

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self.model.model_fields)


TABLES: Dict[str, TableDef] = {
    "collections": TableDef("collections", Collection, has_sort=True),
    "bookmarks": TableDef(
        "bookmarks", Bookmark, synced=True, has_sort=True, sort_scope="collection_id"
    ),
    "memorization_progress": TableDef(
        "memorization_progress", MemorizationProgress, synced=True
    ),
    "review_log": TableDef("review_log", ReviewLogEntry),
    "reading_history": TableDef(
        "reading_history", ReadingHistoryEntry, synced=True, json_columns=("verses_read",)
    ),
    "settings": TableDef(
        "settings", SettingEntry, key="key", synced=True, json_columns=("value",)
    ),
}

BOOKMARK_ENTITY = "bookmark"


def _storage_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.IntegrityError as exc:
            logger.warning("Constraint failure in %s: %s", func.__name__, exc)
            raise ConflictError(str(exc)) from exc
        except sqlite3.Error as exc:
            logger.error("Storage failure in %s: %s", func.__name__, exc)
            raise StorageError(str(exc)) from exc

    return wrapper


def _table_def(table: str) -> TableDef:
    try:
        return TABLES[table]
    except KeyError:
        raise ValidationError(f"Unknown table: {table}") from None


def _check_columns(tdef: TableDef, names: Iterable[str]) -> None:
    unknown = [name for name in names if name not in tdef.columns]
    if unknown:
        raise ValidationError(f"Unknown column(s) for {tdef.name}: {', '.join(unknown)}")


def _build_model(tdef: TableDef, data: Dict[str, Any]) -> BaseModel:
    try:
        return tdef.model(**data)
    except ModelValidationError as exc:
        raise ValidationError(str(exc)) from exc


def _to_row(tdef: TableDef, record: BaseModel) -> Dict[str, Any]:
    row = record.model_dump(mode="json")
    for column in tdef.json_columns:
        row[column] = json.dumps(row[column])
    if "dirty" in row:
        row["dirty"] = int(bool(row["dirty"]))
    return row


def _from_row(tdef: TableDef, row: sqlite3.Row) -> BaseModel:
    data = dict(row)
    for column in tdef.json_columns:
        raw = data.get(column)
        data[column] = json.loads(raw) if raw is not None else None
    return tdef.model(**data)


class LocalRecordStore:
    """The only component that touches the on-device database."""

    def __init__(self, db_path: Optional[Path] = None, clock: Callable[[], int] = now_ms):
        self.db_path = Path(db_path or database.DB_PATH)
        self.clock = clock

    def init(self) -> None:
        database.init_db(self.db_path)

    async def _run(self, func, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

    # CRUD

    async def create(self, table: str, record: Any) -> str:
        return await self._run(self._create, table, record)

    async def get(self, table: str, key: str) -> Optional[BaseModel]:
        return await self._run(self._get, table, key)

    async def get_by(self, table: str, **where: Any) -> Optional[BaseModel]:
        rows = await self._run(self._list, table, where or None, None, None, False, 1)
        return rows[0] if rows else None

    async def update(self, table: str, key: str, fields: Dict[str, Any]) -> bool:
        return await self._run(self._update, table, key, fields)

    async def delete(self, table: str, key: str) -> bool:
        return await self._run(self._delete, table, key)

    async def list(
        self,
        table: str,
        where: Optional[Dict[str, Any]] = None,
        between: Optional[Tuple[str, Optional[int], Optional[int]]] = None,
        predicate: Optional[Callable[[Any], bool]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Any]:
        if predicate is None:
            return await self._run(
                self._list, table, where, between, order_by, descending, limit
            )
        rows = await self._run(self._list, table, where, between, order_by, descending, None)
        matched = [row for row in rows if predicate(row)]
        return matched[:limit] if limit is not None else matched

    async def count(self, table: str, where: Optional[Dict[str, Any]] = None) -> int:
        return await self._run(self._count, table, where)

    # Compound operations

    async def delete_collection(self, collection_id: str) -> int:
        """Delete a collection and its bookmarks atomically; returns bookmarks removed."""
        return await self._run(self._delete_collection, collection_id)

    async def apply_merge(self, writes: Sequence[Tuple[str, BaseModel, Optional[int]]]) -> int:
        """Write merge results verbatim in a single transaction.

        Each write is ``(table, record, expected_version)``. A record with an
        expected version replaces the stored row only while the row is still
        at that version; ``None`` inserts a new row unless the key or a unique
        natural key already exists. Returns the number of rows written.
        """
        if not writes:
            return 0
        return await self._run(self._apply_merge, list(writes))

    async def clear_dirty(self, table: str, pushed: Iterable[Tuple[str, int]]) -> int:
        """Clear dirty flags for records still at the version that was pushed."""
        pairs = list(pushed)
        if not pairs:
            return 0
        return await self._run(self._clear_dirty, table, pairs)

    async def add_pending_delete(self, entity: str, natural_key: str) -> None:
        await self._run(self._add_pending_delete, entity, natural_key)

    async def list_pending_deletes(self, entity: str) -> List[str]:
        return await self._run(self._list_pending_deletes, entity)

    async def remove_pending_delete(self, entity: str, natural_key: str) -> None:
        await self._run(self._remove_pending_delete, entity, natural_key)

    # Blocking implementations

    @_storage_errors
    def _create(self, table: str, record: Any) -> str:
        tdef = _table_def(table)
        data = record.model_dump() if isinstance(record, BaseModel) else dict(record)
        now = self.clock()
        if tdef.key == "id":
            data.setdefault("id", str(uuid.uuid4()))
        data.setdefault("created_at", now)
        data.setdefault("updated_at", now)
        if tdef.synced:
            data.setdefault("version", 1)
            data.setdefault("dirty", True)
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            if tdef.has_sort and data.get("sort_order") is None:
                data["sort_order"] = self._next_sort_order(cursor, tdef, data)
            model = _build_model(tdef, data)
            row = _to_row(tdef, model)
            columns = ", ".join(row)
            placeholders = ", ".join("?" for _ in row)
            cursor.execute(
                f"INSERT INTO {tdef.name} ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )
            if tdef.name == "bookmarks":
                cursor.execute(
                    "DELETE FROM pending_deletes WHERE entity = ? AND natural_key = ?",
                    (BOOKMARK_ENTITY, row["verse_key"]),
                )
            conn.commit()
        return str(row[tdef.key])

    def _next_sort_order(self, cursor: sqlite3.Cursor, tdef: TableDef, data: Dict[str, Any]) -> int:
        if tdef.sort_scope:
            cursor.execute(
                f"SELECT MAX(sort_order) FROM {tdef.name} WHERE {tdef.sort_scope} = ?",
                (data.get(tdef.sort_scope),),
            )
        else:
            cursor.execute(f"SELECT MAX(sort_order) FROM {tdef.name}")
        current = cursor.fetchone()[0]
        return 0 if current is None else int(current) + 1

    @_storage_errors
    def _get(self, table: str, key: str) -> Optional[BaseModel]:
        tdef = _table_def(table)
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {tdef.name} WHERE {tdef.key} = ?", (key,))
            row = cursor.fetchone()
        return _from_row(tdef, row) if row else None

    @_storage_errors
    def _update(self, table: str, key: str, fields: Dict[str, Any]) -> bool:
        tdef = _table_def(table)
        _check_columns(tdef, fields)
        if tdef.key in fields and fields[tdef.key] != key:
            raise ValidationError(f"Cannot change {tdef.key} of a {tdef.name} record")
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {tdef.name} WHERE {tdef.key} = ?", (key,))
            existing = cursor.fetchone()
            if not existing:
                return False
            current = _from_row(tdef, existing)
            data = {**current.model_dump(), **fields}
            data["updated_at"] = self.clock()
            if tdef.synced:
                data["version"] = current.version + 1
                data["dirty"] = True
            moved = (
                tdef.sort_scope is not None
                and "sort_order" not in fields
                and data.get(tdef.sort_scope) != getattr(current, tdef.sort_scope)
            )
            if moved:
                # Moving to another scope appends at the end of the new scope
                data["sort_order"] = self._next_sort_order(cursor, tdef, data)
            row = _to_row(tdef, _build_model(tdef, data))
            assignments = ", ".join(f"{column} = ?" for column in row if column != tdef.key)
            values = [value for column, value in row.items() if column != tdef.key]
            cursor.execute(
                f"UPDATE {tdef.name} SET {assignments} WHERE {tdef.key} = ?",
                (*values, key),
            )
            conn.commit()
        return True

    @_storage_errors
    def _delete(self, table: str, key: str) -> bool:
        tdef = _table_def(table)
        if tdef.name == "collections":
            with database.get_conn(self.db_path) as conn:
                cursor = conn.cursor()
                deleted, _ = self._cascade_collection(cursor, key)
                conn.commit()
            return deleted
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            verse_keys: List[str] = []
            if tdef.name == "bookmarks":
                cursor.execute("SELECT verse_key FROM bookmarks WHERE id = ?", (key,))
                verse_keys = [row[0] for row in cursor.fetchall()]
            cursor.execute(f"DELETE FROM {tdef.name} WHERE {tdef.key} = ?", (key,))
            deleted = cursor.rowcount > 0
            if verse_keys:
                self._tombstone_orphans(cursor, verse_keys)
            conn.commit()
        return deleted

    @_storage_errors
    def _list(
        self,
        table: str,
        where: Optional[Dict[str, Any]],
        between: Optional[Tuple[str, Optional[int], Optional[int]]],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> List[BaseModel]:
        tdef = _table_def(table)
        clauses: List[str] = []
        params: List[Any] = []
        if where:
            _check_columns(tdef, where)
            for column, value in where.items():
                if value is None:
                    clauses.append(f"{column} IS NULL")
                else:
                    clauses.append(f"{column} = ?")
                    params.append(int(value) if isinstance(value, bool) else value)
        if between:
            column, low, high = between
            _check_columns(tdef, [column])
            if low is not None:
                clauses.append(f"{column} >= ?")
                params.append(low)
            if high is not None:
                clauses.append(f"{column} <= ?")
                params.append(high)
        sql = f"SELECT * FROM {tdef.name}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        if order_by:
            _check_columns(tdef, [order_by])
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}, {tdef.key} ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            rows = cursor.fetchall()
        return [_from_row(tdef, row) for row in rows]

    @_storage_errors
    def _count(self, table: str, where: Optional[Dict[str, Any]]) -> int:
        tdef = _table_def(table)
        sql = f"SELECT COUNT(*) FROM {tdef.name}"
        params: List[Any] = []
        if where:
            _check_columns(tdef, where)
            sql += " WHERE " + " AND ".join(f"{column} = ?" for column in where)
            params.extend(where.values())
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            return int(cursor.fetchone()[0] or 0)

    @_storage_errors
    def _delete_collection(self, collection_id: str) -> int:
        with database.get_conn(self.db_path) as conn:
            _, removed = self._cascade_collection(conn.cursor(), collection_id)
            conn.commit()
        return removed

    def _cascade_collection(self, cursor: sqlite3.Cursor, collection_id: str) -> Tuple[bool, int]:
        """Remove a collection with its bookmarks; returns (collection deleted, bookmarks removed)."""
        cursor.execute(
            "SELECT DISTINCT verse_key FROM bookmarks WHERE collection_id = ?",
            (collection_id,),
        )
        verse_keys = [row[0] for row in cursor.fetchall()]
        cursor.execute("DELETE FROM bookmarks WHERE collection_id = ?", (collection_id,))
        removed = cursor.rowcount
        cursor.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
        deleted = cursor.rowcount > 0
        self._tombstone_orphans(cursor, verse_keys)
        logger.info("Deleted collection %s with %d bookmark(s)", collection_id, removed)
        return deleted, removed

    def _tombstone_orphans(self, cursor: sqlite3.Cursor, verse_keys: Iterable[str]) -> None:
        for verse_key in sorted(set(verse_keys)):
            cursor.execute("SELECT COUNT(*) FROM bookmarks WHERE verse_key = ?", (verse_key,))
            if cursor.fetchone()[0]:
                continue
            self._insert_pending_delete(cursor, BOOKMARK_ENTITY, verse_key)

    def _insert_pending_delete(self, cursor: sqlite3.Cursor, entity: str, natural_key: str) -> None:
        cursor.execute(
            """
            INSERT OR REPLACE INTO pending_deletes (entity, natural_key, deleted_at)
            VALUES (?, ?, ?)
            """,
            (entity, natural_key, self.clock()),
        )

    @_storage_errors
    def _add_pending_delete(self, entity: str, natural_key: str) -> None:
        with database.get_conn(self.db_path) as conn:
            self._insert_pending_delete(conn.cursor(), entity, natural_key)
            conn.commit()

    @_storage_errors
    def _apply_merge(self, writes: List[Tuple[str, BaseModel, Optional[int]]]) -> int:
        written = 0
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            for table, record, expected_version in writes:
                tdef = _table_def(table)
                row = _to_row(tdef, record)
                if expected_version is None:
                    columns = ", ".join(row)
                    placeholders = ", ".join("?" for _ in row)
                    cursor.execute(
                        f"INSERT OR IGNORE INTO {tdef.name} ({columns}) VALUES ({placeholders})",
                        tuple(row.values()),
                    )
                else:
                    assignments = ", ".join(f"{column} = ?" for column in row if column != tdef.key)
                    values = [value for column, value in row.items() if column != tdef.key]
                    cursor.execute(
                        f"UPDATE {tdef.name} SET {assignments} WHERE {tdef.key} = ? AND version = ?",
                        (*values, row[tdef.key], expected_version),
                    )
                written += cursor.rowcount
            conn.commit()
        return written

    @_storage_errors
    def _clear_dirty(self, table: str, pairs: List[Tuple[str, int]]) -> int:
        tdef = _table_def(table)
        if not tdef.synced:
            return 0
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            cleared = 0
            for key, version in pairs:
                cursor.execute(
                    f"UPDATE {tdef.name} SET dirty = 0 WHERE {tdef.key} = ? AND version = ?",
                    (key, version),
                )
                cleared += cursor.rowcount
            conn.commit()
        return cleared

    @_storage_errors
    def _list_pending_deletes(self, entity: str) -> List[str]:
        with database.get_conn(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT natural_key FROM pending_deletes WHERE entity = ? ORDER BY deleted_at, natural_key",
                (entity,),
            )
            return [row[0] for row in cursor.fetchall()]

    @_storage_errors
    def _remove_pending_delete(self, entity: str, natural_key: str) -> None:
        with database.get_conn(self.db_path) as conn:
            conn.execute(
                "DELETE FROM pending_deletes WHERE entity = ? AND natural_key = ?",
                (entity, natural_key),
            )
            conn.commit()
