import sqlite3
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from config import CONFIG_DIR
from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

DB_PATH = CONFIG_DIR / "noor.db"

DEFAULT_COLLECTIONS = (
    {"name": "Favorites", "color": "#ef4444", "icon": "heart"},
    {"name": "To Review", "color": "#3b82f6", "icon": "bookmark"},
)


def init_db(db_path: Optional[Path] = None):
    """Initialize the database by creating tables and indexes if they don't exist."""
    path = Path(db_path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    with get_conn(path) as conn:
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        ensure_bookmark_color(conn)
        ensure_reading_verses_read(conn)
        ensure_default_collections(conn)
        ensure_schema_version(conn)
        conn.commit()


def ensure_bookmark_color(conn: sqlite3.Connection) -> None:
    """Ensure bookmarks table has color column for existing installs."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(bookmarks)")
    columns = {row[1] for row in cursor.fetchall()}
    if "color" not in columns:
        cursor.execute("ALTER TABLE bookmarks ADD COLUMN color TEXT")


def ensure_reading_verses_read(conn: sqlite3.Connection) -> None:
    """Ensure reading_history has verses_read and seed it from the current verse."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(reading_history)")
    columns = {row[1] for row in cursor.fetchall()}
    if "verses_read" not in columns:
        cursor.execute(
            "ALTER TABLE reading_history ADD COLUMN verses_read TEXT NOT NULL DEFAULT '[]'"
        )
        cursor.execute(
            "UPDATE reading_history SET verses_read = '[' || verse_number || ']'"
        )


def ensure_default_collections(conn: sqlite3.Connection) -> None:
    """Seed the starter collections on a fresh install."""
    cursor = conn.cursor()
    cursor.execute("SELECT COUNT(*) FROM collections")
    if (cursor.fetchone() or [0])[0]:
        return
    now = int(time.time() * 1000)
    cursor.executemany(
        """
        INSERT INTO collections (id, name, color, icon, sort_order, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (str(uuid.uuid4()), item["name"], item["color"], item["icon"], index, now, now)
            for index, item in enumerate(DEFAULT_COLLECTIONS)
        ],
    )


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0


def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Set the SQLite schema version via PRAGMA user_version."""
    conn.execute(f"PRAGMA user_version = {int(version)}")


def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Ensure the current schema version is written to the database."""
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        set_schema_version(conn, SCHEMA_VERSION)


@contextmanager
def get_conn(db_path: Optional[Path] = None):
    """Context manager for SQLite connection, using row_factory for dict-like rows."""
    conn = sqlite3.connect(db_path or DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()
