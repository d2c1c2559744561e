# SQL schema for the Noor local record store

SCHEMA_VERSION = 3

SCHEMA_SQL = """
-- Collections (local only, ordered manually)
CREATE TABLE IF NOT EXISTS collections (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    color TEXT,
    icon TEXT,
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

-- Bookmarks (same verse may appear in several collections)
CREATE TABLE IF NOT EXISTS bookmarks (
    id TEXT PRIMARY KEY,
    collection_id TEXT NOT NULL,
    verse_key TEXT NOT NULL,
    chapter_id INTEGER NOT NULL,
    verse_number INTEGER NOT NULL,
    note TEXT,
    color TEXT,
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    dirty INTEGER NOT NULL DEFAULT 1,
    FOREIGN KEY (collection_id) REFERENCES collections (id) ON DELETE CASCADE
);

-- Memorization progress (SM-2 fields, one row per verse)
CREATE TABLE IF NOT EXISTS memorization_progress (
    id TEXT PRIMARY KEY,
    verse_key TEXT UNIQUE NOT NULL,
    chapter_id INTEGER NOT NULL,
    verse_number INTEGER NOT NULL,
    confidence TEXT NOT NULL DEFAULT 'new' CHECK(confidence IN ('new', 'learning', 'shaky', 'good', 'solid')),
    last_reviewed_at INTEGER,
    next_review_at INTEGER,
    review_count INTEGER NOT NULL DEFAULT 0,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval_days INTEGER NOT NULL DEFAULT 0,
    streak INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    dirty INTEGER NOT NULL DEFAULT 1
);

-- Review log (local only)
CREATE TABLE IF NOT EXISTS review_log (
    id TEXT PRIMARY KEY,
    verse_key TEXT NOT NULL,
    confidence TEXT NOT NULL CHECK(confidence IN ('new', 'learning', 'shaky', 'good', 'solid')),
    quality INTEGER NOT NULL,
    reviewed_at INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

-- Reading position, one current entry per chapter
CREATE TABLE IF NOT EXISTS reading_history (
    id TEXT PRIMARY KEY,
    chapter_id INTEGER UNIQUE NOT NULL,
    verse_number INTEGER NOT NULL,
    reading_mode TEXT NOT NULL DEFAULT 'translation' CHECK(reading_mode IN ('translation', 'mushaf', 'word-by-word', 'tafsir')),
    verses_read TEXT NOT NULL DEFAULT '[]',
    timestamp INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    dirty INTEGER NOT NULL DEFAULT 1
);

-- User preferences (JSON encoded values)
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    dirty INTEGER NOT NULL DEFAULT 1
);

-- Deletions waiting to be pushed to the cloud
CREATE TABLE IF NOT EXISTS pending_deletes (
    entity TEXT NOT NULL,
    natural_key TEXT NOT NULL,
    deleted_at INTEGER NOT NULL,
    PRIMARY KEY (entity, natural_key)
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_collections_sort ON collections (sort_order);
CREATE INDEX IF NOT EXISTS idx_bookmarks_verse ON bookmarks (verse_key);
CREATE INDEX IF NOT EXISTS idx_bookmarks_collection_sort ON bookmarks (collection_id, sort_order);
CREATE INDEX IF NOT EXISTS idx_bookmarks_dirty ON bookmarks (dirty);
CREATE INDEX IF NOT EXISTS idx_memorization_next_review ON memorization_progress (next_review_at);
CREATE INDEX IF NOT EXISTS idx_memorization_chapter ON memorization_progress (chapter_id, verse_number);
CREATE INDEX IF NOT EXISTS idx_memorization_dirty ON memorization_progress (dirty);
CREATE INDEX IF NOT EXISTS idx_review_log_ts ON review_log (reviewed_at);
CREATE INDEX IF NOT EXISTS idx_review_log_verse ON review_log (verse_key);
CREATE INDEX IF NOT EXISTS idx_reading_history_ts ON reading_history (timestamp);
"""
