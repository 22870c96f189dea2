# database/core.py
import sqlite3
import threading
from contextlib import contextmanager
from typing import Generator

import config
from utils.logging_config import get_logger

logger = get_logger('Database')

DB_FILE = config.DATABASE_PATH

# Entity types that own an id counter
COUNTERS = ('posts', 'tags', 'users')

# Serializes id allocation inside this process; BEGIN IMMEDIATE covers other processes
_counter_lock = threading.Lock()


def get_db_connection():
    """Create a database connection with optimized performance settings."""
    # Set timeout to 30 seconds to wait for locks instead of failing immediately
    conn = sqlite3.connect(DB_FILE, check_same_thread=False, timeout=30.0)

    # WAL mode for better concurrency
    conn.execute("PRAGMA journal_mode = WAL")

    # Faster synchronization (safe with WAL mode)
    conn.execute("PRAGMA synchronous = NORMAL")

    # Negative value means KB
    cache_size_kb = -1 * config.DB_CACHE_SIZE_MB * 1024
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")

    mmap_size_bytes = config.DB_MMAP_SIZE_MB * 1024 * 1024
    conn.execute(f"PRAGMA mmap_size = {mmap_size_bytes}")

    conn.execute("PRAGMA temp_store = MEMORY")
    conn.execute(f"PRAGMA wal_autocheckpoint = {config.DB_WAL_AUTOCHECKPOINT}")

    # Enable row factory for dict-like access
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager yielding a connection whose work is committed on success
    and rolled back on any exception. The connection is always closed.

    Usage:
        with db_transaction() as conn:
            conn.execute("UPDATE posts SET ...")
    """
    conn = get_db_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def initialize_database():
    """Create the database and tables if they don't exist."""
    with db_transaction() as conn:
        cur = conn.cursor()

        # Monotonic id counters, one row per entity type
        cur.execute("""
        CREATE TABLE IF NOT EXISTS counters (
            name TEXT PRIMARY KEY,
            value INTEGER NOT NULL
        )
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            role TEXT NOT NULL DEFAULT 'user',
            blacklist TEXT NOT NULL DEFAULT '[]',
            password_hash TEXT
        )
        """)

        # Tag names are stored normalized, so UNIQUE is case-insensitive in practice
        cur.execute("""
        CREATE TABLE IF NOT EXISTS tags (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            category TEXT NOT NULL
        )
        """)

        # tag_ids is a JSON array kept in resolution order
        cur.execute("""
        CREATE TABLE IF NOT EXISTS posts (
            id INTEGER PRIMARY KEY,
            content_hash TEXT NOT NULL,
            media_type TEXT NOT NULL,
            file_ext TEXT NOT NULL,
            tag_ids TEXT NOT NULL DEFAULT '[]',
            uploader_id INTEGER NOT NULL,
            created_at TEXT NOT NULL
        )
        """)

        # Dedup index: content digest -> post id
        cur.execute("""
        CREATE TABLE IF NOT EXISTS post_hashes (
            hash TEXT PRIMARY KEY,
            post_id INTEGER NOT NULL
        )
        """)

        cur.execute("CREATE INDEX IF NOT EXISTS idx_posts_uploader_id ON posts(uploader_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_post_hashes_post_id ON post_hashes(post_id)")

        cur.executemany(
            "INSERT OR IGNORE INTO counters (name, value) VALUES (?, 0)",
            [(name,) for name in COUNTERS]
        )

    logger.info("Database initialized successfully.")


def next_id(counter: str) -> int:
    """
    Atomically increment and return the counter for an entity type.

    Ids are strictly increasing and never handed out twice. A failed write
    after allocation just leaves a gap.
    """
    if counter not in COUNTERS:
        raise ValueError(f"Unknown counter: {counter}")

    with _counter_lock:
        conn = get_db_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute(
                "INSERT OR IGNORE INTO counters (name, value) VALUES (?, 0)",
                (counter,)
            )
            conn.execute("UPDATE counters SET value = value + 1 WHERE name = ?", (counter,))
            value = conn.execute(
                "SELECT value FROM counters WHERE name = ?", (counter,)
            ).fetchone()['value']
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    return value
