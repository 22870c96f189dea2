"""
Dedup Index Repository

Maps a content digest to the post that owns it. The pipeline looks a digest
up before processing and inserts it only after the post record exists.
"""

import sqlite3
from typing import Optional

from core.errors import DuplicateContentError
from database import db_transaction


def lookup(digest: str) -> Optional[int]:
    """Return the post id that owns digest, or None."""
    with db_transaction() as conn:
        row = conn.execute(
            "SELECT post_id FROM post_hashes WHERE hash = ?", (digest,)
        ).fetchone()
    return row['post_id'] if row else None


def insert(digest: str, post_id: int) -> None:
    """
    Claim digest for post_id.

    This is a compare-and-set: when another post already owns the digest
    the existing entry is kept and DuplicateContentError is raised.
    """
    try:
        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO post_hashes (hash, post_id) VALUES (?, ?)",
                (digest, post_id)
            )
    except sqlite3.IntegrityError:
        raise DuplicateContentError(existing_post_id=lookup(digest))


def remove(digest: str, conn=None) -> bool:
    """
    Drop the entry for digest. Returns True if one existed.

    With conn the delete joins the caller's transaction.
    """
    if conn is not None:
        return conn.execute("DELETE FROM post_hashes WHERE hash = ?", (digest,)).rowcount > 0
    with db_transaction() as conn:
        return remove(digest, conn)


def count() -> int:
    with db_transaction() as conn:
        return conn.execute("SELECT COUNT(*) AS cnt FROM post_hashes").fetchone()['cnt']
