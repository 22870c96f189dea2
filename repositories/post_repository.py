"""
Post Repository Module

Durable post records. Every read decodes into a typed Post; a malformed
row raises DataIntegrityError.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional

from database import db_transaction, next_id, Post, MediaType
from events import trigger, POST_SAVED, POST_DELETED
from repositories import dedup_repository

_SELECT_POST = """
    SELECT id, content_hash, media_type, file_ext, tag_ids, uploader_id, created_at
    FROM posts
"""


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def allocate_post_id() -> int:
    return next_id('posts')


def create_post(post_id: int, content_hash: str, media_type: MediaType, file_ext: str,
                tag_ids: List[int], uploader_id: int, created_at: str = None) -> Post:
    """Write a new post record under an already allocated id."""
    post = Post(
        id=post_id,
        content_hash=content_hash,
        media_type=MediaType(media_type),
        file_ext=file_ext,
        uploader_id=uploader_id,
        created_at=created_at or _utcnow_iso(),
        tag_ids=list(dict.fromkeys(tag_ids)),
    )
    with db_transaction() as conn:
        conn.execute(
            """
            INSERT INTO posts (id, content_hash, media_type, file_ext, tag_ids, uploader_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (post.id, post.content_hash, post.media_type.value, post.file_ext,
             json.dumps(post.tag_ids), post.uploader_id, post.created_at)
        )
    trigger(POST_SAVED, post)
    return post


def get_post(post_id: int) -> Optional[Post]:
    with db_transaction() as conn:
        row = conn.execute(_SELECT_POST + " WHERE id = ?", (post_id,)).fetchone()
    return Post.from_row(row) if row else None


def get_all_posts() -> List[Post]:
    """Every post, newest first."""
    with db_transaction() as conn:
        rows = conn.execute(_SELECT_POST + " ORDER BY id DESC").fetchall()
    return [Post.from_row(row) for row in rows]


def get_posts_by_ids(post_ids: List[int]) -> List[Post]:
    """Fetch posts keeping the order of post_ids; missing ids are skipped."""
    if not post_ids:
        return []
    placeholders = ','.join('?' * len(post_ids))
    with db_transaction() as conn:
        rows = conn.execute(_SELECT_POST + f" WHERE id IN ({placeholders})", list(post_ids)).fetchall()
    by_id = {post.id: post for post in (Post.from_row(row) for row in rows)}
    return [by_id[post_id] for post_id in post_ids if post_id in by_id]


def update_post_tags(post_id: int, tag_ids: List[int]) -> Optional[Post]:
    """Replace the tag list of a post. Returns the updated post, or None if absent."""
    tag_ids = list(dict.fromkeys(tag_ids))
    with db_transaction() as conn:
        cur = conn.execute(
            "UPDATE posts SET tag_ids = ? WHERE id = ?", (json.dumps(tag_ids), post_id)
        )
        if cur.rowcount == 0:
            return None
        row = conn.execute(_SELECT_POST + " WHERE id = ?", (post_id,)).fetchone()
    post = Post.from_row(row)
    trigger(POST_SAVED, post)
    return post


def delete_post(post_id: int) -> bool:
    """Delete the post record. Files and the dedup entry are the caller's job."""
    with db_transaction() as conn:
        cur = conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        deleted = cur.rowcount > 0
    if deleted:
        trigger(POST_DELETED, post_id)
    return deleted


def delete_post_with_hash(post_id: int, content_hash: str) -> bool:
    """
    Delete the post record and release its dedup entry in one transaction.

    Either both go or neither does. Files are the caller's job.
    """
    with db_transaction() as conn:
        cur = conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        deleted = cur.rowcount > 0
        if deleted:
            dedup_repository.remove(content_hash, conn)
    if deleted:
        trigger(POST_DELETED, post_id)
    return deleted


def remove_tag_from_posts(conn, tag_id: int) -> List[int]:
    """
    Strip tag_id from every post's tag list inside the caller's transaction.

    Returns:
        Ids of the posts that were changed.
    """
    changed = []
    rows = conn.execute("SELECT id, tag_ids FROM posts").fetchall()
    for row in rows:
        tag_ids = json.loads(row['tag_ids'])
        if tag_id in tag_ids:
            tag_ids = [t for t in tag_ids if t != tag_id]
            conn.execute("UPDATE posts SET tag_ids = ? WHERE id = ?", (json.dumps(tag_ids), row['id']))
            changed.append(row['id'])
    return changed


def count_posts() -> int:
    with db_transaction() as conn:
        return conn.execute("SELECT COUNT(*) AS cnt FROM posts").fetchone()['cnt']
