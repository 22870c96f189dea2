"""
Tag Repository Module

The tag catalog: a case-insensitive name -> id registry with get-or-create
semantics, shared by ingestion, post editing and search.

Names are normalized before every write and every lookup, so "Cat" and
"cat" are the same tag.
"""

import sqlite3
import threading
from typing import Dict, Iterable, List, Optional

import config
from core.errors import NotFoundError, ValidationError
from database import db_transaction, next_id, Tag
from events import trigger, TAG_DELETED
from repositories.post_repository import remove_tag_from_posts
from utils.logging_config import get_logger
from utils.tag_extraction import normalize_tag_name, dedupe_preserving_order

logger = get_logger('TagCatalog')

# Serializes catalog writes so two get-or-create calls for the same new
# name cannot both allocate an id
_catalog_lock = threading.Lock()


def _validate_name(name: str) -> str:
    normalized = normalize_tag_name(name)
    if not normalized:
        raise ValidationError("Tag name cannot be empty")
    if any(ch.isspace() for ch in normalized):
        raise ValidationError(f"Tag name cannot contain spaces: {normalized}")
    return normalized


# ============================================================================
# LOOKUPS
# ============================================================================

def get_tag(tag_id: int) -> Optional[Tag]:
    with db_transaction() as conn:
        row = conn.execute("SELECT id, name, category FROM tags WHERE id = ?", (tag_id,)).fetchone()
    return Tag.from_row(row) if row else None


def get_tag_by_name(name: str) -> Optional[Tag]:
    normalized = normalize_tag_name(name)
    if not normalized:
        return None
    with db_transaction() as conn:
        row = conn.execute("SELECT id, name, category FROM tags WHERE name = ?", (normalized,)).fetchone()
    return Tag.from_row(row) if row else None


def resolve_names(names: Iterable[str]) -> Dict[str, int]:
    """
    Map names to ids for the tags that exist. Unknown names are absent from
    the result, which lets callers tell "missing" from "present".
    """
    normalized = dedupe_preserving_order(normalize_tag_name(n) for n in names)
    if not normalized:
        return {}
    placeholders = ','.join('?' * len(normalized))
    with db_transaction() as conn:
        rows = conn.execute(
            f"SELECT id, name FROM tags WHERE name IN ({placeholders})", normalized
        ).fetchall()
    return {row['name']: row['id'] for row in rows}


def get_tags_by_ids(tag_ids: Iterable[int]) -> Dict[int, Tag]:
    tag_ids = list(dict.fromkeys(tag_ids))
    if not tag_ids:
        return {}
    placeholders = ','.join('?' * len(tag_ids))
    with db_transaction() as conn:
        rows = conn.execute(
            f"SELECT id, name, category FROM tags WHERE id IN ({placeholders})", tag_ids
        ).fetchall()
    return {tag.id: tag for tag in (Tag.from_row(row) for row in rows)}


def get_all_tags() -> List[Tag]:
    """All tags sorted alphabetically by name."""
    with db_transaction() as conn:
        rows = conn.execute("SELECT id, name, category FROM tags ORDER BY name ASC").fetchall()
    return [Tag.from_row(row) for row in rows]


# ============================================================================
# GET-OR-CREATE
# ============================================================================

def get_or_create_tag(name: str, category: str = None) -> int:
    """
    Return the id of the tag called name, creating it on first use.

    The category only applies when the tag is created; an existing tag
    keeps its category.
    """
    normalized = _validate_name(name)
    category = (category or config.DEFAULT_TAG_CATEGORY).strip().lower() or config.DEFAULT_TAG_CATEGORY

    with _catalog_lock:
        existing = get_tag_by_name(normalized)
        if existing:
            return existing.id

        tag_id = next_id('tags')
        try:
            with db_transaction() as conn:
                conn.execute(
                    "INSERT INTO tags (id, name, category) VALUES (?, ?, ?)",
                    (tag_id, normalized, category)
                )
        except sqlite3.IntegrityError:
            # Another process created it between lookup and insert
            existing = get_tag_by_name(normalized)
            if existing is None:
                raise
            return existing.id

    logger.debug(f"Created tag '{normalized}' ({category}) as {tag_id}")
    return tag_id


def get_or_create_tags(names: Iterable[str], category: str = None) -> List[int]:
    """Resolve names in order, creating missing tags. Duplicates collapse."""
    tag_ids = []
    for name in dedupe_preserving_order(normalize_tag_name(n) for n in names):
        tag_ids.append(get_or_create_tag(name, category))
    return list(dict.fromkeys(tag_ids))


# ============================================================================
# ADMIN EDITS
# ============================================================================

def update_tag(tag_id: int, name: str, category: str) -> Tag:
    """Rename and/or recategorize a tag."""
    normalized = _validate_name(name)
    category = (category or '').strip().lower() or config.DEFAULT_TAG_CATEGORY

    with _catalog_lock:
        if get_tag(tag_id) is None:
            raise NotFoundError(f"Tag {tag_id} not found.")
        clash = get_tag_by_name(normalized)
        if clash and clash.id != tag_id:
            raise ValidationError(f"A tag named '{normalized}' already exists.")
        with db_transaction() as conn:
            conn.execute(
                "UPDATE tags SET name = ?, category = ? WHERE id = ?",
                (normalized, category, tag_id)
            )

    logger.info(f"Updated tag {tag_id} -> '{normalized}' ({category})")
    return Tag(id=tag_id, name=normalized, category=category)


def delete_tag(tag_id: int) -> List[int]:
    """
    Delete a tag and strip it from every post, in one transaction.

    Returns:
        Ids of the posts that referenced the tag.
    """
    with _catalog_lock:
        with db_transaction() as conn:
            # Write lock before reading the tag lists it rewrites
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT id FROM tags WHERE id = ?", (tag_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"Tag {tag_id} not found.")
            changed_posts = remove_tag_from_posts(conn, tag_id)
            conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))

    trigger(TAG_DELETED, tag_id)
    logger.info(f"Deleted tag {tag_id}, removed from {len(changed_posts)} post(s)")
    return changed_posts
