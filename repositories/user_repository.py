"""
User Repository Module

Users are owned by the authentication collaborator; this core only reads
them (role, blacklist) and stores blacklist edits.
"""

import json
import sqlite3
from typing import List, Optional

from core.errors import NotFoundError, ValidationError
from database import db_transaction, next_id, User, Role
from utils.tag_extraction import split_tag_string

_SELECT_USER = "SELECT id, username, role, blacklist FROM users"


def create_user(username: str, role: Role = Role.USER, blacklist: List[str] = None,
                password_hash: str = None) -> User:
    """Insert a user record. Registration itself lives in the auth collaborator."""
    username = (username or '').strip()
    if not username:
        raise ValidationError("Username is required.")

    user = User(
        id=next_id('users'),
        username=username,
        role=Role(role),
        blacklist=split_tag_string(' '.join(blacklist or [])),
    )
    try:
        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO users (id, username, role, blacklist, password_hash) VALUES (?, ?, ?, ?, ?)",
                (user.id, user.username, user.role.value, json.dumps(user.blacklist), password_hash)
            )
    except sqlite3.IntegrityError:
        raise ValidationError("Username already taken.")
    return user


def get_user(user_id: int) -> Optional[User]:
    with db_transaction() as conn:
        row = conn.execute(_SELECT_USER + " WHERE id = ?", (user_id,)).fetchone()
    return User.from_row(row) if row else None


def get_user_by_username(username: str) -> Optional[User]:
    with db_transaction() as conn:
        row = conn.execute(_SELECT_USER + " WHERE username = ?", (username,)).fetchone()
    return User.from_row(row) if row else None


def set_blacklist(user_id: int, blacklist_string: str) -> User:
    """Replace a user's blacklist from a space-separated string of tag names."""
    names = split_tag_string(blacklist_string)
    with db_transaction() as conn:
        cur = conn.execute(
            "UPDATE users SET blacklist = ? WHERE id = ?", (json.dumps(names), user_id)
        )
        if cur.rowcount == 0:
            raise NotFoundError("User not found.")
    return get_user(user_id)
