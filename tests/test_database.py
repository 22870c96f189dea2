"""
Tests for database/core.py and database/models.py - schema, counters, typed records
"""
import json
import sqlite3
import threading

import pytest
from core.errors import DataIntegrityError
from database import (
    get_db_connection,
    initialize_database,
    next_id,
    Post,
    Tag,
    User,
    MediaType,
    Role,
)


@pytest.mark.unit
class TestDatabaseConnection:
    """Test database connection handling."""

    def test_get_db_connection_returns_connection(self, db_connection):
        conn = get_db_connection()
        assert isinstance(conn, sqlite3.Connection)
        assert conn.row_factory == sqlite3.Row
        conn.close()

    def test_connection_uses_wal(self, db_connection):
        mode = db_connection.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode.lower() == 'wal'


@pytest.mark.unit
class TestDatabaseInitialization:
    """Test database schema creation."""

    def test_initialize_database_creates_tables(self, db_connection):
        tables = {
            row['name'] for row in db_connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }
        assert {'counters', 'users', 'tags', 'posts', 'post_hashes'} <= tables

    def test_initialize_is_idempotent(self, db_connection):
        next_id('posts')
        initialize_database()
        # Re-initializing must not reset counters
        assert next_id('posts') == 2


@pytest.mark.unit
class TestCounters:
    """Atomic id allocation."""

    def test_ids_are_strictly_increasing(self, db_connection):
        assert [next_id('tags') for _ in range(3)] == [1, 2, 3]
        assert next_id('posts') == 1

    def test_unknown_counter(self, db_connection):
        with pytest.raises(ValueError):
            next_id('comments')

    def test_concurrent_allocation_never_repeats(self, db_connection):
        allocated = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                value = next_id('posts')
                with lock:
                    allocated.append(value)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(allocated) == list(range(1, 101))


def _post_row(**overrides):
    row = {
        'id': 1,
        'content_hash': 'a' * 64,
        'media_type': 'image',
        'file_ext': '.png',
        'tag_ids': json.dumps([3, 1]),
        'uploader_id': 7,
        'created_at': '2024-01-01T00:00:00+00:00',
    }
    row.update(overrides)
    return row


@pytest.mark.unit
class TestTypedRecords:
    """Rows decode into dataclasses or raise DataIntegrityError."""

    def test_post_from_row(self):
        post = Post.from_row(_post_row())
        assert post.media_type is MediaType.IMAGE
        assert post.tag_ids == [3, 1]
        assert post.filename == 'a' * 64 + '.png'

    def test_post_to_dict_with_tags(self):
        post = Post.from_row(_post_row())
        data = post.to_dict(tags=[Tag(3, 'cat', 'general')])
        assert data['type'] == 'image'
        assert data['tags'] == [{'id': 3, 'name': 'cat', 'category': 'general'}]

    @pytest.mark.parametrize('overrides', [
        {'media_type': 'audio'},
        {'tag_ids': 'not json'},
        {'tag_ids': json.dumps({'a': 1})},
        {'tag_ids': json.dumps(['1'])},
        {'uploader_id': None},
    ])
    def test_malformed_post_rejected(self, overrides):
        with pytest.raises(DataIntegrityError):
            Post.from_row(_post_row(**overrides))

    def test_missing_field_rejected(self):
        row = _post_row()
        del row['created_at']
        with pytest.raises(DataIntegrityError):
            Post.from_row(row)

    def test_user_roles_and_permissions(self):
        post = Post.from_row(_post_row(uploader_id=1))
        owner = User(1, 'alice')
        other = User(2, 'bob')
        mod = User(3, 'mod', Role.MODERATOR)
        admin = User(4, 'root', Role.ADMIN)

        assert owner.can_modify(post)
        assert not other.can_modify(post)
        assert mod.can_modify(post) and not mod.is_admin
        assert admin.can_modify(post) and admin.is_admin

    def test_user_unknown_role_rejected(self):
        row = {'id': 1, 'username': 'x', 'role': 'superuser', 'blacklist': '[]'}
        with pytest.raises(DataIntegrityError):
            User.from_row(row)
