"""
Pytest fixtures and test configuration
"""
import pytest
import io
import os
import tempfile
import shutil
from PIL import Image

# Set testing environment variables BEFORE importing app modules
os.environ['TESTING'] = 'true'
os.environ['ENABLE_AUTO_TAGGER'] = 'false'

# Now import app modules
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import config
import database
from database import Role
from core.post_index import reset_post_index
from events import clear_all_callbacks
from repositories import post_repository, tag_repository, dedup_repository, user_repository
from services.processing import media_processor


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_db_path(temp_dir):
    """Path to test database file."""
    return os.path.join(temp_dir, 'test_booru.db')


@pytest.fixture
def test_image_dir(temp_dir):
    image_dir = os.path.join(temp_dir, 'images')
    os.makedirs(image_dir, exist_ok=True)
    return image_dir


@pytest.fixture
def test_thumb_dir(temp_dir):
    thumb_dir = os.path.join(temp_dir, 'thumbnails')
    os.makedirs(thumb_dir, exist_ok=True)
    return thumb_dir


@pytest.fixture
def test_upload_dir(temp_dir):
    upload_dir = os.path.join(temp_dir, 'uploads')
    os.makedirs(upload_dir, exist_ok=True)
    return upload_dir


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    """Keep module-level state from leaking between tests."""
    monkeypatch.setattr(config, 'ENABLE_AUTO_TAGGER', False)
    media_processor.reset_transcode_semaphore()
    yield
    reset_post_index()
    clear_all_callbacks()
    media_processor.reset_transcode_semaphore()


@pytest.fixture
def storage_dirs(test_image_dir, test_thumb_dir, test_upload_dir, monkeypatch):
    """Point asset, preview and upload directories at temporary ones."""
    monkeypatch.setattr(config, 'IMAGE_DIRECTORY', test_image_dir)
    monkeypatch.setattr(config, 'THUMB_DIR', test_thumb_dir)
    monkeypatch.setattr(config, 'UPLOAD_TEMP_DIR', test_upload_dir)
    return {
        'images': test_image_dir,
        'thumbnails': test_thumb_dir,
        'uploads': test_upload_dir,
    }


@pytest.fixture
def db_connection(test_db_path, monkeypatch):
    """
    Create a test database connection.
    Uses monkeypatch to override the DB_FILE path.
    """
    import database.core
    monkeypatch.setattr(config, 'DATABASE_PATH', test_db_path)
    monkeypatch.setattr(database.core, 'DB_FILE', test_db_path)

    database.initialize_database()

    conn = database.get_db_connection()
    yield conn
    conn.close()


@pytest.fixture
def users(db_connection):
    """One user per role, plus a second regular user."""
    return {
        'alice': user_repository.create_user('alice'),
        'bob': user_repository.create_user('bob'),
        'mod': user_repository.create_user('mod', role=Role.MODERATOR),
        'admin': user_repository.create_user('admin', role=Role.ADMIN),
    }


@pytest.fixture
def app(db_connection, storage_dirs):
    """Create the Quart app configured for testing."""
    from app import create_app
    app = create_app()
    app.config['TESTING'] = True
    app.config['SECRET_KEY'] = 'test-secret-key'
    yield app


@pytest.fixture
def client(app):
    """Quart test client."""
    return app.test_client()


async def login(client, user):
    """Put user into the test client's session."""
    async with client.session_transaction() as sess:
        sess['user_id'] = user.id


def make_image_bytes(fmt='PNG', size=(64, 48), color='red', mode='RGB'):
    """Encode a solid-color image."""
    buffer = io.BytesIO()
    Image.new(mode, size, color=color).save(buffer, fmt)
    return buffer.getvalue()


def make_gif_bytes(size=(40, 40), colors=('red', 'blue', 'green')):
    """Encode a small animated GIF."""
    frames = [Image.new('RGB', size, color=c) for c in colors]
    buffer = io.BytesIO()
    frames[0].save(buffer, 'GIF', save_all=True, append_images=frames[1:], duration=100, loop=0)
    return buffer.getvalue()


@pytest.fixture
def write_upload(test_upload_dir):
    """Write bytes into the upload dir as a transient upload; returns its path."""
    counter = {'n': 0}

    def _write(data: bytes, suffix='.png'):
        counter['n'] += 1
        path = os.path.join(test_upload_dir, f"upload_{counter['n']}{suffix}")
        with open(path, 'wb') as f:
            f.write(data)
        return path

    return _write


def create_test_post(tag_names, uploader_id=1, content_hash=None, category='general'):
    """Helper to create a committed post (record + dedup entry) with the given tags."""
    post_id = post_repository.allocate_post_id()
    content_hash = content_hash or f"{post_id:064x}"
    tag_ids = tag_repository.get_or_create_tags(tag_names, category)
    post = post_repository.create_post(post_id, content_hash, 'image', '.png', tag_ids, uploader_id)
    dedup_repository.insert(content_hash, post.id)
    return post


def list_files(directory):
    """All files below directory, relative paths."""
    found = []
    for root, _, files in os.walk(directory):
        for name in files:
            found.append(os.path.relpath(os.path.join(root, name), directory))
    return sorted(found)
