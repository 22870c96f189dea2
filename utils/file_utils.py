import os
import uuid
from typing import Iterable, List

import config
from utils.logging_config import get_logger

logger = get_logger('Files')


def get_hash_bucket(digest, bucket_chars=None):
    """
    Bucket directory for a content digest.

    The digest is already uniformly distributed, so its leading hex chars
    are used directly (3 chars = 4096 buckets).
    """
    bucket_chars = bucket_chars or config.BUCKET_CHARS
    return digest[:bucket_chars]


def get_bucketed_path(filename, base_dir="images"):
    """
    URL-style relative path for a stored file, e.g. "images/a3f/a3f...png".
    """
    bucket = get_hash_bucket(filename)
    return f"{base_dir}/{bucket}/{filename}"


def get_bucketed_filepath_on_disk(filename, base_dir=None):
    """
    Full filesystem path for a stored file, e.g. "./static/images/a3f/a3f...png".
    """
    base_dir = base_dir or config.IMAGE_DIRECTORY
    return os.path.join(base_dir, get_hash_bucket(filename), filename)


def get_asset_path(digest, file_ext):
    """Disk path of a canonical asset."""
    return get_bucketed_filepath_on_disk(f"{digest}{file_ext}", config.IMAGE_DIRECTORY)


def get_preview_path(digest):
    """Disk path of a preview image."""
    return get_bucketed_filepath_on_disk(f"{digest}{config.PREVIEW_EXTENSION}", config.THUMB_DIR)


def get_asset_url(digest, file_ext):
    return get_bucketed_path(f"{digest}{file_ext}", "images")


def get_preview_url(digest):
    return get_bucketed_path(f"{digest}{config.PREVIEW_EXTENSION}", "thumbnails")


def new_temp_upload_path(suffix=''):
    """Unique path inside the upload temp dir for a transient file."""
    os.makedirs(config.UPLOAD_TEMP_DIR, exist_ok=True)
    return os.path.join(config.UPLOAD_TEMP_DIR, f"{uuid.uuid4().hex}{suffix}")


def remove_file(path) -> bool:
    """
    Remove a file if it exists.

    Returns:
        True if a file was removed, False if there was nothing to remove.
    """
    if not path:
        return False
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False


def remove_files(paths: Iterable[str]) -> List[str]:
    """
    Best-effort removal of several files, used on rollback paths.

    A failure to delete one file is logged and does not stop the others.

    Returns:
        Paths that could not be removed.
    """
    failed = []
    for path in paths:
        try:
            remove_file(path)
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}")
            failed.append(path)
    return failed
