"""
File-based locking for preventing concurrent ingestion of the same content.

flock() locks belong to the open file description, so two threads in this
process contend exactly like two worker processes do.
"""

import os
import fcntl

import config
from utils.deduplication import is_valid_digest
from utils.logging_config import get_logger

logger = get_logger('Locks')


def get_lock_dir():
    lock_dir = os.path.join(config.UPLOAD_TEMP_DIR, '.locks')
    os.makedirs(lock_dir, exist_ok=True)
    return lock_dir


def acquire_processing_lock(digest):
    """
    Try to acquire the lock for ingesting content with the given digest.
    Returns (lock_fd, acquired) where lock_fd is the open lock file (or None).
    """
    if not is_valid_digest(digest):
        # The digest becomes a file name
        raise ValueError(f"Not a content digest: {digest!r}")
    lock_file = os.path.join(get_lock_dir(), f"{digest}.lock")
    fd = open(lock_file, 'w')
    try:
        fcntl.flock(fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        return (fd, True)
    except BlockingIOError:
        # Lock is held by another ingestion
        fd.close()
        return (None, False)
    except BaseException:
        fd.close()
        raise


def release_processing_lock(lock_fd):
    """Release a processing lock and remove its file."""
    if not lock_fd:
        return
    lock_file = lock_fd.name
    try:
        fcntl.flock(lock_fd.fileno(), fcntl.LOCK_UN)
    finally:
        lock_fd.close()
    try:
        os.remove(lock_file)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove lock file {lock_file}: {e}")
