# utils/deduplication.py
"""
Content hashing used for deduplication.

Identity is the SHA-256 of the exact bytes, so the same file uploaded under
another name or MIME type hashes the same.
"""

import hashlib
from typing import BinaryIO, Union

import config

DIGEST_LENGTH = 64


def hash_stream(stream: BinaryIO, chunk_size: int = None) -> str:
    """
    Hash a binary stream chunk by chunk without buffering it whole.

    Read errors propagate to the caller.
    """
    chunk_size = chunk_size or config.HASH_CHUNK_SIZE
    digest = hashlib.sha256()
    for chunk in iter(lambda: stream.read(chunk_size), b""):
        digest.update(chunk)
    return digest.hexdigest()


def get_content_digest(source: Union[str, BinaryIO]) -> str:
    """Calculate the content digest of a file path or open binary stream."""
    if isinstance(source, str) or hasattr(source, '__fspath__'):
        with open(source, "rb") as f:
            return hash_stream(f)
    return hash_stream(source)


def is_valid_digest(value: str) -> bool:
    """Check that a string looks like a digest produced by this module."""
    if not isinstance(value, str) or len(value) != DIGEST_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return value == value.lower()
