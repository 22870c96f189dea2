"""
Core Module

Error taxonomy and the in-memory post index used by search.
"""

from .errors import (
    BooruError,
    ValidationError,
    UnsupportedMediaError,
    AuthenticationError,
    PermissionDeniedError,
    NotFoundError,
    DuplicateContentError,
    ProcessingError,
    DataIntegrityError,
    AutoTaggerError,
)

__all__ = [
    'BooruError',
    'ValidationError',
    'UnsupportedMediaError',
    'AuthenticationError',
    'PermissionDeniedError',
    'NotFoundError',
    'DuplicateContentError',
    'ProcessingError',
    'DataIntegrityError',
    'AutoTaggerError',
]
