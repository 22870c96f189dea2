# Events module for Sambooru
# Store-change notifications that keep in-memory indexes current
# without repositories importing them.

from .cache_events import (
    POST_SAVED,
    POST_DELETED,
    TAG_DELETED,
    register_callback,
    unregister_callback,
    trigger,
    clear_all_callbacks,
)

__all__ = [
    'POST_SAVED',
    'POST_DELETED',
    'TAG_DELETED',
    'register_callback',
    'unregister_callback',
    'trigger',
    'clear_all_callbacks',
]
