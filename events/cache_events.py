"""
Cache Events Module

Publish-subscribe hooks for store changes. Repositories publish after a
write commits; in-memory structures (the inverted tag index) subscribe and
keep themselves current without the repositories importing them.

Usage:
    # In an index module:
    from events.cache_events import register_callback, POST_SAVED
    register_callback(POST_SAVED, index.on_post_saved)

    # In a repository, after commit:
    from events.cache_events import trigger
    trigger(POST_SAVED, post)
"""

from collections import defaultdict

from utils.logging_config import get_logger

logger = get_logger('Events')

# Payload: the saved Post
POST_SAVED = 'post_saved'
# Payload: the deleted post id
POST_DELETED = 'post_deleted'
# Payload: the deleted tag id
TAG_DELETED = 'tag_deleted'

_callbacks = defaultdict(list)


def register_callback(event, callback):
    """Subscribe callback to event. Registering the same callback twice is a no-op."""
    if callback not in _callbacks[event]:
        _callbacks[event].append(callback)


def unregister_callback(event, callback):
    if callback in _callbacks[event]:
        _callbacks[event].remove(callback)


def trigger(event, *args):
    """
    Call every subscriber of event.

    A failing subscriber is logged and does not stop the others; the write
    that triggered the event has already been committed.
    """
    for callback in list(_callbacks[event]):
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Callback for '{event}' failed: {e}")


def clear_all_callbacks():
    """Clear all registered callbacks. Primarily for testing purposes."""
    _callbacks.clear()
