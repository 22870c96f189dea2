"""
Post Index - tag membership lookups behind one interface

The query engine asks an index for the ids of posts whose tags contain
every included id and none of the excluded ids. Two implementations give
the same answers:

- LinearScanIndex reads every post from the store on each query. No state,
  always current, O(posts x tags-per-post).
- InvertedTagIndex keeps tag_id -> {post_id} in memory, built lazily from
  the store and kept current through store events. Only valid while every
  writer runs in this process.

Results are always sorted newest first (descending post id).
"""

import threading
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import config
from events import (
    register_callback,
    unregister_callback,
    POST_SAVED,
    POST_DELETED,
    TAG_DELETED,
)
from repositories import post_repository
from utils.logging_config import get_logger

logger = get_logger('PostIndex')


class PostIndex:
    """Interface shared by the index implementations."""

    name = 'base'

    def match(self, included: Set[int], excluded: Set[int],
              uploader_id: Optional[int] = None) -> List[int]:
        """Ids of matching posts, newest first."""
        raise NotImplementedError

    def close(self):
        """Release event subscriptions, if any."""


class LinearScanIndex(PostIndex):
    name = 'scan'

    def match(self, included, excluded, uploader_id=None):
        matched = []
        # get_all_posts already returns newest first
        for post in post_repository.get_all_posts():
            if uploader_id is not None and post.uploader_id != uploader_id:
                continue
            tag_ids = set(post.tag_ids)
            if included <= tag_ids and tag_ids.isdisjoint(excluded):
                matched.append(post.id)
        return matched


class InvertedTagIndex(PostIndex):
    name = 'inverted'

    def __init__(self):
        self._lock = threading.RLock()
        self._loaded = False
        self._tag_to_posts: Dict[int, Set[int]] = {}
        self._post_tags: Dict[int, FrozenSet[int]] = {}
        self._post_uploader: Dict[int, int] = {}

        register_callback(POST_SAVED, self.on_post_saved)
        register_callback(POST_DELETED, self.on_post_deleted)
        register_callback(TAG_DELETED, self.on_tag_deleted)

    def close(self):
        unregister_callback(POST_SAVED, self.on_post_saved)
        unregister_callback(POST_DELETED, self.on_post_deleted)
        unregister_callback(TAG_DELETED, self.on_tag_deleted)

    # -- maintenance -------------------------------------------------------

    def _ensure_loaded(self):
        if self._loaded:
            return
        self._tag_to_posts.clear()
        self._post_tags.clear()
        self._post_uploader.clear()
        posts = post_repository.get_all_posts()
        for post in posts:
            self._add(post.id, post.tag_ids, post.uploader_id)
        self._loaded = True
        logger.info(f"Built inverted tag index over {len(posts)} post(s)")

    def _add(self, post_id: int, tag_ids: Iterable[int], uploader_id: int):
        tags = frozenset(tag_ids)
        self._post_tags[post_id] = tags
        self._post_uploader[post_id] = uploader_id
        for tag_id in tags:
            self._tag_to_posts.setdefault(tag_id, set()).add(post_id)

    def _remove(self, post_id: int):
        for tag_id in self._post_tags.pop(post_id, frozenset()):
            members = self._tag_to_posts.get(tag_id)
            if members is not None:
                members.discard(post_id)
                if not members:
                    del self._tag_to_posts[tag_id]
        self._post_uploader.pop(post_id, None)

    def on_post_saved(self, post):
        with self._lock:
            if not self._loaded:
                return
            self._remove(post.id)
            self._add(post.id, post.tag_ids, post.uploader_id)

    def on_post_deleted(self, post_id):
        with self._lock:
            if self._loaded:
                self._remove(post_id)

    def on_tag_deleted(self, tag_id):
        with self._lock:
            if not self._loaded:
                return
            for post_id in self._tag_to_posts.pop(tag_id, set()):
                self._post_tags[post_id] = self._post_tags[post_id] - {tag_id}

    # -- queries -----------------------------------------------------------

    def match(self, included, excluded, uploader_id=None):
        with self._lock:
            self._ensure_loaded()

            if included:
                # Intersect smallest posting list first
                postings = sorted(
                    (self._tag_to_posts.get(tag_id, set()) for tag_id in included),
                    key=len
                )
                candidates = set(postings[0])
                for members in postings[1:]:
                    candidates &= members
                    if not candidates:
                        break
            else:
                candidates = set(self._post_tags)

            for tag_id in excluded:
                candidates -= self._tag_to_posts.get(tag_id, set())

            if uploader_id is not None:
                candidates = {p for p in candidates if self._post_uploader.get(p) == uploader_id}

        return sorted(candidates, reverse=True)


_INDEX_TYPES = {
    LinearScanIndex.name: LinearScanIndex,
    InvertedTagIndex.name: InvertedTagIndex,
}

_index: Optional[PostIndex] = None
_index_lock = threading.Lock()


def create_post_index(kind: str = None) -> PostIndex:
    kind = (kind or config.SEARCH_INDEX).lower()
    if kind not in _INDEX_TYPES:
        raise ValueError(f"Unknown search index '{kind}', expected one of {sorted(_INDEX_TYPES)}")
    return _INDEX_TYPES[kind]()


def get_post_index() -> PostIndex:
    """Process-wide index chosen by config.SEARCH_INDEX."""
    global _index
    with _index_lock:
        if _index is None:
            _index = create_post_index()
        return _index


def reset_post_index():
    """Drop the process-wide index; the next get_post_index() builds a fresh one."""
    global _index
    with _index_lock:
        if _index is not None:
            _index.close()
        _index = None
