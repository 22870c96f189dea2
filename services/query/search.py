"""Tag query engine: include/exclude search with per-user blacklists."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import config
from core.post_index import PostIndex, get_post_index
from database import Post, Tag, User
from repositories import post_repository, tag_repository
from utils.logging_config import get_logger
from utils.tag_extraction import normalize_tag_name, parse_search_query

logger = get_logger('Search')


@dataclass
class SearchResult:
    posts: List[Dict[str, Any]] = field(default_factory=list)
    page: int = 1
    total_pages: int = 1
    total: int = 0
    query: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            "posts": self.posts,
            "page": self.page,
            "total_pages": self.total_pages,
            "total": self.total,
            "query": self.query,
        }


def attach_tags(posts: List[Post]) -> List[Dict[str, Any]]:
    """Serialize posts with their tag objects, in each post's tag order."""
    tags_by_id = tag_repository.get_tags_by_ids(
        tag_id for post in posts for tag_id in post.tag_ids
    )
    results = []
    for post in posts:
        # A tag deleted mid-flight may leave a dangling id; it is not shown
        tags: List[Tag] = [tags_by_id[t] for t in post.tag_ids if t in tags_by_id]
        results.append(post.to_dict(tags=tags))
    return results


def resolve_blacklist(user: Optional[User]) -> set:
    """Ids of the user's blacklisted tags that exist in the catalog."""
    if user is None or not user.blacklist:
        return set()
    names = [normalize_tag_name(name) for name in user.blacklist]
    return set(tag_repository.resolve_names(names).values())


def _paginate(matched_ids: List[int], page: int, page_size: int):
    total = len(matched_ids)
    total_pages = max(1, math.ceil(total / page_size))
    start = (page - 1) * page_size
    return matched_ids[start:start + page_size], total, total_pages


def perform_search(query: str = '', user: Optional[User] = None, page: int = 1,
                   page_size: int = None, uploader_id: Optional[int] = None,
                   index: PostIndex = None) -> SearchResult:
    """
    Evaluate a tag query and return one page of matching posts, newest first.

    A post matches when it carries every included tag, none of the excluded
    tags and none of the requesting user's blacklisted tags. An included
    tag that does not exist makes the whole result empty. An empty query
    matches everything not blacklisted.
    """
    page_size = page_size or config.POSTS_PER_PAGE
    page = max(1, int(page or 1))
    query = (query or '').strip()
    index = index or get_post_index()

    included_names, excluded_names = parse_search_query(query)
    resolved = tag_repository.resolve_names(included_names + excluded_names)

    if any(name not in resolved for name in included_names):
        logger.debug(f"Query '{query}' names an unknown tag, nothing can match")
        return SearchResult(page=page, query=query)

    included = {resolved[name] for name in included_names}
    # Unknown excluded names exclude nothing
    excluded = {resolved[name] for name in excluded_names if name in resolved}
    excluded |= resolve_blacklist(user)

    matched_ids = index.match(included, excluded, uploader_id=uploader_id)
    page_ids, total, total_pages = _paginate(matched_ids, page, page_size)
    posts = post_repository.get_posts_by_ids(page_ids)

    return SearchResult(
        posts=attach_tags(posts),
        page=page,
        total_pages=total_pages,
        total=total,
        query=query,
    )
