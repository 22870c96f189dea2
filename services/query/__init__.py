"""Query services: tag search over the post catalog."""

from .search import perform_search, attach_tags, resolve_blacklist, SearchResult

__all__ = ['perform_search', 'attach_tags', 'resolve_blacklist', 'SearchResult']
