"""
Post Service

Viewing, editing and deleting posts once they exist. Creation belongs to
the ingestion pipeline.
"""

from typing import Any, Dict, Optional

import config
from core.errors import AuthenticationError, ConflictError, NotFoundError, PermissionDeniedError
from database import Post, User
from repositories import post_repository, tag_repository, user_repository
from services.processing.locks import acquire_processing_lock, release_processing_lock
from services.query.search import attach_tags, perform_search, SearchResult
from utils.file_utils import (
    get_asset_path,
    get_preview_path,
    get_asset_url,
    get_preview_url,
    remove_files,
)
from utils.logging_config import get_logger
from utils.tag_extraction import parse_tag_input

logger = get_logger('PostService')


def get_current_user(user_id: Optional[int]) -> User:
    """
    Resolve the session user.

    Raises:
        AuthenticationError: When nobody is logged in or the user vanished.
    """
    if user_id is None:
        raise AuthenticationError()
    user = user_repository.get_user(user_id)
    if user is None:
        raise AuthenticationError()
    return user


def get_optional_user(user_id: Optional[int]) -> Optional[User]:
    return user_repository.get_user(user_id) if user_id is not None else None


def _require_post(post_id: int) -> Post:
    post = post_repository.get_post(post_id)
    if post is None:
        raise NotFoundError("Post not found.")
    return post


def _serialize(post: Post) -> Dict[str, Any]:
    data = attach_tags([post])[0]
    data["url"] = get_asset_url(post.content_hash, post.file_ext)
    data["preview_url"] = get_preview_url(post.content_hash)
    return data


def get_post_detail(post_id: int) -> Dict[str, Any]:
    """A post with its resolved tags and asset URLs."""
    return _serialize(_require_post(post_id))


def edit_post_tags(post_id: int, user: User, tag_string: str, category: str = None) -> Dict[str, Any]:
    """
    Replace a post's tag list. New names are created in category.

    Raises:
        NotFoundError, PermissionDeniedError, ValidationError
    """
    post = _require_post(post_id)
    if not user.can_modify(post):
        raise PermissionDeniedError("You do not have permission to edit this post.")

    names = parse_tag_input(tag_string, allow_empty=True)
    tag_ids = tag_repository.get_or_create_tags(names, category or config.DEFAULT_TAG_CATEGORY)
    updated = post_repository.update_post_tags(post_id, tag_ids)
    if updated is None:
        # Deleted between the permission check and the write
        raise NotFoundError("Post not found.")

    logger.info(f"User {user.id} set {len(tag_ids)} tag(s) on post {post_id}")
    return _serialize(updated)


def delete_post(post_id: int, user: User) -> None:
    """
    Delete a post: record and dedup entry together, then both stored files.

    The digest's processing lock is held throughout, so a re-upload of the
    same bytes cannot claim the digest until the old files are gone.

    Raises:
        NotFoundError, PermissionDeniedError
        ConflictError: While an upload of the same bytes is being processed.
    """
    post = _require_post(post_id)
    if not user.can_modify(post):
        raise PermissionDeniedError("You do not have permission to delete this post.")

    lock_fd, acquired = acquire_processing_lock(post.content_hash)
    if not acquired:
        raise ConflictError("This file is being processed, try again.")
    try:
        if not post_repository.delete_post_with_hash(post_id, post.content_hash):
            raise NotFoundError("Post not found.")

        failed = remove_files([
            get_asset_path(post.content_hash, post.file_ext),
            get_preview_path(post.content_hash),
        ])
    finally:
        release_processing_lock(lock_fd)

    if failed:
        logger.warning(f"Post {post_id} deleted but files remain: {', '.join(failed)}")
    logger.info(f"User {user.id} deleted post {post_id}")


def get_latest_posts(viewer: Optional[User], page: int = 1) -> SearchResult:
    """Newest posts with the viewer's blacklist applied."""
    return perform_search('', user=viewer, page=page, page_size=config.LATEST_POSTS_PER_PAGE)


def get_user_posts(username: str, viewer: Optional[User], page: int = 1) -> Dict[str, Any]:
    """
    Posts uploaded by username, newest first, filtered by the viewer's blacklist.

    Raises:
        NotFoundError: For an unknown username.
    """
    owner = user_repository.get_user_by_username(username)
    if owner is None:
        raise NotFoundError("User not found.")
    result = perform_search(
        '', user=viewer, page=page, page_size=config.LATEST_POSTS_PER_PAGE, uploader_id=owner.id
    )
    data = result.to_dict()
    data["user"] = {"id": owner.id, "username": owner.username}
    return data
