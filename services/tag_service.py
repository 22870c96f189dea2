"""Admin tag management: list, rename/recategorize, delete with cascade."""

from typing import Any, Dict, List

from core.errors import PermissionDeniedError
from database import User
from repositories import tag_repository
from utils.logging_config import get_logger

logger = get_logger('TagService')


def require_admin(user: User) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("Access denied. You must be an admin to do that.")
    return user


def list_tags(user: User) -> List[Dict[str, Any]]:
    require_admin(user)
    return [tag.to_dict() for tag in tag_repository.get_all_tags()]


def edit_tag(user: User, tag_id: int, name: str, category: str) -> Dict[str, Any]:
    require_admin(user)
    return tag_repository.update_tag(tag_id, name, category).to_dict()


def delete_tag(user: User, tag_id: int) -> Dict[str, Any]:
    """Delete a tag; every post carrying it loses it in the same transaction."""
    require_admin(user)
    changed = tag_repository.delete_tag(tag_id)
    logger.info(f"Admin {user.id} deleted tag {tag_id}")
    return {"deleted": tag_id, "posts_updated": len(changed)}
