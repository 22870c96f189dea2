"""User settings owned by this core: the tag blacklist."""

from typing import List

from database import User
from repositories import user_repository
from utils.logging_config import get_logger

logger = get_logger('UserService')


def save_blacklist(user: User, blacklist_string: str) -> List[str]:
    """
    Store the user's blacklist, normalized the same way tags are.

    Names that do not exist yet are kept; they start hiding posts as soon
    as such a tag is created.
    """
    updated = user_repository.set_blacklist(user.id, blacklist_string or '')
    logger.info(f"User {user.id} saved a blacklist of {len(updated.blacklist)} tag(s)")
    return updated.blacklist
