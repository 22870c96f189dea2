"""
Typed records for the stored entities.

Rows are decoded here, at the store boundary. A row that does not decode
cleanly raises DataIntegrityError instead of leaking None fields upward.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.errors import DataIntegrityError


class MediaType(str, Enum):
    """Stored media kinds"""
    IMAGE = "image"
    VIDEO = "video"


class Role(str, Enum):
    """User roles, lowest privilege first"""
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


def _require(row, key: str, kind: type, entity: str):
    try:
        value = row[key]
    except (KeyError, IndexError):
        raise DataIntegrityError(f"{entity} record is missing '{key}'")
    if value is None or not isinstance(value, kind):
        raise DataIntegrityError(
            f"{entity} record has invalid '{key}': {value!r}"
        )
    return value


def _decode_json_list(raw: str, key: str, entity: str) -> list:
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        raise DataIntegrityError(f"{entity} record has unreadable '{key}'")
    if not isinstance(value, list):
        raise DataIntegrityError(f"{entity} record has non-list '{key}'")
    return value


@dataclass
class Tag:
    id: int
    name: str
    category: str

    @classmethod
    def from_row(cls, row) -> 'Tag':
        return cls(
            id=_require(row, 'id', int, 'Tag'),
            name=_require(row, 'name', str, 'Tag'),
            category=_require(row, 'category', str, 'Tag'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "category": self.category}


@dataclass
class Post:
    id: int
    content_hash: str
    media_type: MediaType
    file_ext: str
    uploader_id: int
    created_at: str
    tag_ids: List[int] = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> 'Post':
        raw_type = _require(row, 'media_type', str, 'Post')
        try:
            media_type = MediaType(raw_type)
        except ValueError:
            raise DataIntegrityError(f"Post record has unknown media_type: {raw_type!r}")

        tag_ids = _decode_json_list(_require(row, 'tag_ids', str, 'Post'), 'tag_ids', 'Post')
        if not all(isinstance(tag_id, int) for tag_id in tag_ids):
            raise DataIntegrityError("Post record has non-integer tag ids")

        return cls(
            id=_require(row, 'id', int, 'Post'),
            content_hash=_require(row, 'content_hash', str, 'Post'),
            media_type=media_type,
            file_ext=_require(row, 'file_ext', str, 'Post'),
            uploader_id=_require(row, 'uploader_id', int, 'Post'),
            created_at=_require(row, 'created_at', str, 'Post'),
            tag_ids=tag_ids,
        )

    @property
    def filename(self) -> str:
        return f"{self.content_hash}{self.file_ext}"

    def to_dict(self, tags: Optional[List[Tag]] = None) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "hash": self.content_hash,
            "type": self.media_type.value,
            "file_ext": self.file_ext,
            "uploader_id": self.uploader_id,
            "created_at": self.created_at,
            "tag_ids": list(self.tag_ids),
        }
        if tags is not None:
            data["tags"] = [tag.to_dict() for tag in tags]
        return data


@dataclass
class User:
    id: int
    username: str
    role: Role = Role.USER
    blacklist: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> 'User':
        raw_role = _require(row, 'role', str, 'User')
        try:
            role = Role(raw_role)
        except ValueError:
            raise DataIntegrityError(f"User record has unknown role: {raw_role!r}")

        blacklist = _decode_json_list(_require(row, 'blacklist', str, 'User'), 'blacklist', 'User')
        if not all(isinstance(name, str) for name in blacklist):
            raise DataIntegrityError("User record has non-string blacklist entries")

        return cls(
            id=_require(row, 'id', int, 'User'),
            username=_require(row, 'username', str, 'User'),
            role=role,
            blacklist=blacklist,
        )

    @property
    def is_staff(self) -> bool:
        """Moderators and admins may act on other users' posts."""
        return self.role in (Role.MODERATOR, Role.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def can_modify(self, post: Post) -> bool:
        return post.uploader_id == self.id or self.is_staff

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "blacklist": list(self.blacklist),
        }
