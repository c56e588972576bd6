"""Record models for users, posts and categories.

Records serialize with camelCase keys (``authorId``, ``viewCount``, ...) so
the persisted collections keep one layout across every storage medium.
Validation accepts either the camelCase or the snake_case spelling.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    EDITOR = "editor"
    AUTHOR = "author"
    READER = "reader"


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Record(BaseModel):
    """Common base: an opaque string id plus camelCase serialization."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = ""

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class User(Record):
    """Identity and permission subject."""

    email: str
    name: str
    role: Role = Role.AUTHOR
    avatar: str | None = None
    bio: str | None = None
    joined_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True


class Post(Record):
    """A unit of content written by one author."""

    title: str
    content: str
    excerpt: str = ""
    slug: str = ""
    author_id: str
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT
    featured_image: str | None = None
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    view_count: int = Field(default=0, ge=0)
    is_feature: bool = False

    @model_validator(mode="after")
    def _updated_not_before_created(self) -> Post:
        comparable = (self.updated_at.tzinfo is None) == (self.created_at.tzinfo is None)
        if comparable and self.updated_at < self.created_at:
            raise ValueError("updatedAt must not be earlier than createdAt")
        return self


class Category(BaseModel):
    """Display and filter metadata. Not persisted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    slug: str
    description: str = ""
    post_count: int = 0
