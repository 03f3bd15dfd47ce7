"""
Content Models.

Pydantic models for rows of the ``posts`` and ``tools`` tables.  The
closed enumerations (post type, status, tool category) are validated
here, once, when rows enter from Supabase.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from contenthub.models.enums import PostStatus, PostType, ToolCategory


class Post(BaseModel):
    """An article, video or tool page."""

    id: str
    title: str
    slug: str
    post_type: Optional[PostType] = None
    status: Optional[PostStatus] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    thumbnail_url: Optional[str] = None

    # Video fields
    video_url: Optional[str] = None
    video_type: Optional[str] = None
    video_duration: Optional[float] = None
    requires_consent: bool = False
    consent_text: Optional[str] = None

    view_count: int = 0
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("requires_consent", mode="before")
    @classmethod
    def _null_means_no_consent(cls, value: Optional[bool]) -> bool:
        return bool(value)

    @field_validator("view_count", mode="before")
    @classmethod
    def _null_means_zero(cls, value: Optional[int]) -> int:
        return value or 0


class Tool(BaseModel):
    """An interactive tool listed on the tools page."""

    id: str
    name: str
    description: Optional[str] = None
    url: Optional[str] = None
    embed_code: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category: Optional[ToolCategory] = None
    is_active: bool = True
    is_featured: bool = False
    homepage_position: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("is_active", "is_featured", mode="before")
    @classmethod
    def _null_is_false(cls, value: Optional[bool]) -> bool:
        return bool(value)
