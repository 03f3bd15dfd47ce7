"""
Analytics Overview Models.

Rows of ``video_analytics`` and ``video_consent_logs`` as the admin
overview shows them, plus the aggregate the overview page renders.
Event types and consent categories stay plain strings here: the trail
is displayed as recorded, including values written by older clients.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class VideoAnalyticsEntry(BaseModel):
    id: str
    post_id: Optional[str] = None
    user_session: Optional[str] = None
    event_type: str
    timestamp_seconds: Optional[int] = None
    event_data: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("event_data", mode="before")
    @classmethod
    def _null_is_empty(cls, value: Optional[dict[str, Any]]) -> dict[str, Any]:
        return value or {}


class ConsentLogEntry(BaseModel):
    id: str
    post_id: Optional[str] = None
    user_session: str
    consent_given: bool
    consent_type: list[str] = Field(default_factory=list)
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("consent_type", mode="before")
    @classmethod
    def _null_is_empty(cls, value: Optional[list[str]]) -> list[str]:
        return value or []


class PostStats(BaseModel):
    """View count of one published post."""

    id: str
    title: str
    slug: str
    post_type: Optional[str] = None
    view_count: int = 0

    @field_validator("view_count", mode="before")
    @classmethod
    def _null_is_zero(cls, value: Optional[int]) -> int:
        return value or 0


class AnalyticsOverview(BaseModel):
    """Everything the admin analytics page shows."""

    total_posts: int = 0
    total_views: int = 0
    total_video_events: int = 0
    total_consents: int = 0
    top_posts: list[PostStats] = Field(default_factory=list)
    recent_video_events: list[VideoAnalyticsEntry] = Field(default_factory=list)
    recent_consents: list[ConsentLogEntry] = Field(default_factory=list)
