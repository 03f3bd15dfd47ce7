"""
Service Layer Data Transfer Objects.

Pydantic models for validated input/output at service boundaries.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from contenthub.models.enums import AdSlot, VideoEventType

__all__ = [
    "AdInput",
    "PlacementInput",
    "ServiceResult",
    "VideoEventInput",
]


class ServiceResult(BaseModel):
    """Generic success/failure envelope for admin operations."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    status_code: int = 200


class VideoEventInput(BaseModel):
    """A playback event reported by the player."""

    event_type: VideoEventType
    timestamp_seconds: int = Field(default=0, ge=0)
    event_data: dict[str, Any] = Field(default_factory=dict)


class AdInput(BaseModel):
    """Fields an admin sets when creating or editing an ad."""

    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1)
    position: AdSlot
    is_active: bool = True

    @field_validator("name", "code", mode="before")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value


class PlacementInput(BaseModel):
    """A per-post override: show *ad_id* in *position* on *post_id*."""

    post_id: str = Field(min_length=1)
    ad_id: str = Field(min_length=1)
    position: AdSlot
    is_active: bool = True
