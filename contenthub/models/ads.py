"""
Advertisement Models.

``Ad`` mirrors the ``ads`` table; ``AdPlacement`` mirrors a row of
``ad_placements`` joined to the ad it points at.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from contenthub.models.enums import AdSlot


class Ad(BaseModel):
    """An advertisement with an arbitrary markup/script payload.

    ``code`` is rendered verbatim into the page.  Only administrators
    can write to the ``ads`` table (row-level security).
    """

    id: str
    name: str
    code: str
    position: AdSlot
    is_active: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("is_active", mode="before")
    @classmethod
    def _null_is_inactive(cls, value: Optional[bool]) -> bool:
        return bool(value)


class AdPlacement(BaseModel):
    """Per-content override mapping (content id + slot → ad)."""

    id: str
    post_id: Optional[str] = None
    ad_id: Optional[str] = None
    position: AdSlot
    is_active: bool = False
    ad: Optional[Ad] = Field(default=None, alias="ads")
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "populate_by_name": True}

    @field_validator("is_active", mode="before")
    @classmethod
    def _null_is_inactive(cls, value: Optional[bool]) -> bool:
        return bool(value)
