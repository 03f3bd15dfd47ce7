"""
Profile Model.

Application-owned record of a user's admin privilege, keyed by the
Supabase Auth user id.  Distinct from the identity record owned by the
auth provider.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Profile(BaseModel):
    """A row of the ``profiles`` table.

    ``user_id`` carries a uniqueness constraint in the database; the
    provisioning service relies on it to keep exactly one row per user.
    """

    id: Optional[str] = None  # Assigned by the database on insert
    user_id: str
    email: str
    full_name: Optional[str] = None
    is_admin: bool = False
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
