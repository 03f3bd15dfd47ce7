"""
Structured Audit Logging Utility.

Every state change the application itself causes (profile creation,
admin grants, consent acceptance) is logged as one structured JSON
object.  The durable record of consent lives in ``video_consent_logs``;
this trail is the operator-facing view of the same events.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from contenthub.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

# ---------------------------------------------------------------------------
# Scalar type permitted inside the ``details`` mapping.  Kept flat: lists
# are joined into strings by the caller.
# ---------------------------------------------------------------------------
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Validate and log a structured audit event.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"PROFILE_CREATE"``,
            ``"GRANT_ADMIN"``, ``"CONSENT_ACCEPT"``).
        entity_type: Type of entity affected (e.g. ``"Profile"``,
            ``"Post"``).
        entity_id: Primary key of the affected entity.
        user_id: Who performed the action.  Anonymous viewers are
            identified by their browser-session id.
        details: Optional additional context.

    Returns:
        The validated event, mainly for tests.
    """
    event = AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info(
        "AUDIT: %s",
        json.dumps(event.model_dump(), default=str),
        extra={"event": "AUDIT", "action": action},
    )
    return event
