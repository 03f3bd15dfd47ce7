"""
Video Consent Models.

``ConsentRecord`` is the value kept in durable per-browser storage
under ``video_consent_<contentId>``::

    {"accepted": true, "timestamp": 1718000000000, "types": ["functional"]}

``timestamp`` is epoch milliseconds.  A record is honoured for a fixed
24-hour window from creation.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from contenthub.models.enums import ConsentCategory

CONSENT_WINDOW_MS: int = 24 * 60 * 60 * 1000
CONSENT_KEY_PREFIX: str = "video_consent_"


def consent_storage_key(content_id: str) -> str:
    """Return the per-browser storage key for *content_id*."""
    return f"{CONSENT_KEY_PREFIX}{content_id}"


class ConsentRecord(BaseModel):
    """A viewer's stored consent decision for one video."""

    accepted: bool
    timestamp: int
    types: list[ConsentCategory] = Field(default_factory=list)

    def is_valid(self, now_ms: int) -> bool:
        """``True`` iff accepted and strictly younger than the consent window."""
        return self.accepted and (now_ms - self.timestamp) < CONSENT_WINDOW_MS


class ConsentGate(BaseModel):
    """Outcome of checking whether playback may start without a prompt."""

    playback_allowed: bool
    requires_prompt: bool
    record: Optional[ConsentRecord] = None


class ConsentOutcome(BaseModel):
    """Result of a viewer accepting or declining the consent prompt.

    Attributes
    ----------
    playback_allowed:
        ``True`` after acceptance, ``False`` after a decline.
    record:
        The record persisted on acceptance; ``None`` on decline.
    audit_logged:
        ``False`` when the durable consent log write failed.  Playback
        is still allowed in that case.
    audit_error:
        Diagnostic text for a failed audit write.
    message:
        Viewer-facing notice.
    """

    playback_allowed: bool
    record: Optional[ConsentRecord] = None
    audit_logged: bool = False
    audit_error: Optional[str] = None
    message: str = ""
