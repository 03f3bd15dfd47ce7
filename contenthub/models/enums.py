"""
Shared Enumerations for Content Hub Models.

All string enumerations for type-safe field constraints.  Values coming
from Supabase are validated against these once, at the repository
boundary.  StrEnum values compare equal to their string equivalents,
so ``slot == "homepage_top"`` keeps working.
"""

from __future__ import annotations

from enum import StrEnum


class AuthState(StrEnum):
    """Lifecycle states of a visitor's ``SessionManager``."""

    INITIALIZING = "initializing"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NON_ADMIN = "authenticated_non_admin"
    AUTHENTICATED_ADMIN = "authenticated_admin"


class AdSlot(StrEnum):
    """Named placement positions an ad may occupy (``ads.position``)."""

    HOMEPAGE_TOP = "homepage_top"
    HOMEPAGE_MIDDLE = "homepage_middle"
    HOMEPAGE_BOTTOM = "homepage_bottom"
    POST_BEFORE = "post_before"
    POST_INSIDE = "post_inside"
    POST_AFTER = "post_after"
    VIDEO_BANNER_300X250 = "video_banner_300x250"
    VIDEO_BANNER_728X90 = "video_banner_728x90"
    VIDEO_POPUNDER = "video_popunder"
    VIDEO_SMARTLINK = "video_smartlink"
    VIDEO_SOCIAL_BAR = "video_social_bar"
    VIDEO_NATIVE_BANNER = "video_native_banner"


class PostType(StrEnum):
    """Kinds of content stored in the ``posts`` table."""

    ARTICLE = "article"
    VIDEO = "video"
    TOOL = "tool"


class PostStatus(StrEnum):
    """Publication workflow states."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ToolCategory(StrEnum):
    """Categories for entries in the ``tools`` table."""

    PRODUCTIVITY = "productivity"
    DESIGN = "design"
    DEVELOPMENT = "development"
    MARKETING = "marketing"
    ANALYTICS = "analytics"
    OTHER = "other"


class ConsentCategory(StrEnum):
    """Consent categories a viewer may grant for a video.

    ``FUNCTIONAL`` is mandatory and cannot be switched off.
    """

    FUNCTIONAL = "functional"
    ANALYTICS = "analytics"
    MARKETING = "marketing"


class VideoEventType(StrEnum):
    """Playback events recorded in ``video_analytics``."""

    PLAY = "play"
    PAUSE = "pause"
    ENDED = "ended"
    SEEK = "seek"
