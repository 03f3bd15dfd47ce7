"""
Data Models Package.

Re-exports the Pydantic models for short imports::

    from contenthub.models import Post, Ad, Profile, ConsentRecord
    from contenthub.models import AdSlot, PostType, AuthState
"""

from contenthub.models.ads import Ad, AdPlacement
from contenthub.models.analytics import (
    AnalyticsOverview,
    ConsentLogEntry,
    PostStats,
    VideoAnalyticsEntry,
)
from contenthub.models.auth_models import (
    AuthErrorCode,
    AuthResult,
    AuthSession,
    AuthSnapshot,
    AuthUser,
    ValidationResult,
)
from contenthub.models.consent import ConsentGate, ConsentOutcome, ConsentRecord
from contenthub.models.content import Post, Tool
from contenthub.models.enums import (
    AdSlot,
    AuthState,
    ConsentCategory,
    PostStatus,
    PostType,
    ToolCategory,
    VideoEventType,
)
from contenthub.models.profile import Profile
from contenthub.models.service_models import (
    AdInput,
    PlacementInput,
    ServiceResult,
    VideoEventInput,
)

__all__ = [
    "Ad",
    "AdInput",
    "AdPlacement",
    "AdSlot",
    "AnalyticsOverview",
    "AuthErrorCode",
    "AuthResult",
    "AuthSession",
    "AuthSnapshot",
    "AuthState",
    "AuthUser",
    "ConsentCategory",
    "ConsentGate",
    "ConsentLogEntry",
    "ConsentOutcome",
    "ConsentRecord",
    "PlacementInput",
    "Post",
    "PostStats",
    "PostStatus",
    "PostType",
    "Profile",
    "ServiceResult",
    "Tool",
    "ToolCategory",
    "ValidationResult",
    "VideoAnalyticsEntry",
    "VideoEventInput",
    "VideoEventType",
]
