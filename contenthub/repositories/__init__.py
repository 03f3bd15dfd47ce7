"""
Repository Layer.

Data access classes over the Supabase tables.  Each repository receives
a client provider and a logger via ``__init__``.
"""

from contenthub.repositories.ad_repository import AdRepository
from contenthub.repositories.base_repository import (
    BaseRepository,
    DuplicateRecordError,
    RepositoryError,
)
from contenthub.repositories.content_repository import PostRepository, ToolRepository
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.repositories.tracking_repository import (
    ConsentLogRepository,
    ConsentTrailReader,
    TrailReader,
    VideoAnalyticsRepository,
    VideoEventTrailReader,
)

__all__ = [
    "AdRepository",
    "BaseRepository",
    "ConsentLogRepository",
    "ConsentTrailReader",
    "DuplicateRecordError",
    "PostRepository",
    "ProfileRepository",
    "RepositoryError",
    "ToolRepository",
    "TrailReader",
    "VideoAnalyticsRepository",
    "VideoEventTrailReader",
]
