"""
Content Repositories.

Read access to published ``posts`` and active ``tools`` through the
public client.  Public reads fail open: an unreachable store renders an empty
page, never an error page.
"""

from __future__ import annotations

from typing import Optional

from contenthub.models.analytics import PostStats
from contenthub.models.content import Post, Tool
from contenthub.models.enums import PostStatus, PostType
from contenthub.repositories.base_repository import BaseRepository, RepositoryError


class PostRepository(BaseRepository):
    """Published articles, videos and tool pages."""

    TABLE = "posts"

    async def list_published(self, post_type: PostType, limit: int = 50) -> list[Post]:
        """Published posts of *post_type*, newest ``published_at`` first."""

        async def _query() -> list[Post]:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("status", str(PostStatus.PUBLISHED))
                .eq("post_type", str(post_type))
                .order("published_at", desc=True)
                .limit(limit)
                .execute()
            )
            return self._parse_rows(
                Post, response.data, operation_name=f"list_published ({post_type})",
            )

        return await self._read_or_default(
            _query, list, operation_name=f"list_published ({post_type})",
        )

    async def get_published_by_slug(
        self,
        slug: str,
        post_type: Optional[PostType] = None,
    ) -> Optional[Post]:
        """A single published post by slug, optionally restricted by type."""

        async def _query() -> Optional[Post]:
            query = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("slug", slug)
                .eq("status", str(PostStatus.PUBLISHED))
            )
            if post_type is not None:
                query = query.eq("post_type", str(post_type))
            response = await query.limit(1).execute()
            posts = self._parse_rows(
                Post, response.data, operation_name="get_published_by_slug",
            )
            return posts[0] if posts else None

        return await self._read_or_default(
            _query, lambda: None, operation_name="get_published_by_slug (posts)",
        )

    async def get_published_by_id(self, post_id: str) -> Optional[Post]:
        """A single published post by primary key."""

        async def _query() -> Optional[Post]:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", post_id)
                .eq("status", str(PostStatus.PUBLISHED))
                .limit(1)
                .execute()
            )
            posts = self._parse_rows(
                Post, response.data, operation_name="get_published_by_id",
            )
            return posts[0] if posts else None

        return await self._read_or_default(
            _query, lambda: None, operation_name="get_published_by_id (posts)",
        )

    async def list_view_stats(self) -> list[PostStats]:
        """View counts of every published post, most viewed first.

        Used by the admin overview, so failures raise instead of failing
        open.

        Raises:
            RepositoryError: The read failed.
        """
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("id, title, slug, post_type, view_count")
                .eq("status", str(PostStatus.PUBLISHED))
                .order("view_count", desc=True)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Reading post view counts failed: {exc}", original_error=exc,
            ) from exc
        return self._parse_rows(PostStats, response.data, operation_name="list_view_stats")

    async def increment_views(self, slug: str) -> None:
        """Bump ``view_count`` via ``increment_post_views``.

        Raises:
            RepositoryError: The procedure call failed.
        """
        try:
            await self.supabase.rpc(
                "increment_post_views", {"post_slug": slug},
            ).execute()
        except Exception as exc:
            raise RepositoryError(
                f"increment_post_views failed for {slug}: {exc}",
                original_error=exc,
            ) from exc


class ToolRepository(BaseRepository):
    """Active entries of the ``tools`` table."""

    TABLE = "tools"

    async def list_active(self, limit: int = 100) -> list[Tool]:
        """Active tools, featured first, then newest."""

        async def _query() -> list[Tool]:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("is_active", True)
                .order("is_featured", desc=True)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return self._parse_rows(Tool, response.data, operation_name="list_active")

        return await self._read_or_default(_query, list, operation_name="list_active (tools)")

    async def list_featured(self, limit: int = 6) -> list[Tool]:
        """Featured tools for the home page, by ``homepage_position``."""

        async def _query() -> list[Tool]:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("is_active", True)
                .eq("is_featured", True)
                .order("homepage_position")
                .limit(limit)
                .execute()
            )
            return self._parse_rows(Tool, response.data, operation_name="list_featured")

        return await self._read_or_default(
            _query, list, operation_name="list_featured (tools)",
        )
