"""
Content Service.

Read side of the public site: published posts by type, post detail by
slug and the tools directory.  Opening a post bumps its view counter
through ``increment_post_views`` as a background write.
"""

from __future__ import annotations

from typing import Optional

from contenthub.logger import StructuredLogger
from contenthub.models.content import Post, Tool
from contenthub.models.enums import PostType
from contenthub.repositories.content_repository import PostRepository, ToolRepository
from contenthub.services.analytics import EventEmitter
from contenthub.services.base_service import BaseService


class ContentService(BaseService):
    """Posts and tools for the public pages."""

    def __init__(
        self,
        posts: PostRepository,
        tools: ToolRepository,
        emitter: EventEmitter,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._posts = posts
        self._tools = tools
        self._emitter = emitter

    async def list_posts(self, post_type: PostType, limit: int = 50) -> list[Post]:
        return await self._posts.list_published(post_type, limit=limit)

    async def get_post(
        self,
        slug: str,
        post_type: Optional[PostType] = None,
        count_view: bool = True,
    ) -> Optional[Post]:
        """Published post by slug; counts a view unless *count_view* is off."""
        post = await self._posts.get_published_by_slug(slug, post_type)
        if post is not None and count_view:
            self._emitter.emit(
                "increment_post_views",
                lambda: self._posts.increment_views(slug),
            )
        return post

    async def get_post_by_id(self, post_id: str) -> Optional[Post]:
        return await self._posts.get_published_by_id(post_id)

    async def list_tools(self) -> list[Tool]:
        return await self._tools.list_active()

    async def get_tool_page(self, slug: str) -> Optional[Post]:
        """Tool page: the published ``tool`` post with this slug."""
        return await self.get_post(slug, PostType.TOOL)

    async def home(self) -> dict[str, list]:
        """Featured tools plus the latest articles and videos."""
        return {
            "tools": await self._tools.list_featured(),
            "articles": await self._posts.list_published(PostType.ARTICLE, limit=6),
            "videos": await self._posts.list_published(PostType.VIDEO, limit=6),
        }
