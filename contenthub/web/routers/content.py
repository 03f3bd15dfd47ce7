"""Public content endpoints: article, video and tool listings and detail pages."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates

from contenthub.models.auth_models import AuthSnapshot
from contenthub.models.enums import AdSlot, PostType
from contenthub.services import ServiceContainer
from contenthub.web.dependencies import get_auth_snapshot, get_services, get_templates

router = APIRouter(tags=["content"])

_LIST_TITLES: dict[PostType, str] = {
    PostType.ARTICLE: "Articles",
    PostType.VIDEO: "Videos",
}


async def _render_list(
    request: Request,
    post_type: PostType,
    services: ServiceContainer,
    auth: AuthSnapshot,
    templates: Jinja2Templates,
) -> Response:
    posts = await services["content_service"].list_posts(post_type)
    return templates.TemplateResponse(
        request,
        "post_list.html",
        {
            "title": _LIST_TITLES[post_type],
            "auth": auth,
            "posts": posts,
            "base_path": f"/{post_type}s",
        },
    )


async def _render_detail(
    request: Request,
    slug: str,
    post_type: PostType,
    services: ServiceContainer,
    auth: AuthSnapshot,
    templates: Jinja2Templates,
) -> Response:
    post = await services["content_service"].get_post(slug, post_type)
    if post is None:
        raise HTTPException(status_code=404, detail=f"{post_type} not found")
    return templates.TemplateResponse(
        request,
        "post_detail.html",
        {
            "title": post.title,
            "auth": auth,
            "post": post,
            "slots": [AdSlot.POST_BEFORE, AdSlot.POST_INSIDE, AdSlot.POST_AFTER],
            "back_path": f"/{post_type}s",
        },
    )


@router.get("/articles")
async def list_articles(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    return await _render_list(request, PostType.ARTICLE, services, auth, templates)


@router.get("/articles/{slug}")
async def article_detail(
    slug: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    return await _render_detail(request, slug, PostType.ARTICLE, services, auth, templates)


@router.get("/videos")
async def list_videos(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    return await _render_list(request, PostType.VIDEO, services, auth, templates)


@router.get("/videos/{slug}")
async def video_detail(
    slug: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Video page.  The player itself loads from ``/videos/{id}/player``."""
    return await _render_detail(request, slug, PostType.VIDEO, services, auth, templates)


@router.get("/tools")
async def list_tools(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Active tools, featured first, then newest."""
    tools = await services["content_service"].list_tools()
    return templates.TemplateResponse(
        request,
        "tools.html",
        {"title": "Tools", "auth": auth, "tools": tools},
    )


@router.get("/tools/{slug}")
async def tool_detail(
    slug: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    return await _render_detail(request, slug, PostType.TOOL, services, auth, templates)
