"""Home page and static informational pages."""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates

from contenthub.models.auth_models import AuthSnapshot
from contenthub.services import ServiceContainer
from contenthub.web.dependencies import get_auth_snapshot, get_services, get_templates

router = APIRouter(tags=["pages"])

STATIC_PAGES: dict[str, dict[str, object]] = {
    "contact": {
        "title": "Contact Us",
        "paragraphs": [
            "Questions, feedback or partnership requests are welcome.",
            "Write to us through the contact address listed in the site footer "
            "and we will get back to you within two business days.",
        ],
    },
    "help": {
        "title": "Help Center",
        "paragraphs": [
            "Browse articles, videos and tools from the navigation bar.",
            "Some videos ask for your consent before playing. Your choice is "
            "remembered on this browser for 24 hours.",
            "Administrators sign in from the Sign In page to manage content.",
        ],
    },
    "privacy": {
        "title": "Privacy Policy",
        "paragraphs": [
            "We store an anonymous browser-session id to count video plays. "
            "It is not linked to your account.",
            "Video consent decisions are kept in a cookie on your browser and "
            "recorded anonymously with your browser's user agent.",
            "Accounts hold your email address and display name only.",
        ],
    },
    "terms": {
        "title": "Terms of Service",
        "paragraphs": [
            "Content is provided as is, for informational purposes.",
            "Embedded tools and advertisements are supplied by third parties "
            "and governed by their own terms.",
        ],
    },
}


@router.get("/")
async def home(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Featured tools and the latest articles and videos."""
    sections = await services["content_service"].home()
    return templates.TemplateResponse(
        request,
        "home.html",
        {"title": "Home", "auth": auth, **sections},
    )


def _static_page(slug: str) -> Callable[..., Awaitable[Response]]:
    async def render(
        request: Request,
        auth: AuthSnapshot = Depends(get_auth_snapshot),
        templates: Jinja2Templates = Depends(get_templates),
    ) -> Response:
        return templates.TemplateResponse(
            request,
            "page.html",
            {"auth": auth, **STATIC_PAGES[slug]},
        )

    render.__name__ = f"{slug}_page"
    return render


for _slug in STATIC_PAGES:
    router.add_api_route(f"/{_slug}", _static_page(_slug), methods=["GET"])
