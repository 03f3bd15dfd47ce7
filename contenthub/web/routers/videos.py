"""Video player, consent prompt and playback analytics endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from contenthub.models.auth_models import AuthSnapshot
from contenthub.models.consent import ConsentRecord
from contenthub.models.content import Post
from contenthub.models.enums import AdSlot, ConsentCategory, PostType
from contenthub.models.service_models import VideoEventInput
from contenthub.services import ServiceContainer
from contenthub.storage import CookieStorage, get_browser_session_id
from contenthub.web.dependencies import (
    get_auth_snapshot,
    get_durable_storage,
    get_services,
    get_templates,
    get_transient_storage,
)

router = APIRouter(prefix="/videos", tags=["videos"])

_PLAYER_SLOTS: list[AdSlot] = [
    AdSlot.VIDEO_BANNER_728X90,
    AdSlot.VIDEO_BANNER_300X250,
    AdSlot.VIDEO_NATIVE_BANNER,
    AdSlot.VIDEO_SOCIAL_BAR,
    AdSlot.VIDEO_SMARTLINK,
    AdSlot.VIDEO_POPUNDER,
]


class ConsentRequest(BaseModel):
    """The viewer's answer to the consent prompt."""

    accepted: bool
    categories: list[ConsentCategory] = Field(default_factory=list)


class ConsentResponse(BaseModel):
    """Outcome of a consent answer."""

    playback_allowed: bool
    message: str
    audit_logged: bool
    record: Optional[ConsentRecord] = None


class VideoEventResponse(BaseModel):
    accepted: bool


async def _get_video(services: ServiceContainer, post_id: str) -> Post:
    post = await services["content_service"].get_post_by_id(post_id)
    if post is None or post.post_type is not PostType.VIDEO:
        raise HTTPException(status_code=404, detail="Video not found")
    return post


@router.get("/{post_id}/player")
async def video_player(
    post_id: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    auth: AuthSnapshot = Depends(get_auth_snapshot),
    durable: CookieStorage = Depends(get_durable_storage),
    transient: CookieStorage = Depends(get_transient_storage),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """
    Player, or the consent prompt when the video needs consent first.
    """
    post = await _get_video(services, post_id)
    get_browser_session_id(transient)
    gate = services["consent_service"].evaluate(post, durable)
    return templates.TemplateResponse(
        request,
        "player.html",
        {
            "title": post.title,
            "auth": auth,
            "post": post,
            "gate": gate,
            "optional_categories": [ConsentCategory.ANALYTICS, ConsentCategory.MARKETING],
            "slots": _PLAYER_SLOTS,
        },
    )


@router.post("/{post_id}/consent", response_model=ConsentResponse)
async def answer_consent(
    post_id: str,
    answer: ConsentRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    durable: CookieStorage = Depends(get_durable_storage),
    transient: CookieStorage = Depends(get_transient_storage),
) -> ConsentResponse:
    """
    Accept or decline the consent prompt.

    Accepting stores the decision on this browser for 24 hours.
    Declining stores nothing.
    """
    await _get_video(services, post_id)
    consent_service = services["consent_service"]
    if not answer.accepted:
        outcome = consent_service.decline(post_id)
    else:
        outcome = await consent_service.accept(
            post_id=post_id,
            categories=answer.categories,
            storage=durable,
            session_id=get_browser_session_id(transient),
            user_agent=request.headers.get("user-agent"),
        )
    return ConsentResponse(
        playback_allowed=outcome.playback_allowed,
        message=outcome.message,
        audit_logged=outcome.audit_logged,
        record=outcome.record,
    )


@router.post(
    "/{post_id}/events",
    response_model=VideoEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_video_event(
    post_id: str,
    event: VideoEventInput,
    services: ServiceContainer = Depends(get_services),
    durable: CookieStorage = Depends(get_durable_storage),
    transient: CookieStorage = Depends(get_transient_storage),
) -> VideoEventResponse:
    """
    Log a playback event in the background.

    Videos that need consent accept events only once consent is given.
    """
    post = await _get_video(services, post_id)
    gate = services["consent_service"].evaluate(post, durable)
    if not gate.playback_allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Consent is required before this video can play.",
        )
    services["video_analytics_service"].track(
        post_id=post.id,
        session_id=get_browser_session_id(transient),
        event_type=event.event_type,
        timestamp_seconds=event.timestamp_seconds,
        event_data=event.event_data,
    )
    return VideoEventResponse(accepted=True)
