"""Ad slot fragments and the impression tracking pixel."""

from __future__ import annotations

import base64
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates

from contenthub.models.enums import AdSlot
from contenthub.services import ServiceContainer
from contenthub.web.dependencies import get_services, get_templates

router = APIRouter(prefix="/ads", tags=["ads"])

# 1x1 transparent GIF.
TRACKING_PIXEL: bytes = base64.b64decode(
    "R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7"
)
_NO_STORE: dict[str, str] = {"Cache-Control": "no-store"}


@router.get("/impression")
async def ad_impression(
    ad_id: str,
    slot: AdSlot,
    post_id: Optional[str] = None,
    services: ServiceContainer = Depends(get_services),
) -> Response:
    """Tracking pixel: each load emits one ``ad_impression`` event."""
    services["ad_resolver"].record_impression(ad_id, slot, post_id)
    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers=_NO_STORE)


@router.get("/{slot}")
async def ad_slot(
    slot: AdSlot,
    request: Request,
    post_id: Optional[str] = None,
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """
    HTML fragment for one placement slot.

    Returns 204 with an empty body when there is no ad to show, whether
    none is configured or the lookup failed.
    """
    resolver = services["ad_resolver"]
    ad = await resolver.resolve(slot, post_id)
    if ad is None:
        return Response(status_code=204, headers=_NO_STORE)
    return templates.TemplateResponse(
        request,
        "ad_slot.html",
        {
            "ad": ad,
            "slot": slot,
            "dimensions": resolver.dimensions(slot),
            "pixel_url": resolver.impression_url(ad, slot, post_id),
        },
        headers=_NO_STORE,
    )
