"""Post import, image proxy, and public post-detail endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query
from starlette.responses import RedirectResponse, Response

from app.core.auth import get_current_user_id
from app.core.constants import PROXY_CACHE_CONTROL
from app.core.errors import InvalidInput
from app.models.enums import Device, Platform
from app.models.post import PostResponse
from app.models.social import ImportRequest, ImportResponse
from app.services.clicks import detect_device
from app.services.fetch import FetchClient, get_fetch_client
from app.services.image_cache import ImageCache, get_image_cache
from app.services.image_proxy import proxy_image
from app.services.importer import import_post
from app.services.posts import get_post_details
from app.services.rehost import AssetUploader, get_uploader

logger = logging.getLogger(__name__)

router = APIRouter()


def _platform(value: str) -> Platform:
    try:
        return Platform(value.lower())
    except ValueError:
        raise InvalidInput(
            "Invalid platform. Must be one of: youtube, tiktok, instagram, facebook",
            detail="InvalidInput",
        ) from None


# ---------------------------------------------------------------------------
# GET /api/v1/social/proxy/image
# ---------------------------------------------------------------------------

@router.get("/proxy/image")
async def proxy_image_endpoint(
    url: str = Query(default=""),
    fetcher: FetchClient = Depends(get_fetch_client),
    cache: ImageCache = Depends(get_image_cache),
) -> Response:
    """Stream a third-party image, or redirect to its cached or placeholder URL."""
    proxied = await proxy_image(url, fetcher, cache)
    if proxied.redirect_url is not None:
        return RedirectResponse(proxied.redirect_url, status_code=302)
    return Response(
        content=proxied.content,
        media_type=proxied.content_type,
        headers={
            "Cache-Control": PROXY_CACHE_CONTROL,
            "Access-Control-Allow-Origin": "*",
        },
    )


# ---------------------------------------------------------------------------
# GET /api/v1/social/post/details (public)
# ---------------------------------------------------------------------------

@router.get("/post/details", response_model=PostResponse)
async def post_details(
    url: str = Query(...),
    platform: str = Query(...),
    user_id: UUID = Query(..., alias="userId"),
    country: str | None = Query(default=None),
    device: Device | None = Query(default=None),
    user_agent: str | None = Header(default=None),
    fetcher: FetchClient = Depends(get_fetch_client),
) -> PostResponse:
    """Public post view; records a click."""
    post = await get_post_details(
        user_id,
        _platform(platform),
        url,
        fetcher,
        country=country,
        device=device or detect_device(user_agent),
    )
    return PostResponse(post=post)


# ---------------------------------------------------------------------------
# POST /api/v1/social/{platform}
# ---------------------------------------------------------------------------

@router.post("/{platform}", response_model=ImportResponse)
async def import_social_post(
    platform: str,
    body: ImportRequest,
    owner_id: UUID = Depends(get_current_user_id),
    fetcher: FetchClient = Depends(get_fetch_client),
    uploader: AssetUploader = Depends(get_uploader),
) -> ImportResponse:
    """Import a YouTube, Instagram, Facebook or TikTok post."""
    return await import_post(owner_id, _platform(platform), body, fetcher, uploader)
