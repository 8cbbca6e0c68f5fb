"""Public feed and feed settings endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.auth import get_current_user_id
from app.models.feed import (
    FeedResponse,
    FeedSettingsResponse,
    FeedSettingUpdate,
    HeadingsResponse,
    HeadingsUpdate,
    PlatformsResponse,
    PlatformToggle,
)
from app.services import feed as feed_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Settings (owner)
# ---------------------------------------------------------------------------

@router.get("/settings", response_model=FeedSettingsResponse)
async def get_feed_settings(owner_id: UUID = Depends(get_current_user_id)) -> FeedSettingsResponse:
    return FeedSettingsResponse(settings=feed_service.get_feed_settings(owner_id))


@router.post("/settings", response_model=FeedSettingsResponse)
async def update_feed_settings(
    body: FeedSettingUpdate,
    owner_id: UUID = Depends(get_current_user_id),
) -> FeedSettingsResponse:
    """Update ``layout`` or ``postsCount``."""
    return FeedSettingsResponse(settings=feed_service.update_feed_setting(owner_id, body))


@router.get("/platforms", response_model=PlatformsResponse)
async def get_platforms(owner_id: UUID = Depends(get_current_user_id)) -> PlatformsResponse:
    return PlatformsResponse(platforms=feed_service.get_platforms(owner_id))


@router.post("/platforms/toggle", response_model=PlatformsResponse)
async def toggle_platform(
    body: PlatformToggle,
    owner_id: UUID = Depends(get_current_user_id),
) -> PlatformsResponse:
    return PlatformsResponse(platforms=feed_service.toggle_platform(owner_id, body.platform))


@router.get("/headings", response_model=HeadingsResponse)
async def get_headings(owner_id: UUID = Depends(get_current_user_id)) -> HeadingsResponse:
    return HeadingsResponse(headings=feed_service.get_headings(owner_id))


@router.post("/headings", response_model=HeadingsResponse)
async def update_headings(
    body: HeadingsUpdate,
    owner_id: UUID = Depends(get_current_user_id),
) -> HeadingsResponse:
    """Update ``mainHeading`` and/or ``subHeading``."""
    return HeadingsResponse(headings=feed_service.update_headings(owner_id, body))


# ---------------------------------------------------------------------------
# Public feed
# ---------------------------------------------------------------------------

@router.get("/{user_id}", response_model=FeedResponse)
async def public_feed(user_id: UUID) -> FeedResponse:
    """Feed for a public profile page; no authentication."""
    return FeedResponse(feed_settings=feed_service.get_feed(user_id))
