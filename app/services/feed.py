"""Public feed and per-user feed settings (``profiles`` table)."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from app.core.constants import (
    DEFAULT_FEED_LAYOUT,
    DEFAULT_MAIN_HEADING,
    DEFAULT_POSTS_COUNT,
    DEFAULT_SUB_HEADING,
    FEED_LAYOUTS,
    FEED_POSTS_COUNTS,
)
from app.core.errors import InvalidInput, ProfileNotFound
from app.db.supabase import get_supabase
from app.models.enums import Platform
from app.models.feed import (
    FeedPost,
    FeedSettings,
    FeedSettingUpdate,
    FeedView,
    Headings,
    HeadingsUpdate,
    SelectedPlatforms,
)

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = "id, main_heading, sub_heading, feed_layout, posts_count, selected_platforms"


def _get_profile(user_id: UUID) -> dict[str, Any]:
    result = (
        get_supabase()
        .table("profiles")
        .select(_PROFILE_COLUMNS)
        .eq("id", str(user_id))
        .limit(1)
        .execute()
    )
    if not result.data:
        raise ProfileNotFound()
    return result.data[0]


def _update_profile(user_id: UUID, values: dict[str, Any]) -> dict[str, Any]:
    result = get_supabase().table("profiles").update(values).eq("id", str(user_id)).execute()
    if not result.data:
        raise ProfileNotFound()
    return result.data[0]


def _platforms(profile: dict[str, Any]) -> SelectedPlatforms:
    return SelectedPlatforms(**(profile.get("selected_platforms") or {}))


def _settings(profile: dict[str, Any]) -> FeedSettings:
    return FeedSettings(
        layout=profile.get("feed_layout") or DEFAULT_FEED_LAYOUT,
        posts_count=str(profile.get("posts_count") or DEFAULT_POSTS_COUNT),
    )


def _headings(profile: dict[str, Any]) -> Headings:
    return Headings(
        main_heading=profile.get("main_heading") or DEFAULT_MAIN_HEADING,
        sub_heading=profile.get("sub_heading") or DEFAULT_SUB_HEADING,
    )


# ---------------------------------------------------------------------------
# Public feed
# ---------------------------------------------------------------------------

def get_feed(user_id: UUID) -> FeedView:
    """Selected posts on enabled platforms, newest first, capped at ``posts_count``."""
    profile = _get_profile(user_id)
    settings = _settings(profile)
    platforms = _platforms(profile)
    enabled = [p.value for p in platforms.enabled()]
    limit = int(settings.posts_count)

    rows: list[dict[str, Any]] = []
    if enabled:
        result = (
            get_supabase()
            .table("posts")
            .select("primary_image_url, canonical_url, platform, added_at")
            .eq("owner_id", str(user_id))
            .eq("selected", True)
            .in_("platform", enabled)
            .order("added_at", desc=True)
            .limit(limit)
            .execute()
        )
        rows = sorted(result.data or [], key=lambda row: row["added_at"], reverse=True)[:limit]

    headings = _headings(profile)
    return FeedView(
        main_heading=headings.main_heading,
        sub_heading=headings.sub_heading,
        layout=settings.layout,
        posts_count=settings.posts_count,
        platforms=platforms,
        posts=[
            FeedPost(image_url=row["primary_image_url"], url=row["canonical_url"], platform=row["platform"])
            for row in rows
        ],
    )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def get_feed_settings(user_id: UUID) -> FeedSettings:
    return _settings(_get_profile(user_id))


def update_feed_setting(user_id: UUID, update: FeedSettingUpdate) -> FeedSettings:
    """Change the layout or the posts count; values outside the enums are rejected."""
    if update.setting == "layout":
        if update.value not in FEED_LAYOUTS:
            raise InvalidInput(f"Invalid layout: {update.value}", detail="InvalidInput")
        values = {"feed_layout": update.value}
    else:
        if update.value not in FEED_POSTS_COUNTS:
            raise InvalidInput(f"Invalid posts count: {update.value}", detail="InvalidInput")
        values = {"posts_count": update.value}

    profile = _update_profile(user_id, values)
    logger.info("feed_setting_updated", extra={"setting": update.setting, "value": update.value})
    return _settings(profile)


def get_platforms(user_id: UUID) -> SelectedPlatforms:
    return _platforms(_get_profile(user_id))


def toggle_platform(user_id: UUID, platform: Platform) -> SelectedPlatforms:
    """Flip one platform's visibility in the public feed."""
    current = get_platforms(user_id)
    flipped = current.model_copy(update={platform.value: not getattr(current, platform.value)})
    _update_profile(user_id, {"selected_platforms": flipped.model_dump()})
    logger.info(
        "feed_platform_toggled",
        extra={"platform": platform.value, "enabled": getattr(flipped, platform.value)},
    )
    return flipped


def get_headings(user_id: UUID) -> Headings:
    return _headings(_get_profile(user_id))


def update_headings(user_id: UUID, update: HeadingsUpdate) -> Headings:
    """Store the given headings; a blank value falls back to the default text."""
    values = {
        column: text.strip()
        for column, text in update.model_dump(exclude_none=True).items()
    }
    if not values:
        raise InvalidInput("mainHeading or subHeading is required", detail="InvalidInput")
    profile = _update_profile(user_id, values)
    logger.info("feed_headings_updated", extra={"fields": sorted(values)})
    return _headings(profile)
