"""Post persistence and management.

All queries are scoped by ``owner_id``.  The ``(owner_id, canonical_url)``
unique index is the only duplicate guard: a second insert surfaces as
``DuplicatePost``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError

from app.core.errors import DuplicatePost, PostNotFound, UpstreamUnavailable
from app.db.supabase import get_supabase
from app.models.click import ClickCreate
from app.models.enums import Device, Platform
from app.models.post import Post, PostCreate, PostDetailsUpdate
from app.services.clicks import record_click
from app.services.extractors.tiktok import refresh_video_url
from app.services.fetch import FetchClient, accept_below_500, browser_headers

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

def create_post(payload: PostCreate) -> Post:
    """Insert a post; raises ``DuplicatePost`` on the unique index."""
    client = get_supabase()
    try:
        result = client.table("posts").insert(payload.model_dump(mode="json")).execute()
    except APIError as exc:
        if exc.code == _UNIQUE_VIOLATION:
            logger.info(
                "post_duplicate",
                extra={"owner_id": str(payload.owner_id), "canonical_url": payload.canonical_url},
            )
            raise DuplicatePost(
                "This post has already been added",
                detail="DuplicatePost",
            ) from exc
        raise
    post = Post(**result.data[0])
    logger.info(
        "post_created",
        extra={"post_id": str(post.id), "platform": post.platform.value,
               "method": post.extraction_method},
    )
    return post


def _quoted_pattern(term: str) -> str:
    """``%term%`` as a double-quoted PostgREST value so commas and parens stay literal."""
    escaped = term.replace("\\", "\\\\").replace('"', '\\"')
    return f'"%{escaped}%"'


def list_posts(
    owner_id: UUID,
    platform: Platform | None = None,
    *,
    selected: bool | None = None,
    with_product: bool = False,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = None,
) -> list[Post]:
    """Owner's posts, newest first, with optional filters."""
    query = get_supabase().table("posts").select("*").eq("owner_id", str(owner_id))
    if platform is not None:
        query = query.eq("platform", platform.value)
    if selected is not None:
        query = query.eq("selected", selected)
    if with_product:
        query = query.neq("product_link", "")
    if start is not None:
        query = query.gte("added_at", start.isoformat())
    if end is not None:
        query = query.lte("added_at", end.isoformat())
    if search:
        pattern = _quoted_pattern(search.strip())
        query = query.or_(f"title.ilike.{pattern},description.ilike.{pattern}")
    result = query.order("added_at", desc=True).execute()
    return [Post(**row) for row in result.data or []]


def find_post(owner_id: UUID, platform: Platform, canonical_url: str) -> Post:
    result = (
        get_supabase()
        .table("posts")
        .select("*")
        .eq("owner_id", str(owner_id))
        .eq("platform", platform.value)
        .eq("canonical_url", canonical_url)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise PostNotFound()
    return Post(**result.data[0])


def count_by_platform(owner_id: UUID) -> dict[str, int]:
    result = (
        get_supabase()
        .table("posts")
        .select("platform")
        .eq("owner_id", str(owner_id))
        .execute()
    )
    counts = {p.value: 0 for p in Platform}
    for row in result.data or []:
        if row.get("platform") in counts:
            counts[row["platform"]] += 1
    counts["total"] = sum(counts.values())
    return counts


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

def _update(owner_id: UUID, post_id: UUID, values: dict[str, Any]) -> Post:
    result = (
        get_supabase()
        .table("posts")
        .update(values)
        .eq("owner_id", str(owner_id))
        .eq("id", str(post_id))
        .execute()
    )
    if not result.data:
        raise PostNotFound()
    return Post(**result.data[0])


def set_selected(owner_id: UUID, post_ids: list[UUID], selected: bool) -> int:
    """Select or deselect posts for the public feed; returns rows changed."""
    if not post_ids:
        return 0
    result = (
        get_supabase()
        .table("posts")
        .update({"selected": selected})
        .eq("owner_id", str(owner_id))
        .in_("id", [str(pid) for pid in post_ids])
        .execute()
    )
    changed = len(result.data or [])
    logger.info("posts_selection_changed", extra={"selected": selected, "changed": changed})
    return changed


def update_details(owner_id: UUID, post_id: UUID, update: PostDetailsUpdate) -> Post:
    values = update.model_dump(exclude_none=True)
    if not values:
        return get_post(owner_id, post_id)
    return _update(owner_id, post_id, values)


def update_product_link(owner_id: UUID, post_id: UUID, product_link: str) -> Post:
    return _update(owner_id, post_id, {"product_link": product_link})


def get_post(owner_id: UUID, post_id: UUID) -> Post:
    result = (
        get_supabase()
        .table("posts")
        .select("*")
        .eq("owner_id", str(owner_id))
        .eq("id", str(post_id))
        .limit(1)
        .execute()
    )
    if not result.data:
        raise PostNotFound()
    return Post(**result.data[0])


def delete_post(owner_id: UUID, post_id: UUID) -> None:
    result = (
        get_supabase()
        .table("posts")
        .delete()
        .eq("owner_id", str(owner_id))
        .eq("id", str(post_id))
        .execute()
    )
    if not result.data:
        raise PostNotFound()
    logger.info("post_deleted", extra={"post_id": str(post_id)})


# ---------------------------------------------------------------------------
# Public post details
# ---------------------------------------------------------------------------

async def video_url_is_playable(video_url: str, fetcher: FetchClient) -> bool:
    """True when *video_url* still serves video (probing the first KiB)."""
    headers = browser_headers(Platform.tiktok.value, kind="video")
    headers["Range"] = "bytes=0-1023"
    try:
        result = await fetcher.fetch(
            video_url,
            headers=headers,
            timeout=5.0,
            accept_status=accept_below_500,
        )
    except UpstreamUnavailable:
        return False
    return result.status != 403 and "video" in result.content_type


async def get_post_details(
    owner_id: UUID,
    platform: Platform,
    url: str,
    fetcher: FetchClient,
    *,
    country: str | None = None,
    device: Device = Device.desktop,
) -> Post:
    """Look up a public post, refresh a stale TikTok video URL, record a click."""
    post = find_post(owner_id, platform, url)

    stale_video = post.metadata.video_url
    if platform is Platform.tiktok and stale_video and not await video_url_is_playable(stale_video, fetcher):
        fresh = await refresh_video_url(post.canonical_url, fetcher)
        if fresh and fresh != stale_video:
            metadata = post.metadata.model_copy(update={"video_url": fresh})
            post = _update(owner_id, post.id, {"metadata": metadata.model_dump(mode="json")})
            logger.info("tiktok_video_url_refreshed", extra={"post_id": str(post.id)})

    record_click(
        ClickCreate(
            owner_id=owner_id,
            post_id=post.id,
            platform=platform,
            country=country or "unknown",
            device=device,
        )
    )
    return post
