"""Post management endpoints for the authenticated owner."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_user_id
from app.models.enums import Platform
from app.models.post import (
    PostCountsResponse,
    PostDetailsUpdate,
    PostListResponse,
    PostResponse,
    PostSelection,
    ProductLinkUpdate,
    SelectionResponse,
)
from app.services import posts as post_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=PostListResponse)
async def list_posts(
    platform: Platform | None = Query(default=None),
    selected: bool | None = Query(default=None),
    with_product: bool = Query(default=False),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    owner_id: UUID = Depends(get_current_user_id),
) -> PostListResponse:
    """List the owner's posts, newest first."""
    items = post_service.list_posts(
        owner_id,
        platform,
        selected=selected,
        with_product=with_product,
        start=start,
        end=end,
        search=search,
    )
    return PostListResponse(count=len(items), posts=items)


@router.get("/counts", response_model=PostCountsResponse)
async def post_counts(owner_id: UUID = Depends(get_current_user_id)) -> PostCountsResponse:
    return PostCountsResponse(counts=post_service.count_by_platform(owner_id))


@router.post("/select", response_model=SelectionResponse)
async def select_posts(
    body: PostSelection,
    owner_id: UUID = Depends(get_current_user_id),
) -> SelectionResponse:
    return SelectionResponse(updated=post_service.set_selected(owner_id, body.post_ids, True))


@router.post("/deselect", response_model=SelectionResponse)
async def deselect_posts(
    body: PostSelection,
    owner_id: UUID = Depends(get_current_user_id),
) -> SelectionResponse:
    return SelectionResponse(updated=post_service.set_selected(owner_id, body.post_ids, False))


@router.patch("/{post_id}/details", response_model=PostResponse)
async def update_post_details(
    post_id: UUID,
    body: PostDetailsUpdate,
    owner_id: UUID = Depends(get_current_user_id),
) -> PostResponse:
    """Edit the title, description or product link overlay."""
    return PostResponse(post=post_service.update_details(owner_id, post_id, body))


@router.patch("/{post_id}/product-link", response_model=PostResponse)
async def update_product_link(
    post_id: UUID,
    body: ProductLinkUpdate,
    owner_id: UUID = Depends(get_current_user_id),
) -> PostResponse:
    return PostResponse(post=post_service.update_product_link(owner_id, post_id, body.product_link))


@router.delete("/{post_id}")
async def delete_post(
    post_id: UUID,
    owner_id: UUID = Depends(get_current_user_id),
) -> dict[str, object]:
    post_service.delete_post(owner_id, post_id)
    return {"success": True, "message": "Post deleted successfully"}
