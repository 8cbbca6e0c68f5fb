"""Click analytics endpoint."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.auth import get_current_user_id
from app.models.click import ClickSummaryResponse
from app.services.clicks import get_click_summary

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# GET /api/v1/analytics/clicks
# ---------------------------------------------------------------------------

@router.get("/clicks", response_model=ClickSummaryResponse)
async def click_analytics(owner_id: UUID = Depends(get_current_user_id)) -> ClickSummaryResponse:
    """Weekly clicks per platform, totals, device split and countries."""
    return get_click_summary(owner_id)
