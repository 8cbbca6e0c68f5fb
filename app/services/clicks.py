"""Click recording and click analytics."""

from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from pydantic import TypeAdapter

from app.db.supabase import get_supabase
from app.models.click import ClickCreate, ClickSummaryResponse, DeviceShare, WeeklyClicks
from app.models.enums import Device, Platform

logger = logging.getLogger(__name__)

_MOBILE_UA = re.compile(r"Mobi|Android|iPhone|iPad|iPod", re.IGNORECASE)
_TIMESTAMP = TypeAdapter(datetime)


def detect_device(user_agent: str | None) -> Device:
    """Classify a User-Agent string as mobile or desktop."""
    if user_agent and _MOBILE_UA.search(user_agent):
        return Device.mobile
    return Device.desktop


def record_click(click: ClickCreate) -> None:
    """Insert one row into ``clicks``."""
    get_supabase().table("clicks").insert(click.model_dump(mode="json")).execute()
    logger.info(
        "click_recorded",
        extra={"post_id": str(click.post_id), "platform": click.platform.value,
               "device": click.device.value},
    )


def week_start(value: str | datetime) -> date:
    """Monday of the ISO week containing *value*."""
    day = _TIMESTAMP.validate_python(value).date()
    return day - timedelta(days=day.weekday())


def summarize_clicks(rows: list[dict[str, Any]]) -> ClickSummaryResponse:
    """Group click rows by platform and ISO week, device, and country."""
    weekly: dict[str, Counter[str]] = {p.value: Counter() for p in Platform}
    totals: Counter[str] = Counter({p.value: 0 for p in Platform})
    devices: Counter[str] = Counter()
    countries: dict[str, int] = defaultdict(int)

    for row in rows:
        platform = row.get("platform")
        if platform not in weekly:
            continue
        weekly[platform][week_start(row["clicked_at"]).isoformat()] += 1
        totals[platform] += 1
        devices["mobile" if row.get("device") == Device.mobile.value else "desktop"] += 1
        if row.get("country"):
            countries[row["country"]] += 1

    total = sum(totals.values())
    share = DeviceShare()
    if total:
        share = DeviceShare(
            desktop=devices["desktop"] / total * 100,
            mobile=devices["mobile"] / total * 100,
        )

    return ClickSummaryResponse(
        weekly={
            platform: [WeeklyClicks(week_start=w, clicks=c) for w, c in sorted(weeks.items())]
            for platform, weeks in weekly.items()
        },
        totals=dict(totals),
        devices=share,
        countries=dict(countries),
        total_clicks=total,
    )


def get_click_summary(owner_id: UUID) -> ClickSummaryResponse:
    """Click analytics for every post the owner has."""
    result = (
        get_supabase()
        .table("clicks")
        .select("platform, device, country, clicked_at")
        .eq("owner_id", str(owner_id))
        .execute()
    )
    return summarize_clicks(result.data or [])
