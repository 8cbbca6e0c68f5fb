"""Pydantic models for the ``clicks`` table and the click analytics response."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import Device, Platform


class ClickCreate(BaseModel):
    """Payload for recording a click on a feed post."""
    owner_id: UUID
    post_id: UUID
    platform: Platform
    country: str = "unknown"
    device: Device = Device.desktop


class Click(BaseModel):
    """Full click record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    post_id: UUID
    platform: Platform
    country: str
    device: Device = Device.desktop
    clicked_at: datetime


# --- Analytics ---

class WeeklyClicks(BaseModel):
    """Click count for one ISO week (``week_start`` is the Monday)."""
    week_start: str
    clicks: int


class DeviceShare(BaseModel):
    """Percentage of clicks per device class."""
    desktop: float = 0.0
    mobile: float = 0.0


class ClickSummaryResponse(BaseModel):
    """Full response for GET /api/v1/analytics/clicks."""
    success: bool = True
    weekly: dict[str, list[WeeklyClicks]] = Field(default_factory=dict)
    totals: dict[str, int] = Field(default_factory=dict)
    devices: DeviceShare = Field(default_factory=DeviceShare)
    countries: dict[str, int] = Field(default_factory=dict)
    total_clicks: int = 0
