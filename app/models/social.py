"""Request / response models for the post import endpoints."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.enums import Platform


class ImportRequest(BaseModel):
    """Body of POST /api/v1/social/{platform}.

    ``url`` may be a plain link or an embed snippet; ``embedCode`` is only
    meaningful for Instagram.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    embed_code: str | None = None


class ImportResponse(BaseModel):
    """Successful (possibly degraded) import result."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    platform: Platform
    url: str
    image_url: str
    extraction_method: str
    post_id: UUID
    degraded: bool = False
    title: str | None = None
    caption: str | None = None
    author_name: str | None = None
    author_avatar_url: str | None = None
    video_id: str | None = None
    video_url: str | None = None
    embed_code: str | None = None
    message: str = ""
