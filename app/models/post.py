"""Pydantic models for the ``posts`` table.

``metadata`` holds the platform-specific bag produced by extraction;
``title``, ``description`` and ``product_link`` are user-editable overlays
that never come from scraping.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import Platform


class PostMetadata(BaseModel):
    """Platform-specific fields captured at import time."""
    title: str | None = None
    caption: str | None = None
    description: str | None = None
    author_name: str | None = None
    author_avatar_url: str | None = None
    embed_code: str | None = None
    video_id: str | None = None
    video_url: str | None = None  # TikTok only; expires
    shortcode: str | None = None
    degraded: bool = False


class PostCreate(BaseModel):
    """Payload for inserting a new post (unique on owner_id + canonical_url)."""
    owner_id: UUID
    platform: Platform
    canonical_url: str
    primary_image_url: str
    extraction_method: str
    metadata: PostMetadata = Field(default_factory=PostMetadata)
    title: str = ""
    description: str = ""
    product_link: str = ""
    selected: bool = True


class PostDetailsUpdate(BaseModel):
    """User overlay fields; ``None`` leaves a field unchanged."""
    title: str | None = None
    description: str | None = None
    product_link: str | None = None


class Post(BaseModel):
    """Full post record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    platform: Platform
    canonical_url: str
    primary_image_url: str
    extraction_method: str = ""
    metadata: PostMetadata = Field(default_factory=PostMetadata)
    title: str = ""
    description: str = ""
    product_link: str = ""
    selected: bool = True
    added_at: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        """Return a JSON-safe dict suitable for API responses."""
        return self.model_dump(mode="json")


# --- API payloads ---

class PostSelection(BaseModel):
    """Body of POST /posts/select and /posts/deselect."""
    post_ids: list[UUID]


class ProductLinkUpdate(BaseModel):
    product_link: str


class PostResponse(BaseModel):
    success: bool = True
    post: Post


class PostListResponse(BaseModel):
    success: bool = True
    count: int = 0
    posts: list[Post] = Field(default_factory=list)


class SelectionResponse(BaseModel):
    success: bool = True
    updated: int = 0


class PostCountsResponse(BaseModel):
    success: bool = True
    counts: dict[str, int] = Field(default_factory=dict)
