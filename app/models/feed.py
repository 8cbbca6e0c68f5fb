"""Models for the ``profiles`` table and the public feed.

The public feed is consumed by the profile page front end, which expects
camelCase keys; these models serialize with camelCase aliases.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.constants import DEFAULT_FEED_LAYOUT, DEFAULT_POSTS_COUNT
from app.models.enums import Platform


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectedPlatforms(_CamelModel):
    """Which platforms a user shows in the public feed."""
    instagram: bool = True
    facebook: bool = True
    youtube: bool = True
    tiktok: bool = True

    def enabled(self) -> list[Platform]:
        """Return enabled platforms in display order."""
        order = (Platform.instagram, Platform.facebook, Platform.youtube, Platform.tiktok)
        return [p for p in order if getattr(self, p.value)]


class FeedSettings(_CamelModel):
    """Layout and size of the public feed."""
    layout: str = DEFAULT_FEED_LAYOUT
    posts_count: str = DEFAULT_POSTS_COUNT


class FeedSettingUpdate(BaseModel):
    """Payload for POST /feed/settings: one setting at a time."""
    setting: Literal["layout", "postsCount"]
    value: str


class PlatformToggle(BaseModel):
    platform: Platform


class FeedPost(_CamelModel):
    """One tile of the public feed."""
    image_url: str
    url: str
    platform: Platform


class FeedView(_CamelModel):
    """Feed settings plus the rendered tiles."""
    main_heading: str
    sub_heading: str
    layout: str
    posts_count: str
    platforms: SelectedPlatforms
    posts: list[FeedPost] = Field(default_factory=list)


class FeedResponse(_CamelModel):
    """Full response for GET /api/v1/feed/{user_id}."""
    success: bool = True
    feed_settings: FeedView


class FeedSettingsResponse(_CamelModel):
    success: bool = True
    settings: FeedSettings


class PlatformsResponse(_CamelModel):
    success: bool = True
    platforms: SelectedPlatforms


class Headings(_CamelModel):
    """Title lines shown above the public feed."""
    main_heading: str
    sub_heading: str


class HeadingsUpdate(_CamelModel):
    """Payload for POST /feed/headings; omitted fields are left as they are."""
    main_heading: str | None = Field(None, max_length=120)
    sub_heading: str | None = Field(None, max_length=120)


class HeadingsResponse(_CamelModel):
    success: bool = True
    headings: Headings
