"""YouTube extractor backed by the Data API v3."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from app.core.config import settings
from app.core.errors import UpstreamAPIError, UpstreamUnavailable
from app.models.enums import Platform
from app.models.post import PostMetadata
from app.services.extractors.base import ExtractionResult, Extractor
from app.services.fetch import FetchClient, browser_headers
from app.services.normalizer import NormalizedUrl

logger = logging.getLogger(__name__)

METHOD = "youtube_api"

THUMBNAIL_LADDER: tuple[str, ...] = ("maxres", "standard", "high", "medium", "default")

_EMBED_TEMPLATE = (
    '<iframe width="560" height="315" src="https://www.youtube.com/embed/{video_id}" '
    'title="YouTube video player" frameborder="0" allow="accelerometer; autoplay; '
    'clipboard-write; encrypted-media; gyroscope; picture-in-picture; web-share" '
    "allowfullscreen></iframe>"
)


def best_thumbnail(thumbnails: dict[str, Any]) -> str | None:
    """Highest-resolution thumbnail URL present in a snippet."""
    for size in THUMBNAIL_LADDER:
        entry = thumbnails.get(size)
        if isinstance(entry, dict) and entry.get("url"):
            return entry["url"]
    return None


def embed_code(video_id: str) -> str:
    return _EMBED_TEMPLATE.format(video_id=video_id)


class YouTubeExtractor(Extractor):
    platform = Platform.youtube

    def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
        self._api_key = api_key
        self._base_url = base_url

    @property
    def api_key(self) -> str:
        return self._api_key if self._api_key is not None else settings.YOUTUBE_API_KEY

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.YOUTUBE_API_BASE_URL).rstrip("/")

    async def _first_item(self, fetcher: FetchClient, resource: str, item_id: str) -> dict[str, Any]:
        query = urlencode({"part": "snippet", "id": item_id, "key": self.api_key})
        try:
            result = await fetcher.fetch_with_retry(
                f"{self.base_url}/{resource}?{query}",
                headers=browser_headers(kind="api"),
            )
            payload = result.json()
        except UpstreamUnavailable as exc:
            raise UpstreamAPIError(
                f"YouTube API {resource} request failed",
                detail=exc.detail,
            ) from exc
        except ValueError as exc:
            raise UpstreamAPIError(
                f"YouTube API {resource} returned invalid JSON",
                detail="InvalidJSON",
            ) from exc

        items = payload.get("items") if isinstance(payload, dict) else None
        if not items:
            logger.warning("youtube_api_no_items", extra={"resource": resource, "item_id": item_id})
            raise UpstreamAPIError(
                "Video not found" if resource == "videos" else "Channel not found",
                detail="NotFound",
            )
        return items[0]

    async def extract(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult:
        if not self.api_key:
            raise UpstreamAPIError("YouTube API key is not configured", detail="MissingAPIKey")

        video_id = normalized.identifier or ""
        video = await self._first_item(fetcher, "videos", video_id)
        snippet = video.get("snippet") or {}
        thumbnail = best_thumbnail(snippet.get("thumbnails") or {})
        if thumbnail is None:
            raise UpstreamAPIError("Video has no thumbnail", detail="NoThumbnail")

        channel = await self._first_item(fetcher, "channels", snippet.get("channelId", ""))
        channel_snippet = channel.get("snippet") or {}

        logger.info("youtube_video_resolved", extra={"video_id": video_id})
        return ExtractionResult(
            image_url=thumbnail,
            method=METHOD,
            metadata=PostMetadata(
                title=snippet.get("title"),
                description=snippet.get("description"),
                author_name=channel_snippet.get("title") or snippet.get("channelTitle"),
                author_avatar_url=best_thumbnail(channel_snippet.get("thumbnails") or {}),
                video_id=video_id,
                embed_code=embed_code(video_id),
            ),
            rehost=False,
        )
