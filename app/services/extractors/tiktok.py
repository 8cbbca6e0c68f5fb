"""TikTok extractor.

Three tiers, all of which succeed: the helper API, the page's Open Graph
tags, and finally the TikTok logo.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from app.core.config import settings
from app.core.constants import TIKTOK_PLACEHOLDER
from app.core.errors import UpstreamUnavailable
from app.models.enums import Platform
from app.models.post import PostMetadata
from app.services.extractors.base import ExtractionResult, Extractor
from app.services.extractors.heuristics import absolutize_url, meta_text
from app.services.fetch import FetchClient, browser_headers
from app.services.normalizer import NormalizedUrl

logger = logging.getLogger(__name__)

HELPER_METHOD = "tikwm_api"
OPEN_GRAPH_METHOD = "open_graph"
FALLBACK_METHOD = "fallback_logo"


async def fetch_helper_data(
    video_url: str,
    fetcher: FetchClient,
    helper_url: str | None = None,
) -> dict[str, Any]:
    """Return the helper API's ``data`` object for *video_url*.

    Raises ``UpstreamUnavailable`` when the call fails or the payload has no
    ``data`` object.
    """
    endpoint = f"{helper_url or settings.TIKTOK_HELPER_API_URL}?{urlencode({'url': video_url})}"
    result = await fetcher.fetch_with_retry(endpoint, headers=browser_headers(kind="api"))
    try:
        payload = result.json()
    except ValueError as exc:
        raise UpstreamUnavailable(
            "TikTok helper API returned invalid JSON", url=endpoint, status=result.status,
            detail="InvalidJSON",
        ) from exc
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        logger.warning(
            "tiktok_helper_empty",
            extra={"url": video_url, "body_excerpt": result.text[:200]},
        )
        raise UpstreamUnavailable(
            "Invalid response format from TikTok helper API", url=endpoint,
            status=result.status, detail=str(payload.get("msg", "")) if isinstance(payload, dict) else None,
        )
    return data


async def refresh_video_url(
    video_url: str,
    fetcher: FetchClient,
    helper_url: str | None = None,
) -> str | None:
    """Ask the helper API for a fresh playable URL; ``None`` when it fails."""
    try:
        data = await fetch_helper_data(video_url, fetcher, helper_url)
    except UpstreamUnavailable as exc:
        logger.warning("tiktok_video_refresh_failed", extra={"url": video_url, "error_message": exc.message})
        return None
    return absolutize_url(data.get("wmplay") or data.get("play"))


def placeholder_result() -> ExtractionResult:
    return ExtractionResult(
        image_url=TIKTOK_PLACEHOLDER,
        method=FALLBACK_METHOD,
        metadata=PostMetadata(degraded=True),
        degraded=True,
        rehost=False,
        placeholder=True,
    )


class TikTokExtractor(Extractor):
    platform = Platform.tiktok

    def __init__(self, helper_url: str | None = None) -> None:
        self.helper_url = helper_url

    async def _from_helper(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult | None:
        try:
            data = await fetch_helper_data(normalized.canonical_url, fetcher, self.helper_url)
        except UpstreamUnavailable as exc:
            logger.warning(
                "tiktok_helper_failed",
                extra={"url": normalized.canonical_url, "error_message": exc.message},
            )
            return None

        cover = absolutize_url(data.get("origin_cover") or data.get("cover"))
        if cover is None:
            logger.warning("tiktok_helper_no_cover", extra={"url": normalized.canonical_url})
            return None

        author = data.get("author") or {}
        caption = data.get("title") or ""
        return ExtractionResult(
            image_url=cover,
            method=HELPER_METHOD,
            metadata=PostMetadata(
                title=caption,
                caption=caption,
                video_id=str(data.get("id") or normalized.identifier or "") or None,
                author_name=author.get("unique_id") or None,
                author_avatar_url=absolutize_url(author.get("avatar")),
                video_url=absolutize_url(data.get("wmplay") or data.get("play")),
            ),
        )

    async def _from_open_graph(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult | None:
        try:
            page = await fetcher.fetch(
                normalized.fetch_url,
                headers=browser_headers(self.platform.value),
                timeout=10.0,
            )
        except UpstreamUnavailable as exc:
            logger.warning(
                "tiktok_open_graph_failed",
                extra={"url": normalized.canonical_url, "error_message": exc.message},
            )
            return None

        image = absolutize_url(meta_text(page.text, "og:image"))
        if image is None:
            logger.warning(
                "tiktok_open_graph_no_image",
                extra={"url": normalized.canonical_url, "body_excerpt": page.text[:200]},
            )
            return None
        caption = meta_text(page.text, "og:description") or ""
        return ExtractionResult(
            image_url=image,
            method=OPEN_GRAPH_METHOD,
            metadata=PostMetadata(
                title=meta_text(page.text, "og:title") or caption,
                caption=caption,
                video_id=normalized.identifier,
            ),
        )

    async def extract(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult:
        result = await self._from_helper(normalized, fetcher)
        if result is None:
            result = await self._from_open_graph(normalized, fetcher)
        if result is None:
            logger.warning("tiktok_fallback_logo", extra={"url": normalized.canonical_url})
            return placeholder_result()
        logger.info(
            "tiktok_image_extracted",
            extra={"url": normalized.canonical_url, "method": result.method},
        )
        return result
