"""Serve-time image proxy.

Re-streams third-party images with a Referer matching their host so
browsers can display CDN assets that refuse hotlinking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.core.constants import ACCEPT_IMAGE, ACCEPT_LANGUAGE, GENERIC_PLACEHOLDER, MOBILE_USER_AGENT, PLATFORM_PLACEHOLDERS
from app.core.errors import InvalidInput, NoContentFound, UpstreamUnavailable
from app.models.enums import Platform
from app.services.fetch import FetchClient, FetchResult, accept_below_400, browser_headers, platform_for_url
from app.services.image_cache import ImageCache

logger = logging.getLogger(__name__)

_BLOCKED_STATUSES = frozenset({401, 403})


@dataclass(frozen=True)
class ProxiedImage:
    """Either image bytes to stream or a URL to redirect to."""

    content: bytes | None = None
    content_type: str = "image/jpeg"
    redirect_url: str | None = None
    cached: bool = False


def placeholder_for(url: str) -> str:
    platform = platform_for_url(url)
    return PLATFORM_PLACEHOLDERS.get(platform or "", GENERIC_PLACEHOLDER)


def _streamed(result: FetchResult) -> ProxiedImage:
    return ProxiedImage(content=result.content, content_type=result.content_type or "image/jpeg")


async def _mobile_retry(url: str, fetcher: FetchClient) -> ProxiedImage | None:
    try:
        result = await fetcher.fetch(
            url,
            headers={
                "User-Agent": MOBILE_USER_AGENT,
                "Accept": ACCEPT_IMAGE,
                "Accept-Language": ACCEPT_LANGUAGE,
            },
            timeout=10.0,
        )
    except UpstreamUnavailable as exc:
        logger.warning("image_proxy_mobile_retry_failed", extra={"url": url, "status_code": exc.status})
        return None
    return _streamed(result)


async def proxy_image(url: str, fetcher: FetchClient, cache: ImageCache) -> ProxiedImage:
    """Fetch *url* for re-streaming, or decide where to redirect instead.

    Raises ``InvalidInput`` for an empty URL and ``NoContentFound`` when the
    upstream answers 404.
    """
    if not url:
        raise InvalidInput("Image URL is required", detail="InvalidInput")

    cached = cache.get(url)
    if cached:
        logger.debug("image_proxy_cache_hit", extra={"url": url})
        return ProxiedImage(redirect_url=cached, cached=True)

    platform = platform_for_url(url)
    try:
        result = await fetcher.fetch(
            url,
            headers=browser_headers(platform, kind="image"),
            accept_status=accept_below_400,
        )
    except UpstreamUnavailable as exc:
        if platform == Platform.instagram.value and exc.status in _BLOCKED_STATUSES:
            retried = await _mobile_retry(url, fetcher)
            if retried is not None:
                return retried
        if exc.status == 404:
            raise NoContentFound("Image not found", detail=exc.detail) from exc
        fallback = placeholder_for(url)
        logger.info(
            "image_proxy_placeholder",
            extra={"url": url, "status_code": exc.status, "placeholder": fallback},
        )
        return ProxiedImage(redirect_url=fallback)

    cache.set(url, result.url)
    return _streamed(result)
