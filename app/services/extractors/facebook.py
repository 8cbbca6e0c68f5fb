"""Facebook extractor.

Facebook blocks most anonymous scraping, so any failure after the URL has
been validated resolves to the Facebook logo rather than an error.
"""

from __future__ import annotations

import logging

from app.core.constants import FACEBOOK_PLACEHOLDER
from app.core.errors import UpstreamUnavailable
from app.models.enums import Platform
from app.models.post import PostMetadata
from app.services.extractors.base import ExtractionResult, Extractor, Strategy, run_cascade
from app.services.extractors.heuristics import (
    alternate_meta_images,
    facebook_cdn_regex,
    facebook_img_candidates,
    facebook_video_thumbnail,
    json_ld_images,
    meta_content,
    meta_text,
)
from app.services.fetch import FetchClient, accept_below_500, browser_headers
from app.services.normalizer import VIDEO_KINDS, NormalizedUrl

logger = logging.getLogger(__name__)

FALLBACK_METHOD = "fallback_logo"


def _og_image(page: str) -> list[str]:
    return meta_content(page, "og:image")


_TAIL: list[Strategy] = [
    Strategy("alternative_meta", alternate_meta_images),
    Strategy("html_image", facebook_img_candidates),
    Strategy("json_ld", json_ld_images),
    Strategy("regex_match", facebook_cdn_regex),
]


def strategies_for(kind: str) -> list[Strategy]:
    """Video permalinks also look at the inline video thumbnail JSON."""
    if kind in VIDEO_KINDS:
        return [Strategy("og_image", _og_image), Strategy("video_thumbnail", facebook_video_thumbnail), *_TAIL]
    return [Strategy("og_image", _og_image), *_TAIL]


def placeholder_result() -> ExtractionResult:
    return ExtractionResult(
        image_url=FACEBOOK_PLACEHOLDER,
        method=FALLBACK_METHOD,
        metadata=PostMetadata(degraded=True),
        degraded=True,
        rehost=False,
        placeholder=True,
    )


class FacebookExtractor(Extractor):
    platform = Platform.facebook

    async def extract(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult:
        try:
            page = await fetcher.fetch_with_retry(
                normalized.fetch_url,
                headers=browser_headers(self.platform.value),
                accept_status=accept_below_500,
            )
        except UpstreamUnavailable as exc:
            logger.warning(
                "facebook_fallback_logo",
                extra={"url": normalized.canonical_url, "reason": "fetch_failed",
                       "error_message": exc.detail},
            )
            return placeholder_result()

        hit = run_cascade(page.text, strategies_for(normalized.kind))
        if hit is None:
            logger.warning(
                "facebook_fallback_logo",
                extra={"url": normalized.canonical_url, "reason": "no_image",
                       "status_code": page.status, "body_excerpt": page.text[:200]},
            )
            return placeholder_result()

        metadata = PostMetadata(
            title=meta_text(page.text, "og:title"),
            description=meta_text(page.text, "og:description"),
            degraded=hit.degraded,
        )
        logger.info(
            "facebook_image_extracted",
            extra={"url": normalized.canonical_url, "method": hit.method,
                   "degraded": hit.degraded},
        )
        return ExtractionResult(
            image_url=hit.url.replace("&amp;", "&"),
            method=hit.method,
            metadata=metadata,
            degraded=hit.degraded,
        )
