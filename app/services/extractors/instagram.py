"""Instagram extractor: scrapes the public embed page."""

from __future__ import annotations

import logging

from app.core.errors import NoContentFound, UpstreamUnavailable
from app.models.enums import Platform
from app.models.post import PostMetadata
from app.services.extractors.base import ExtractionResult, Extractor, Strategy, run_cascade
from app.services.extractors.heuristics import (
    clean_instagram_url,
    display_resources,
    display_url_regex,
    first_text,
    instagram_embed_assets,
    json_ld_images,
    meta_images,
    meta_text,
    og_image_text_scan,
    srcset_candidates,
)
from app.services.fetch import FetchClient, browser_headers
from app.services.normalizer import NormalizedUrl

logger = logging.getLogger(__name__)

STRATEGIES: list[Strategy] = [
    Strategy("meta_tags", meta_images),
    Strategy("display_resources", display_resources),
    Strategy("srcset_largest", srcset_candidates),
    Strategy("json_ld", json_ld_images),
    Strategy("display_url", display_url_regex),
    Strategy("embed_asset", instagram_embed_assets),
    Strategy("og_image", og_image_text_scan),
]


def _metadata(page: str, normalized: NormalizedUrl) -> PostMetadata:
    caption = first_text(page, ".Caption", ".CaptionComments") or meta_text(page, "og:description")
    return PostMetadata(
        title=meta_text(page, "og:title"),
        caption=caption,
        author_name=first_text(page, ".UsernameText", ".Username"),
        embed_code=normalized.embed_code,
        shortcode=normalized.identifier,
    )


class InstagramExtractor(Extractor):
    platform = Platform.instagram

    async def extract(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult:
        try:
            page = await fetcher.fetch_with_retry(
                normalized.fetch_url,
                headers=browser_headers(self.platform.value),
            )
        except UpstreamUnavailable as exc:
            raise NoContentFound(
                "Could not access the Instagram post. It may be private or removed",
                detail=exc.detail,
            ) from exc

        hit = run_cascade(page.text, STRATEGIES)
        if hit is None:
            logger.warning(
                "instagram_no_image",
                extra={"url": normalized.canonical_url, "status_code": page.status,
                       "body_excerpt": page.text[:200]},
            )
            raise NoContentFound(
                "Could not find image for the Instagram post",
                detail="NoImageFound",
            )

        image_url = clean_instagram_url(hit.url)
        metadata = _metadata(page.text, normalized)
        metadata.degraded = hit.degraded
        logger.info(
            "instagram_image_extracted",
            extra={"shortcode": normalized.identifier, "method": hit.method,
                   "degraded": hit.degraded},
        )
        return ExtractionResult(
            image_url=image_url,
            method=hit.method,
            metadata=metadata,
            degraded=hit.degraded,
        )
