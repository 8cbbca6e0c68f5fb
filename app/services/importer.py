"""Post import pipeline.

normalize -> extract -> probe -> rehost -> persist
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.models.enums import Platform
from app.models.post import PostCreate
from app.models.social import ImportRequest, ImportResponse
from app.services.extractors.registry import get_extractor
from app.services.fetch import FetchClient
from app.services.normalizer import normalize
from app.services.posts import create_post
from app.services.rehost import AssetUploader, rehost

logger = logging.getLogger(__name__)

_DISPLAY_NAMES: dict[Platform, str] = {
    Platform.youtube: "YouTube",
    Platform.instagram: "Instagram",
    Platform.facebook: "Facebook",
    Platform.tiktok: "TikTok",
}


async def import_post(
    owner_id: UUID,
    platform: Platform,
    request: ImportRequest,
    fetcher: FetchClient,
    uploader: AssetUploader,
) -> ImportResponse:
    """Import one post for *owner_id*.

    Raises the ``AppError`` subclasses of the normalizer and of extractors
    without a placeholder, and ``DuplicatePost`` from persistence.
    """
    normalized = normalize(platform, request.url, request.embed_code)
    logger.info(
        "import_started",
        extra={"platform": platform.value, "canonical_url": normalized.canonical_url},
    )

    result = await get_extractor(platform).extract(normalized, fetcher)
    metadata = result.metadata
    image_url = result.image_url

    if not result.placeholder:
        await fetcher.probe(image_url, platform.value)
        if result.rehost:
            image_url = (await rehost(image_url, platform.value, fetcher, uploader)).url
            if platform is Platform.tiktok and metadata.author_avatar_url:
                avatar = await rehost(metadata.author_avatar_url, platform.value, fetcher, uploader)
                metadata.author_avatar_url = avatar.url

    post = create_post(
        PostCreate(
            owner_id=owner_id,
            platform=platform,
            canonical_url=normalized.canonical_url,
            primary_image_url=image_url,
            extraction_method=result.method,
            metadata=metadata,
        )
    )

    name = _DISPLAY_NAMES[platform]
    message = f"{name} post added successfully"
    if result.placeholder:
        message = f"{name} post added with a placeholder image"

    logger.info(
        "import_completed",
        extra={"post_id": str(post.id), "platform": platform.value, "method": result.method,
               "degraded": result.degraded},
    )
    return ImportResponse(
        platform=platform,
        url=post.canonical_url,
        image_url=post.primary_image_url,
        extraction_method=post.extraction_method,
        post_id=post.id,
        degraded=result.degraded,
        title=metadata.title,
        caption=metadata.caption,
        author_name=metadata.author_name,
        author_avatar_url=metadata.author_avatar_url,
        video_id=metadata.video_id,
        video_url=metadata.video_url,
        embed_code=metadata.embed_code,
        message=message,
    )
