"""Asset rehosting.

Scraped CDN URLs expire or refuse hotlinking, so extracted images are
copied into the project's Supabase Storage bucket.  The ladder is:

1. download the bytes ourselves (with platform Referer) and upload them;
2. let the uploader fetch the remote URL itself;
3. keep the original URL.

Rehosting never fails an import.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

import httpx

from app.core.config import settings
from app.core.constants import DESKTOP_USER_AGENT
from app.core.errors import RehostFailure, UpstreamUnavailable
from app.db.supabase import storage_bucket
from app.models.enums import RehostMethod
from app.services.fetch import FetchClient, browser_headers

logger = logging.getLogger(__name__)


class AssetUploader(Protocol):
    """Upload capability returning a permanent public URL."""

    async def upload_bytes(self, data: bytes, content_type: str) -> str: ...

    async def upload_url(self, url: str) -> str: ...


@dataclass(frozen=True)
class RehostResult:
    url: str
    method: RehostMethod


# ---------------------------------------------------------------------------
# Supabase Storage uploader
# ---------------------------------------------------------------------------

_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def _object_name(content_type: str) -> str:
    base_type = content_type.split(";", 1)[0].strip().lower()
    extension = _EXTENSIONS.get(base_type) or mimetypes.guess_extension(base_type) or ".jpg"
    return f"posts/{uuid4().hex}{extension}"


class SupabaseStorageUploader:
    """Stores assets in a public Supabase Storage bucket."""

    def __init__(self, bucket: str | None = None, timeout: float | None = None) -> None:
        self.bucket = bucket or settings.SUPABASE_STORAGE_BUCKET
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS

    async def upload_bytes(self, data: bytes, content_type: str) -> str:
        path = _object_name(content_type)
        storage = storage_bucket(self.bucket)
        try:
            storage.upload(path, data, {"content-type": content_type, "upsert": "false"})
        except Exception as exc:
            raise RehostFailure("Storage upload failed", detail=str(exc)) from exc
        public_url = storage.get_public_url(path)
        logger.info("asset_uploaded", extra={"bucket": self.bucket, "path": path, "size": len(data)})
        return public_url.rstrip("?")

    async def upload_url(self, url: str) -> str:
        """Fetch *url* with a plain client and store the body."""
        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
                response = await client.get(url, headers={"User-Agent": DESKTOP_USER_AGENT})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RehostFailure("Remote fetch for upload failed", detail=str(exc)) from exc
        content_type = response.headers.get("content-type", "image/jpeg")
        return await self.upload_bytes(response.content, content_type)


_uploader: AssetUploader | None = None


def get_uploader() -> AssetUploader:
    """FastAPI dependency returning the process-wide uploader."""
    global _uploader
    if _uploader is None:
        _uploader = SupabaseStorageUploader()
    return _uploader


# ---------------------------------------------------------------------------
# Ladder
# ---------------------------------------------------------------------------

async def _download(image_url: str, platform: str, fetcher: FetchClient, min_bytes: int) -> tuple[bytes, str]:
    result = await fetcher.fetch_with_retry(
        image_url,
        headers=browser_headers(platform, kind="image"),
    )
    content_type = result.content_type or "image/jpeg"
    if not content_type.startswith("image/"):
        raise RehostFailure("Downloaded asset is not an image", detail=content_type)
    if len(result.content) < min_bytes:
        raise RehostFailure(
            "Downloaded asset is suspiciously small",
            detail=f"{len(result.content)} bytes",
        )
    return result.content, content_type


async def rehost(
    image_url: str,
    platform: str,
    fetcher: FetchClient,
    uploader: AssetUploader,
    *,
    min_bytes: int | None = None,
) -> RehostResult:
    """Copy *image_url* to owned storage, falling back down the ladder."""
    if not settings.REHOST_ENABLED:
        return RehostResult(image_url, RehostMethod.skipped)

    threshold = settings.REHOST_MIN_BYTES if min_bytes is None else min_bytes

    try:
        data, content_type = await _download(image_url, platform, fetcher, threshold)
        url = await uploader.upload_bytes(data, content_type)
        return RehostResult(url, RehostMethod.bytes)
    except (UpstreamUnavailable, RehostFailure) as exc:
        logger.warning(
            "rehost_bytes_failed",
            extra={"url": image_url, "platform": platform, "error_type": type(exc).__name__,
                   "error_message": exc.message, "detail": exc.detail},
        )

    try:
        url = await uploader.upload_url(image_url)
        return RehostResult(url, RehostMethod.remote_url)
    except RehostFailure as exc:
        logger.warning(
            "rehost_remote_failed",
            extra={"url": image_url, "platform": platform, "error_message": exc.message,
                   "detail": exc.detail},
        )

    return RehostResult(image_url, RehostMethod.passthrough)
