"""Per-platform URL normalization.

Turns whatever the user pasted (a link, an ``<iframe>`` snippet, or an
Instagram ``<blockquote>`` embed) into a canonical post URL plus the
identifiers the extractors need.  Pure functions, no I/O.

The canonical URL is the deduplication key for ``(owner_id, canonical_url)``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit, urlunsplit

from app.core.errors import InvalidInput
from app.models.enums import Platform


@dataclass(frozen=True)
class NormalizedUrl:
    """Result of normalizing a raw post reference."""

    platform: Platform
    canonical_url: str
    fetch_url: str
    identifier: str | None = None
    kind: str = "post"
    embed_code: str | None = None


# ---------------------------------------------------------------------------
# YouTube
# ---------------------------------------------------------------------------

_YOUTUBE_IFRAME_SRC = re.compile(
    r"src=[\"'](https?://(?:www\.)?youtube(?:-nocookie)?\.com/embed/[^\"'?&]+)[\"']",
    re.IGNORECASE,
)
_YOUTUBE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def extract_youtube_video_id(raw: str) -> str | None:
    """Return the video id from a watch / short / embed URL or iframe snippet."""
    text = raw.strip()
    if "<iframe" in text.lower():
        match = _YOUTUBE_IFRAME_SRC.search(text)
        if match:
            text = match.group(1)

    video_id: str | None = None
    if "youtube.com/watch" in text:
        query = urlsplit(text).query
        values = parse_qs(query).get("v")
        video_id = values[0] if values else None
    elif "youtu.be/" in text:
        video_id = re.split(r"[?&/#]", text.split("youtu.be/", 1)[1])[0]
    elif "youtube.com/embed/" in text or "youtube-nocookie.com/embed/" in text:
        video_id = re.split(r"[?&/#]", text.split("/embed/", 1)[1])[0]

    if video_id and _YOUTUBE_ID.match(video_id):
        return video_id
    return None


def normalize_youtube(raw: str) -> NormalizedUrl:
    video_id = extract_youtube_video_id(raw)
    if not video_id:
        raise InvalidInput(
            "Could not extract YouTube video ID from the provided URL",
            detail="InvalidInput",
        )
    canonical = f"https://www.youtube.com/watch?v={video_id}"
    return NormalizedUrl(
        platform=Platform.youtube,
        canonical_url=canonical,
        fetch_url=canonical,
        identifier=video_id,
        kind="video",
    )


# ---------------------------------------------------------------------------
# Instagram
# ---------------------------------------------------------------------------

_INSTAGRAM_URL_IN_EMBED = re.compile(r"https://www\.instagram\.com/(?:p|reel|tv)/[^/'\"?]+")
_INSTAGRAM_SHORTCODE = re.compile(r"/(p|reel|tv)/([A-Za-z0-9_-]+)")
_INSTAGRAM_POST_URL = re.compile(r"^https?://(www\.)?instagram\.com/(p|reel|tv)/[a-zA-Z0-9_-]+")


def is_instagram_embed(text: str | None) -> bool:
    """True when *text* is an Instagram ``<blockquote>`` embed snippet."""
    return bool(text) and "<blockquote" in text and "instagram-media" in text


def normalize_instagram(raw: str, embed_code: str | None = None) -> NormalizedUrl:
    """Normalize an Instagram post, reel, or TV reference.

    *raw* may itself be an embed snippet.  A separately supplied
    *embed_code* is kept with the post and is used to recover the URL when
    *raw* is not an Instagram link.
    """
    processed = raw.strip()
    original_embed: str | None = embed_code or None

    if is_instagram_embed(processed):
        original_embed = processed
        match = _INSTAGRAM_URL_IN_EMBED.search(processed)
        if match:
            processed = match.group(0)
    elif embed_code and is_instagram_embed(embed_code):
        original_embed = embed_code
        if "instagram.com" not in processed:
            match = _INSTAGRAM_URL_IN_EMBED.search(embed_code)
            if match:
                processed = match.group(0)

    shortcode_match = _INSTAGRAM_SHORTCODE.search(processed)
    if not _INSTAGRAM_POST_URL.match(processed) or shortcode_match is None:
        raise InvalidInput(
            "Invalid Instagram URL. Must be a post, reel, or TV URL",
            detail="InvalidFormat",
        )

    kind, shortcode = shortcode_match.group(1), shortcode_match.group(2)
    return NormalizedUrl(
        platform=Platform.instagram,
        canonical_url=f"https://www.instagram.com/p/{shortcode}/",
        fetch_url=f"https://www.instagram.com/p/{shortcode}/embed/",
        identifier=shortcode,
        kind={"p": "post", "reel": "reel", "tv": "tv"}[kind],
        embed_code=original_embed,
    )


# ---------------------------------------------------------------------------
# Facebook
# ---------------------------------------------------------------------------

_FB_HOST = r"^https?://(?:www\.)?(?:facebook|fb)\.com/"

_FACEBOOK_SHAPES: list[tuple[str, re.Pattern[str]]] = [
    ("share_post", re.compile(_FB_HOST + r"share/p/([a-zA-Z0-9_-]+)/?")),
    ("share_video", re.compile(_FB_HOST + r"share/v/([a-zA-Z0-9_-]+)/?")),
    ("post", re.compile(_FB_HOST + r"[a-zA-Z0-9.]+/posts/([^?#]*)")),
    ("photo", re.compile(_FB_HOST + r"[a-zA-Z0-9.]+/photos/([^?#]*)")),
    ("video", re.compile(_FB_HOST + r"[a-zA-Z0-9.]+/videos/([0-9]+)/?")),
]

VIDEO_KINDS: frozenset[str] = frozenset({"share_video", "video"})


def _canonical_facebook(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit(("https", "www.facebook.com", parts.path, "", ""))


def normalize_facebook(raw: str) -> NormalizedUrl:
    """Accept only post, photo, share, and video permalink shapes."""
    url = raw.strip()
    for kind, pattern in _FACEBOOK_SHAPES:
        match = pattern.match(url)
        if match:
            segments = [s for s in match.group(1).split("/") if s]
            canonical = _canonical_facebook(url)
            return NormalizedUrl(
                platform=Platform.facebook,
                canonical_url=canonical,
                fetch_url=canonical,
                identifier=segments[-1] if segments else None,
                kind=kind,
            )
    raise InvalidInput(
        "Invalid Facebook URL. Must be a post, photo, video, or share URL",
        detail="InvalidInput",
    )


# ---------------------------------------------------------------------------
# TikTok
# ---------------------------------------------------------------------------

_TIKTOK_VIDEO_ID = re.compile(r"/video/(\d+)")


def normalize_tiktok(raw: str) -> NormalizedUrl:
    """Accept any tiktok.com URL; the helper API resolves the rest."""
    url = raw.strip()
    if "tiktok.com" not in url:
        raise InvalidInput(
            "Invalid TikTok URL. Must be a TikTok video URL",
            detail="InvalidInput",
        )
    if not url.startswith(("http://", "https://")):
        url = "https://" + url.lstrip("/")

    parts = urlsplit(url)
    canonical = urlunsplit(("https", parts.netloc.lower(), parts.path, "", ""))
    id_match = _TIKTOK_VIDEO_ID.search(parts.path)
    return NormalizedUrl(
        platform=Platform.tiktok,
        canonical_url=canonical,
        fetch_url=canonical,
        identifier=id_match.group(1) if id_match else None,
        kind="video",
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def normalize(platform: Platform, raw: str, embed_code: str | None = None) -> NormalizedUrl:
    """Normalize *raw* for *platform*; raises ``InvalidInput`` on bad shapes."""
    if not raw or not raw.strip():
        raise InvalidInput(
            f"{platform.value.capitalize()} URL is required in the request body",
            detail="InvalidInput",
        )
    if platform is Platform.youtube:
        return normalize_youtube(raw)
    if platform is Platform.instagram:
        return normalize_instagram(raw, embed_code)
    if platform is Platform.facebook:
        return normalize_facebook(raw)
    return normalize_tiktok(raw)
