"""Application constants.

Contains browser fingerprints, per-platform referers, placeholder images,
decoy-image patterns, and feed setting choices.
"""

import re

# ---------------------------------------------------------------------------
# Browser fingerprints
# Platforms block requests that do not look like a desktop browser.
# ---------------------------------------------------------------------------
DESKTOP_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT: str = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_7_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.1.2 Mobile/15E148 Safari/604.1"
)
SEC_CH_UA: str = '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"'

ACCEPT_DOCUMENT: str = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "image/avif,image/webp,image/apng,*/*;q=0.8"
)
ACCEPT_IMAGE: str = "image/webp,image/apng,image/*,*/*;q=0.8"
ACCEPT_VIDEO: str = "video/mp4,video/*;q=0.9,*/*;q=0.8"
ACCEPT_LANGUAGE: str = "en-US,en;q=0.9"

# ---------------------------------------------------------------------------
# Per-platform referers
# ---------------------------------------------------------------------------
PLATFORM_REFERERS: dict[str, str] = {
    "instagram": "https://www.instagram.com/",
    "facebook": "https://www.facebook.com/",
    "tiktok": "https://www.tiktok.com/",
    "youtube": "https://www.youtube.com/",
}
DEFAULT_REFERER: str = "https://www.google.com/"

# Host substrings used to guess the platform of an arbitrary image URL.
# Order matters: the first match wins.
HOST_PLATFORM_HINTS: list[tuple[str, str]] = [
    ("instagram.com", "instagram"),
    ("facebook.com", "facebook"),
    ("fbcdn.net", "facebook"),
    ("tiktok.com", "tiktok"),
    ("tiktokcdn", "tiktok"),
    ("ytimg.com", "youtube"),
    ("youtube.com", "youtube"),
]

# ---------------------------------------------------------------------------
# Placeholder images
# ---------------------------------------------------------------------------
INSTAGRAM_PLACEHOLDER: str = (
    "https://www.instagram.com/static/images/ico/favicon-192.png/68d99ba29cc8.png"
)
FACEBOOK_PLACEHOLDER: str = "https://static.xx.fbcdn.net/rsrc.php/v3/y4/r/-PAXP-deijE.gif"
TIKTOK_PLACEHOLDER: str = (
    "https://sf16-sg.tiktokcdn.com/obj/eden-sg/uvkuhyieh7lpqegw/tiktok_logo.png"
)
GENERIC_PLACEHOLDER: str = "https://via.placeholder.com/300x300?text=Image+Not+Available"

PLATFORM_PLACEHOLDERS: dict[str, str] = {
    "instagram": INSTAGRAM_PLACEHOLDER,
    "facebook": FACEBOOK_PLACEHOLDER,
    "tiktok": TIKTOK_PLACEHOLDER,
}

# ---------------------------------------------------------------------------
# Decoy images
# URLs matching any of these are profile pictures or avatars, not post content.
# ---------------------------------------------------------------------------
PROFILE_IMAGE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"/profile_pic/"),
    re.compile(r"profile_images"),
    re.compile(r"/dp/"),
    re.compile(r"s150x150"),
    re.compile(r"t51\.2885-19"),
]

# Facebook CDN hosts that serve post content
FACEBOOK_CDN_MARKERS: tuple[str, ...] = ("fbcdn.net", "scontent", "facebook.com/safe_image.php")

# Facebook thumbnail-size segments (small renditions, usually avatars)
FACEBOOK_THUMBNAIL_PATTERN: re.Pattern[str] = re.compile(r"/[ps]\d{2,3}x\d{2,3}/|_t\.|_s\.|profile")

# ---------------------------------------------------------------------------
# Feed settings
# ---------------------------------------------------------------------------
FEED_LAYOUTS: tuple[str, ...] = (
    "Grid",
    "No Gutter",
    "Highlight",
    "Slideshow",
    "Collage1",
    "Collage2",
    "Collage3",
    "Collage4",
    "Collage5",
)
FEED_POSTS_COUNTS: tuple[str, ...] = ("3", "6", "9", "12", "15")
DEFAULT_FEED_LAYOUT: str = "Grid"
DEFAULT_POSTS_COUNT: str = "6"
DEFAULT_MAIN_HEADING: str = "Enter Main heading"
DEFAULT_SUB_HEADING: str = "Enter Sub heading"

# ---------------------------------------------------------------------------
# Proxy response headers
# ---------------------------------------------------------------------------
PROXY_CACHE_CONTROL: str = "public, max-age=86400"
