"""Pure image-extraction heuristics.

Every function takes the raw page text and returns candidate image URLs in
preference order (possibly empty).  None of them perform I/O, so each one
can be exercised directly against a fixture page.
"""

from __future__ import annotations

import html as html_lib
import json
import re
from collections.abc import Iterable, Iterator
from functools import lru_cache
from typing import Any

from bs4 import BeautifulSoup

from app.core.constants import (
    FACEBOOK_CDN_MARKERS,
    FACEBOOK_THUMBNAIL_PATTERN,
    PROFILE_IMAGE_PATTERNS,
)


@lru_cache(maxsize=8)
def _soup(page: str) -> BeautifulSoup:
    return BeautifulSoup(page, "html.parser")


def _dedupe(urls: Iterable[str | None]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if not url:
            continue
        url = url.strip()
        if url and url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def _unescape_json_text(value: str) -> str:
    """Undo the escaping of a URL copied out of inline JSON text."""
    return (
        value.replace("\\u0026", "&")
        .replace("\\u003D", "=")
        .replace("\\u003d", "=")
        .replace("\\/", "/")
        .replace("\\", "")
    )


# ---------------------------------------------------------------------------
# URL hygiene
# ---------------------------------------------------------------------------

def absolutize_url(url: str | None) -> str | None:
    """Make protocol-relative and plain-http URLs absolute ``https`` URLs.

    Anything that is not an http(s) URL after that is rejected.
    """
    if not url:
        return None
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    elif url.startswith("http://"):
        url = "https://" + url[len("http://"):]
    if not url.startswith("https://"):
        return None
    return url


def profile_score(url: str) -> int:
    """Number of profile-picture patterns *url* matches (0 means content)."""
    return sum(1 for pattern in PROFILE_IMAGE_PATTERNS if pattern.search(url))


def is_profile_image(url: str) -> bool:
    return profile_score(url) > 0


# Applied once each, in this order, to strip crop and size variants.
_INSTAGRAM_CROP_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"/s\d+x\d+/"), "/"),
    (re.compile(r"/c\d+\.\d+\.\d+\.\d+/"), "/"),
    (re.compile(r"/e\d+/"), "/"),
    (re.compile(r"/[a-z]\d+x\d+/"), "/"),
    (re.compile(r"/(vp|p|s)[0-9]+x[0-9]+(_[0-9]+)?/"), "/"),
    (re.compile(r"/p[0-9]+x[0-9]+/"), "/"),
    (re.compile(r"[?&]se=\d+"), ""),
    (re.compile(r"[?&]sh=\d+"), ""),
    (re.compile(r"[?&]sw=\d+"), ""),
    (re.compile(r"[?&]quality=\d+"), ""),
    (re.compile(r"\?_nc_ht.*$"), ""),
    (re.compile(r"\?_nc_cat.*$"), ""),
    (re.compile(r"\?igshid.*$"), ""),
    (re.compile(r"\?_nc_.*$"), ""),
]


def clean_instagram_url(url: str) -> str:
    """Strip crop/size segments and tracking params, then unescape."""
    for pattern, replacement in _INSTAGRAM_CROP_PATTERNS:
        url = pattern.sub(replacement, url, count=1)
    return url.replace("\\u0026", "&").replace("\\u003D", "=").replace("\\", "")


# ---------------------------------------------------------------------------
# Meta tags
# ---------------------------------------------------------------------------

def meta_content(page: str, *names: str) -> list[str]:
    """Values of ``<meta property|name=...>`` tags, in the order of *names*."""
    soup = _soup(page)
    found: list[str | None] = []
    for name in names:
        for attr in ("property", "name"):
            for tag in soup.find_all("meta", attrs={attr: name}):
                found.append(tag.get("content"))
    return _dedupe(found)


def meta_images(page: str) -> list[str]:
    """``og:image`` then ``twitter:image``."""
    return meta_content(page, "og:image", "twitter:image")


def alternate_meta_images(page: str) -> list[str]:
    return meta_content(page, "og:image:secure_url", "twitter:image")


def meta_text(page: str, name: str) -> str | None:
    values = meta_content(page, name)
    return values[0] if values else None


_RAW_OG_IMAGE = [
    re.compile(
        r"<meta[^>]+(?:property|name)=[\"']og:image[\"'][^>]*content=[\"']([^\"']+)[\"']",
        re.IGNORECASE,
    ),
    re.compile(
        r"<meta[^>]+content=[\"']([^\"']+)[\"'][^>]*(?:property|name)=[\"']og:image[\"']",
        re.IGNORECASE,
    ),
]


def og_image_text_scan(page: str) -> list[str]:
    """``og:image`` read straight from the text, for markup the parser drops."""
    found: list[str] = []
    for pattern in _RAW_OG_IMAGE:
        found.extend(html_lib.unescape(m) for m in pattern.findall(page))
    return _dedupe(found)


# ---------------------------------------------------------------------------
# Structured data
# ---------------------------------------------------------------------------

def _walk(node: Any) -> Iterator[dict[str, Any]]:
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk(item)


def _image_field(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        urls: list[str] = []
        for item in value:
            urls.extend(_image_field(item))
        return urls
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        return [url] if isinstance(url, str) else []
    return []


def json_ld_images(page: str) -> list[str]:
    """``image`` fields of every parseable ``application/ld+json`` block."""
    found: list[str] = []
    for script in _soup(page).find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        for node in _walk(data):
            if "image" in node:
                found.extend(_image_field(node["image"]))
    return _dedupe(found)


_JS_ASSIGNED_JSON = re.compile(
    r"(?:window\._sharedData\s*=\s*|__additionalDataLoaded\(\s*[^,]+,\s*)(\{.*\})\s*\)?\s*;?\s*$",
    re.DOTALL,
)


def embedded_json(page: str) -> list[Any]:
    """JSON documents embedded in ``<script>`` tags."""
    blobs: list[Any] = []
    for script in _soup(page).find_all("script"):
        text = (script.string or "").strip()
        if not text:
            continue
        if script.get("type") == "application/json":
            candidate = text
        else:
            match = _JS_ASSIGNED_JSON.search(text)
            if not match:
                continue
            candidate = match.group(1)
        try:
            blobs.append(json.loads(candidate))
        except ValueError:
            continue
    return blobs


def _sorted_resources(resources: list[Any]) -> list[str]:
    usable = [r for r in resources if isinstance(r, dict) and r.get("src")]
    usable.sort(
        key=lambda r: int(r.get("config_width") or 0) * int(r.get("config_height") or 0),
        reverse=True,
    )
    return [r["src"] for r in usable]


_DISPLAY_RESOURCES = re.compile(r'"display_resources":\s*(\[.*?\])', re.DOTALL)


def display_resources(page: str) -> list[str]:
    """Largest ``display_resources`` rendition first, then ``display_url``.

    Structured script blobs are read first; a raw text match of the
    ``display_resources`` array is the fallback.
    """
    found: list[str] = []
    for blob in embedded_json(page):
        for node in _walk(blob):
            resources = node.get("display_resources")
            if isinstance(resources, list):
                found.extend(_sorted_resources(resources))
            display_url = node.get("display_url")
            if isinstance(display_url, str):
                found.append(display_url)
    if not found:
        for match in _DISPLAY_RESOURCES.finditer(page):
            try:
                resources = json.loads(match.group(1))
            except ValueError:
                continue
            if isinstance(resources, list):
                found.extend(_sorted_resources(resources))
    return _dedupe(found)


_DISPLAY_URL = re.compile(r'"display_url"\s*:\s*"([^"]+)"')
_ESCAPED_DISPLAY_URL = re.compile(r'\\"display_url\\"\s*:\s*\\"(.*?)\\"')


def display_url_regex(page: str) -> list[str]:
    found = [_unescape_json_text(m) for m in _DISPLAY_URL.findall(page)]
    found.extend(_unescape_json_text(m) for m in _ESCAPED_DISPLAY_URL.findall(page))
    return _dedupe(found)


# ---------------------------------------------------------------------------
# <img> heuristics
# ---------------------------------------------------------------------------

def _parse_srcset(srcset: str) -> list[tuple[int, str]]:
    entries: list[tuple[int, str]] = []
    for part in srcset.split(","):
        pieces = part.strip().split()
        if len(pieces) != 2 or not pieces[1].endswith("w"):
            continue
        try:
            width = int(pieces[1][:-1])
        except ValueError:
            continue
        entries.append((width, html_lib.unescape(pieces[0])))
    return entries


def srcset_candidates(page: str) -> list[str]:
    """``srcset`` entries across all images, widest first."""
    entries: list[tuple[int, str]] = []
    for img in _soup(page).find_all("img", srcset=True):
        entries.extend(_parse_srcset(img["srcset"]))
    entries.sort(key=lambda entry: entry[0], reverse=True)
    return _dedupe(url for _, url in entries)


_INSTAGRAM_ASSET_SELECTORS = ("img.EmbeddedAsset", "img._aa8j", "img.FFVAD")


def instagram_embed_assets(page: str) -> list[str]:
    """Main media ``<img>`` of the embed page, then lazy ``data-src`` images."""
    soup = _soup(page)
    found: list[str | None] = []
    for selector in _INSTAGRAM_ASSET_SELECTORS:
        found.extend(img.get("src") for img in soup.select(selector))
    found.extend(img.get("data-src") for img in soup.select("img[data-src]"))
    return _dedupe(found)


_FACEBOOK_CONTENT_CLASSES = ("scaledImageFitWidth", "scaledImageFitHeight", "spotlight", "_46-i")


def _is_facebook_cdn(url: str) -> bool:
    return any(marker in url for marker in FACEBOOK_CDN_MARKERS)


def facebook_img_candidates(page: str) -> list[str]:
    """CDN-hosted ``<img>`` sources: content classes, then originals, then the rest."""
    preferred: list[str] = []
    originals: list[str] = []
    others: list[str] = []
    for img in _soup(page).find_all("img", src=True):
        src = img["src"]
        if not _is_facebook_cdn(src):
            continue
        classes = img.get("class") or []
        if any(cls in _FACEBOOK_CONTENT_CLASSES for cls in classes):
            preferred.append(src)
        elif "_n." in src or "_o." in src:
            originals.append(src)
        else:
            others.append(src)
    return _dedupe(preferred + originals + others)


_FBCDN_URL = re.compile(
    r"https://[a-z0-9-]+\.(?:[a-z0-9-]+\.)*fbcdn\.net/[a-z0-9_/.\-]+\.(?:jpg|jpeg|png|gif|webp)",
    re.IGNORECASE,
)


def facebook_cdn_regex(page: str) -> list[str]:
    """Raw ``fbcdn.net`` image URLs, content-looking ones first."""
    matches = _dedupe(html_lib.unescape(m) for m in _FBCDN_URL.findall(page.replace("\\/", "/")))
    content = [m for m in matches if not FACEBOOK_THUMBNAIL_PATTERN.search(m) and not is_profile_image(m)]
    rest = [m for m in matches if m not in content]
    return content + rest


_FACEBOOK_VIDEO_THUMBNAILS = [
    re.compile(r'"preferred_thumbnail"\s*:\s*\{\s*"image"\s*:\s*\{\s*"uri"\s*:\s*"([^"]+)"'),
    re.compile(r'"thumbnailImage"\s*:\s*\{\s*"uri"\s*:\s*"([^"]+)"'),
    re.compile(r'"first_frame_thumbnail"\s*:\s*"([^"]+)"'),
    re.compile(r'"thumbnailUrl"\s*:\s*"([^"]+)"'),
]


def facebook_video_thumbnail(page: str) -> list[str]:
    """Video poster URLs from the page's inline JSON."""
    found: list[str] = []
    for pattern in _FACEBOOK_VIDEO_THUMBNAILS:
        found.extend(_unescape_json_text(m) for m in pattern.findall(page))
    return _dedupe(found)


# ---------------------------------------------------------------------------
# Text fields
# ---------------------------------------------------------------------------

def first_text(page: str, *selectors: str) -> str | None:
    """Stripped text of the first element matching any CSS selector."""
    soup = _soup(page)
    for selector in selectors:
        element = soup.select_one(selector)
        if element is not None:
            text = element.get_text(" ", strip=True)
            if text:
                return text
    return None
