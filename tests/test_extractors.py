"""Per-platform extractor tests against a mocked fetch layer."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import make_fetcher

from app.core.constants import FACEBOOK_PLACEHOLDER, TIKTOK_PLACEHOLDER
from app.core.errors import NoContentFound, UpstreamAPIError
from app.models.enums import Platform
from app.services.extractors.facebook import FacebookExtractor
from app.services.extractors.instagram import InstagramExtractor
from app.services.extractors.tiktok import TikTokExtractor, refresh_video_url
from app.services.extractors.youtube import YouTubeExtractor, best_thumbnail
from app.services.normalizer import normalize

PROFILE_PIC = "https://scontent.cdninstagram.com/v/t51.2885-19/profile_pic/s150x150/me.jpg"

INSTAGRAM_EMBED_PAGE = f"""
<html><head>
<meta property="og:image" content="{PROFILE_PIC}">
<meta property="og:title" content="A post by someone">
</head><body>
<div class="Caption">Sunset over the bay</div>
<span class="UsernameText">someone</span>
<script type="application/json">{{"shortcode_media": {{
  "display_url": "https://scontent.cdninstagram.com/v/t51.29350-15/display.jpg",
  "display_resources": [
    {{"src": "https://scontent.cdninstagram.com/v/t51.29350-15/s640x640/post.jpg", "config_width": 640, "config_height": 640}},
    {{"src": "https://scontent.cdninstagram.com/v/t51.29350-15/post_1080.jpg", "config_width": 1080, "config_height": 1350}}
  ]}}}}</script>
</body></html>
"""


# ---------------------------------------------------------------------------
# Instagram
# ---------------------------------------------------------------------------

class TestInstagramExtractor:
    @pytest.mark.asyncio
    async def test_content_image_beats_profile_meta(self) -> None:
        """og:image is a profile picture, so the display_resources image wins."""
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text=INSTAGRAM_EMBED_PAGE)

        normalized = normalize(Platform.instagram, "https://www.instagram.com/p/Cx1AbC/")
        result = await InstagramExtractor().extract(normalized, make_fetcher(handler))

        assert requested == ["https://www.instagram.com/p/Cx1AbC/embed/"]
        assert result.image_url == "https://scontent.cdninstagram.com/v/t51.29350-15/post_1080.jpg"
        assert "/profile_pic/" not in result.image_url
        assert result.method == "display_resources"
        assert result.degraded is False
        assert result.metadata.caption == "Sunset over the bay"
        assert result.metadata.author_name == "someone"
        assert result.metadata.shortcode == "Cx1AbC"

    @pytest.mark.asyncio
    async def test_only_profile_candidates_is_degraded(self) -> None:
        page = f'<meta property="og:image" content="{PROFILE_PIC}">'
        normalized = normalize(Platform.instagram, "https://www.instagram.com/p/Cx1AbC/")
        result = await InstagramExtractor().extract(
            normalized, make_fetcher(lambda request: httpx.Response(200, text=page))
        )
        assert result.degraded is True
        assert result.image_url.startswith("https://")

    @pytest.mark.asyncio
    async def test_no_image_raises_not_found(self) -> None:
        normalized = normalize(Platform.instagram, "https://www.instagram.com/p/Cx1AbC/")
        with pytest.raises(NoContentFound):
            await InstagramExtractor().extract(
                normalized, make_fetcher(lambda request: httpx.Response(200, text="<html></html>"))
            )

    @pytest.mark.asyncio
    async def test_blocked_fetch_raises_not_found(self) -> None:
        normalized = normalize(Platform.instagram, "https://www.instagram.com/p/Cx1AbC/")
        with pytest.raises(NoContentFound):
            await InstagramExtractor().extract(
                normalized, make_fetcher(lambda request: httpx.Response(429))
            )


# ---------------------------------------------------------------------------
# Facebook
# ---------------------------------------------------------------------------

class TestFacebookExtractor:
    @pytest.mark.asyncio
    async def test_og_image(self) -> None:
        page = (
            '<meta property="og:image" content="https://scontent.xx.fbcdn.net/v/t39/photo_n.jpg?stp=1&amp;oh=2">'
            '<meta property="og:title" content="Page post">'
        )
        normalized = normalize(Platform.facebook, "https://www.facebook.com/page/posts/pfbid0abc")
        result = await FacebookExtractor().extract(
            normalized, make_fetcher(lambda request: httpx.Response(200, text=page))
        )
        assert result.method == "og_image"
        assert result.image_url == "https://scontent.xx.fbcdn.net/v/t39/photo_n.jpg?stp=1&oh=2"
        assert result.metadata.title == "Page post"

    @pytest.mark.asyncio
    async def test_share_video_uses_inline_thumbnail(self) -> None:
        page = '<script>{"preferred_thumbnail":{"image":{"uri":"https:\\/\\/scontent.xx.fbcdn.net\\/v\\/thumb.jpg"}}}</script>'
        normalized = normalize(Platform.facebook, "https://www.facebook.com/share/v/9ZyX/")
        result = await FacebookExtractor().extract(
            normalized, make_fetcher(lambda request: httpx.Response(200, text=page))
        )
        assert result.method == "video_thumbnail"
        assert result.image_url == "https://scontent.xx.fbcdn.net/v/thumb.jpg"

    @pytest.mark.asyncio
    async def test_404_page_is_still_parsed(self) -> None:
        """Statuses below 500 are accepted for Facebook pages."""
        page = '<img src="https://scontent.xx.fbcdn.net/v/t39/1234_n.jpg">'
        normalized = normalize(Platform.facebook, "https://www.facebook.com/page/photos/a.1/2/")
        result = await FacebookExtractor().extract(
            normalized, make_fetcher(lambda request: httpx.Response(404, text=page))
        )
        assert result.method == "html_image"

    @pytest.mark.asyncio
    async def test_server_error_degrades_to_logo(self) -> None:
        normalized = normalize(Platform.facebook, "https://www.facebook.com/share/p/1AbCdE/")
        result = await FacebookExtractor().extract(
            normalized, make_fetcher(lambda request: httpx.Response(500))
        )
        assert result.image_url == FACEBOOK_PLACEHOLDER
        assert result.method == "fallback_logo"
        assert result.placeholder is True
        assert result.rehost is False

    @pytest.mark.asyncio
    async def test_empty_page_degrades_to_logo(self) -> None:
        normalized = normalize(Platform.facebook, "https://www.facebook.com/page/posts/123")
        result = await FacebookExtractor().extract(
            normalized, make_fetcher(lambda request: httpx.Response(200, text="<html>login</html>"))
        )
        assert result.image_url == FACEBOOK_PLACEHOLDER


# ---------------------------------------------------------------------------
# TikTok
# ---------------------------------------------------------------------------

HELPER_URL = "https://helper.test/api/"
TIKTOK_URL = "https://www.tiktok.com/@creator/video/7234567890123456789"

HELPER_PAYLOAD = {
    "code": 0,
    "msg": "success",
    "data": {
        "id": "7234567890123456789",
        "title": "dance challenge",
        "origin_cover": "https://p16-sign.tiktokcdn.com/obj/cover.jpeg",
        "wmplay": "https://v16m.tiktokcdn.com/video/wm.mp4",
        "author": {"unique_id": "creator", "avatar": "https://p16-sign.tiktokcdn.com/obj/avatar.jpeg"},
    },
}


class TestTikTokExtractor:
    @pytest.mark.asyncio
    async def test_helper_api(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "helper.test"
            assert request.url.params["url"] == TIKTOK_URL
            return httpx.Response(200, json=HELPER_PAYLOAD)

        normalized = normalize(Platform.tiktok, TIKTOK_URL)
        result = await TikTokExtractor(helper_url=HELPER_URL).extract(normalized, make_fetcher(handler))

        assert result.method == "tikwm_api"
        assert result.image_url == "https://p16-sign.tiktokcdn.com/obj/cover.jpeg"
        assert result.metadata.caption == "dance challenge"
        assert result.metadata.video_id == "7234567890123456789"
        assert result.metadata.author_name == "creator"
        assert result.metadata.video_url == "https://v16m.tiktokcdn.com/video/wm.mp4"

    @pytest.mark.asyncio
    async def test_open_graph_when_helper_has_no_data(self) -> None:
        page = (
            '<meta property="og:image" content="https://p16-sign.tiktokcdn.com/obj/og.jpeg">'
            '<meta property="og:description" content="from the page">'
        )

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "helper.test":
                return httpx.Response(200, json={"code": -1, "msg": "Url parsing is failed!"})
            return httpx.Response(200, text=page)

        normalized = normalize(Platform.tiktok, TIKTOK_URL)
        result = await TikTokExtractor(helper_url=HELPER_URL).extract(normalized, make_fetcher(handler))
        assert result.method == "open_graph"
        assert result.image_url == "https://p16-sign.tiktokcdn.com/obj/og.jpeg"
        assert result.metadata.caption == "from the page"

    @pytest.mark.asyncio
    async def test_both_paths_fail_gives_placeholder(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "helper.test":
                return httpx.Response(503)
            return httpx.Response(403, text="captcha")

        normalized = normalize(Platform.tiktok, TIKTOK_URL)
        result = await TikTokExtractor(helper_url=HELPER_URL).extract(normalized, make_fetcher(handler))
        assert result.image_url == TIKTOK_PLACEHOLDER
        assert result.method == "fallback_logo"
        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_refresh_video_url(self) -> None:
        fetcher = make_fetcher(lambda request: httpx.Response(200, json=HELPER_PAYLOAD))
        assert await refresh_video_url(TIKTOK_URL, fetcher, HELPER_URL) == "https://v16m.tiktokcdn.com/video/wm.mp4"

    @pytest.mark.asyncio
    async def test_refresh_video_url_failure_is_none(self) -> None:
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="not json"))
        assert await refresh_video_url(TIKTOK_URL, fetcher, HELPER_URL) is None


# ---------------------------------------------------------------------------
# YouTube
# ---------------------------------------------------------------------------

YOUTUBE_BASE = "https://yt.test/youtube/v3"

VIDEO_PAYLOAD = {
    "items": [{
        "snippet": {
            "title": "My video",
            "description": "About it",
            "channelId": "UC123",
            "channelTitle": "Channel",
            "thumbnails": {
                "default": {"url": "https://i.ytimg.com/vi/ABC123/default.jpg"},
                "high": {"url": "https://i.ytimg.com/vi/ABC123/hqdefault.jpg"},
                "maxres": {"url": "https://i.ytimg.com/vi/ABC123/maxresdefault.jpg"},
            },
        }
    }]
}

CHANNEL_PAYLOAD = {
    "items": [{
        "snippet": {
            "title": "Channel Name",
            "thumbnails": {"medium": {"url": "https://yt3.ggpht.com/avatar.jpg"}},
        }
    }]
}


def _youtube_handler(videos: dict, channels: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["key"] == "yt-key"
        if request.url.path.endswith("/videos"):
            assert request.url.params["id"] == "ABC123"
            return httpx.Response(200, content=json.dumps(videos))
        assert request.url.params["id"] == "UC123"
        return httpx.Response(200, content=json.dumps(channels))

    return handler


class TestYouTubeExtractor:
    def test_best_thumbnail_ladder(self) -> None:
        thumbs = {"medium": {"url": "m"}, "standard": {"url": "s"}, "default": {"url": "d"}}
        assert best_thumbnail(thumbs) == "s"
        assert best_thumbnail({}) is None

    @pytest.mark.asyncio
    async def test_video_and_channel(self) -> None:
        normalized = normalize(Platform.youtube, "https://youtu.be/ABC123")
        extractor = YouTubeExtractor(api_key="yt-key", base_url=YOUTUBE_BASE)
        result = await extractor.extract(normalized, make_fetcher(_youtube_handler(VIDEO_PAYLOAD, CHANNEL_PAYLOAD)))

        assert result.image_url == "https://i.ytimg.com/vi/ABC123/maxresdefault.jpg"
        assert result.method == "youtube_api"
        assert result.rehost is False
        assert result.metadata.title == "My video"
        assert result.metadata.author_name == "Channel Name"
        assert result.metadata.author_avatar_url == "https://yt3.ggpht.com/avatar.jpg"
        assert "https://www.youtube.com/embed/ABC123" in result.metadata.embed_code

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        normalized = normalize(Platform.youtube, "https://youtu.be/ABC123")
        with pytest.raises(UpstreamAPIError):
            await YouTubeExtractor(api_key="", base_url=YOUTUBE_BASE).extract(
                normalized, make_fetcher(lambda request: httpx.Response(200))
            )

    @pytest.mark.asyncio
    async def test_empty_items(self) -> None:
        normalized = normalize(Platform.youtube, "https://youtu.be/ABC123")
        with pytest.raises(UpstreamAPIError):
            await YouTubeExtractor(api_key="yt-key", base_url=YOUTUBE_BASE).extract(
                normalized, make_fetcher(_youtube_handler({"items": []}, CHANNEL_PAYLOAD))
            )

    @pytest.mark.asyncio
    async def test_api_rejection(self) -> None:
        normalized = normalize(Platform.youtube, "https://youtu.be/ABC123")
        with pytest.raises(UpstreamAPIError):
            await YouTubeExtractor(api_key="yt-key", base_url=YOUTUBE_BASE).extract(
                normalized, make_fetcher(lambda request: httpx.Response(403, json={"error": {}}))
            )
