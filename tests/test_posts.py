"""Tests for post persistence, management routes and public post details."""

from __future__ import annotations

from unittest.mock import MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from conftest import OWNER_ID, chainable_table_mock, make_fetcher

from app.core.errors import DuplicatePost, PostNotFound
from app.models.enums import Device, Platform
from app.models.post import PostCreate
from app.services.posts import count_by_platform, create_post, get_post_details, list_posts

TIKTOK_URL = "https://www.tiktok.com/@creator/video/7234567890123456789"
STALE_VIDEO = "https://v16m.tiktokcdn.com/video/old.mp4"
FRESH_VIDEO = "https://v16m.tiktokcdn.com/video/new.mp4"


def _row(**overrides) -> dict:
    row = {
        "id": str(uuid4()),
        "owner_id": str(OWNER_ID),
        "platform": "tiktok",
        "canonical_url": TIKTOK_URL,
        "primary_image_url": "https://test.supabase.co/storage/v1/object/public/post-images/posts/a.jpg",
        "extraction_method": "tikwm_api",
        "metadata": {"video_url": STALE_VIDEO, "video_id": "7234567890123456789"},
        "title": "",
        "description": "",
        "product_link": "",
        "selected": True,
        "added_at": "2024-03-01T12:00:00+00:00",
    }
    row.update(overrides)
    return row


def _payload() -> PostCreate:
    return PostCreate(
        owner_id=OWNER_ID,
        platform=Platform.tiktok,
        canonical_url=TIKTOK_URL,
        primary_image_url="https://cdn.example.com/a.jpg",
        extraction_method="tikwm_api",
    )


class TestCreatePost:
    def test_insert_returns_post(self) -> None:
        client = MagicMock()
        client.table.return_value = chainable_table_mock([_row()])
        with patch("app.services.posts.get_supabase", return_value=client):
            post = create_post(_payload())
        assert post.platform is Platform.tiktok
        client.table.assert_called_with("posts")

    def test_unique_violation_is_duplicate(self) -> None:
        table = chainable_table_mock()
        table.execute.side_effect = APIError(
            {"code": "23505", "message": "duplicate key value violates unique constraint", "details": "", "hint": ""}
        )
        client = MagicMock()
        client.table.return_value = table
        with patch("app.services.posts.get_supabase", return_value=client):
            with pytest.raises(DuplicatePost):
                create_post(_payload())

    def test_other_database_errors_propagate(self) -> None:
        table = chainable_table_mock()
        table.execute.side_effect = APIError({"code": "42501", "message": "permission denied", "details": "", "hint": ""})
        client = MagicMock()
        client.table.return_value = table
        with patch("app.services.posts.get_supabase", return_value=client):
            with pytest.raises(APIError):
                create_post(_payload())


class TestQueries:
    def test_list_filters(self) -> None:
        table = chainable_table_mock([_row()])
        client = MagicMock()
        client.table.return_value = table
        with patch("app.services.posts.get_supabase", return_value=client):
            posts = list_posts(OWNER_ID, Platform.tiktok, selected=True, with_product=True, search="shoes")

        assert len(posts) == 1
        table.eq.assert_any_call("owner_id", str(OWNER_ID))
        table.eq.assert_any_call("platform", "tiktok")
        table.eq.assert_any_call("selected", True)
        table.neq.assert_called_once_with("product_link", "")
        table.or_.assert_called_once_with('title.ilike."%shoes%",description.ilike."%shoes%"')
        table.order.assert_called_once_with("added_at", desc=True)

    def test_search_with_filter_syntax_stays_one_value(self) -> None:
        table = chainable_table_mock([])
        client = MagicMock()
        client.table.return_value = table
        with patch("app.services.posts.get_supabase", return_value=client):
            list_posts(OWNER_ID, search='red, blue) "x" a\\b')

        table.or_.assert_called_once_with(
            'title.ilike."%red, blue) \\"x\\" a\\\\b%",description.ilike."%red, blue) \\"x\\" a\\\\b%"'
        )

    def test_counts_include_total(self) -> None:
        client = MagicMock()
        client.table.return_value = chainable_table_mock(
            [{"platform": "tiktok"}, {"platform": "tiktok"}, {"platform": "youtube"}]
        )
        with patch("app.services.posts.get_supabase", return_value=client):
            counts = count_by_platform(OWNER_ID)
        assert counts == {"youtube": 1, "tiktok": 2, "instagram": 0, "facebook": 0, "total": 3}


class TestRoutes:
    def test_delete_missing_post_is_404(self, authed_client: TestClient) -> None:
        client = MagicMock()
        client.table.return_value = chainable_table_mock([])
        with patch("app.services.posts.get_supabase", return_value=client):
            response = authed_client.delete(f"/api/v1/posts/{uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Post not found", "error": "PostNotFound"}

    def test_select_posts(self, authed_client: TestClient) -> None:
        ids = [str(uuid4()), str(uuid4())]
        table = chainable_table_mock([{"id": ids[0]}, {"id": ids[1]}])
        client = MagicMock()
        client.table.return_value = table
        with patch("app.services.posts.get_supabase", return_value=client):
            response = authed_client.post("/api/v1/posts/select", json={"post_ids": ids})
        assert response.status_code == 200
        assert response.json()["updated"] == 2
        table.update.assert_called_once_with({"selected": True})
        table.in_.assert_called_once_with("id", ids)

    def test_product_link(self, authed_client: TestClient) -> None:
        row = _row(product_link="https://shop.example.com/item")
        table = chainable_table_mock([row])
        client = MagicMock()
        client.table.return_value = table
        with patch("app.services.posts.get_supabase", return_value=client):
            response = authed_client.patch(
                f"/api/v1/posts/{row['id']}/product-link",
                json={"product_link": "https://shop.example.com/item"},
            )
        assert response.status_code == 200
        assert response.json()["post"]["product_link"] == "https://shop.example.com/item"


class TestPostDetails:
    @pytest.mark.asyncio
    async def test_stale_tiktok_video_is_refreshed_and_click_recorded(self) -> None:
        posts_table = chainable_table_mock([_row()])
        clicks_table = chainable_table_mock([{"id": str(uuid4())}])
        client = MagicMock()
        client.table.side_effect = lambda name: clicks_table if name == "clicks" else posts_table

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == STALE_VIDEO:
                assert request.headers["Range"] == "bytes=0-1023"
                return httpx.Response(403, text="expired")
            return httpx.Response(200, json={"code": 0, "data": {"wmplay": FRESH_VIDEO}})

        with patch("app.services.posts.get_supabase", return_value=client), \
                patch("app.services.clicks.get_supabase", return_value=client):
            await get_post_details(
                OWNER_ID, Platform.tiktok, TIKTOK_URL, make_fetcher(handler),
                country="PT", device=Device.mobile,
            )

        update_values = posts_table.update.call_args.args[0]
        assert update_values["metadata"]["video_url"] == FRESH_VIDEO
        click = clicks_table.insert.call_args.args[0]
        assert click["country"] == "PT"
        assert click["device"] == "mobile"
        assert click["platform"] == "tiktok"

    @pytest.mark.asyncio
    async def test_playable_video_is_left_alone(self) -> None:
        posts_table = chainable_table_mock([_row()])
        client = MagicMock()
        client.table.return_value = posts_table
        fetcher = make_fetcher(
            lambda request: httpx.Response(206, content=b"\x00" * 16, headers={"content-type": "video/mp4"})
        )
        with patch("app.services.posts.get_supabase", return_value=client), \
                patch("app.services.clicks.get_supabase", return_value=client):
            await get_post_details(OWNER_ID, Platform.tiktok, TIKTOK_URL, fetcher)
        posts_table.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_post(self) -> None:
        client = MagicMock()
        client.table.return_value = chainable_table_mock([])
        with patch("app.services.posts.get_supabase", return_value=client):
            with pytest.raises(PostNotFound):
                await get_post_details(
                    OWNER_ID, Platform.youtube, "https://www.youtube.com/watch?v=x",
                    make_fetcher(lambda request: httpx.Response(200)),
                )

    def test_route_detects_device_from_user_agent(self, test_client: TestClient) -> None:
        row = _row(platform="youtube", canonical_url="https://www.youtube.com/watch?v=ABC123",
                   metadata={"video_id": "ABC123"})
        posts_table = chainable_table_mock([row])
        clicks_table = chainable_table_mock([])
        client = MagicMock()
        client.table.side_effect = lambda name: clicks_table if name == "clicks" else posts_table

        with patch("app.services.posts.get_supabase", return_value=client), \
                patch("app.services.clicks.get_supabase", return_value=client):
            response = test_client.get(
                "/api/v1/social/post/details",
                params={"url": row["canonical_url"], "platform": "youtube", "userId": str(OWNER_ID)},
                headers={"User-Agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"},
            )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert clicks_table.insert.call_args.args[0]["device"] == "mobile"
