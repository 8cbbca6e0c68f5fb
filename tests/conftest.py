"""Shared test fixtures.

Provides a ``test_client`` for FastAPI with the outbound fetcher, uploader,
image cache and auth dependencies overridden, a chainable Supabase table
mock, and helpers for building ``httpx.MockTransport`` fetch clients.
"""

import os

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")

from collections.abc import Callable, Generator  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.services.fetch import FetchClient  # noqa: E402
from app.services.image_cache import InMemoryImageCache  # noqa: E402

OWNER_ID: UUID = uuid4()


async def _no_sleep(_: float) -> None:
    return None


def make_fetcher(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> FetchClient:
    """FetchClient backed by *handler* with retries that do not sleep."""
    kwargs.setdefault("retry_delay", 0.0)
    kwargs.setdefault("proxy_urls", [])
    return FetchClient(transport=httpx.MockTransport(handler), sleep=_no_sleep, **kwargs)


def chainable_table_mock(data: list[dict[str, Any]] | None = None) -> MagicMock:
    """Return a mock that supports fluent chaining and returns *data*."""
    m = MagicMock()
    for method in (
        "select", "insert", "upsert", "update", "delete", "eq", "neq", "limit",
        "in_", "gte", "lte", "or_", "order",
    ):
        getattr(m, method).return_value = m
    m.execute.return_value = MagicMock(data=data if data is not None else [])
    return m


@pytest.fixture()
def mock_supabase_module() -> Generator[MagicMock, None, None]:
    """Patch the Supabase client at module level in the health router."""
    mock_client = MagicMock()
    mock_client.table.return_value = chainable_table_mock([{"id": str(uuid4())}])
    with patch("app.routers.health.get_supabase", return_value=mock_client):
        yield mock_client


@pytest.fixture()
def mock_supabase_disconnected() -> Generator[MagicMock, None, None]:
    """Patch ``get_supabase`` to simulate a disconnected database."""
    with patch(
        "app.routers.health.get_supabase",
        side_effect=Exception("Connection refused"),
    ):
        yield MagicMock()


@pytest.fixture()
def mock_uploader() -> AsyncMock:
    uploader = AsyncMock()
    uploader.upload_bytes.return_value = "https://test.supabase.co/storage/v1/object/public/post-images/posts/a.jpg"
    uploader.upload_url.return_value = "https://test.supabase.co/storage/v1/object/public/post-images/posts/b.jpg"
    return uploader


@pytest.fixture()
def image_cache() -> InMemoryImageCache:
    return InMemoryImageCache(ttl_seconds=3600)


@pytest.fixture()
def test_client() -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient."""
    from app.main import app

    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def authed_client(test_client: TestClient) -> TestClient:
    """TestClient whose requests authenticate as ``OWNER_ID``."""
    from app.core.auth import get_current_user_id
    from app.main import app

    app.dependency_overrides[get_current_user_id] = lambda: OWNER_ID
    return test_client
