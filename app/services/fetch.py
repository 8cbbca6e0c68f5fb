"""Outbound HTTP fetch client.

Every request to a scraped platform goes through ``FetchClient`` so that
browser-like headers, timeouts, redirect limits, optional proxy rotation,
and retry with exponential backoff are applied in one place.

Failures never escape as raw ``httpx`` exceptions: transport errors and
unacceptable statuses are raised as ``UpstreamUnavailable`` carrying the
status code when one was received.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar
from urllib.parse import urlsplit

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.constants import (
    ACCEPT_DOCUMENT,
    ACCEPT_IMAGE,
    ACCEPT_LANGUAGE,
    ACCEPT_VIDEO,
    DEFAULT_REFERER,
    DESKTOP_USER_AGENT,
    HOST_PLATFORM_HINTS,
    PLATFORM_REFERERS,
    SEC_CH_UA,
)
from app.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

StatusCheck = Callable[[int], bool]
SleepFn = Callable[[float], Awaitable[None]]


def accept_2xx(status: int) -> bool:
    return 200 <= status < 300


def accept_below_400(status: int) -> bool:
    return 200 <= status < 400


def accept_below_500(status: int) -> bool:
    return 200 <= status < 500


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful fetch."""

    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    def json(self) -> Any:
        """Decode the body as JSON; raises ``ValueError`` when it is not."""
        return json.loads(self.content)


# ---------------------------------------------------------------------------
# Header builders
# ---------------------------------------------------------------------------

def platform_for_url(url: str) -> str | None:
    """Guess the platform serving *url* from host substrings."""
    lowered = url.lower()
    for marker, platform in HOST_PLATFORM_HINTS:
        if marker in lowered:
            return platform
    return None


def referer_for(platform: str | None) -> str:
    return PLATFORM_REFERERS.get(platform or "", DEFAULT_REFERER)


def browser_headers(
    platform: str | None = None,
    *,
    kind: str = "document",
    referer: str | None = None,
) -> dict[str, str]:
    """Return desktop-browser headers for fetching a *kind* of resource.

    *kind* is one of ``document``, ``image``, ``video`` or ``api``.  The
    ``Referer`` defaults to the platform's home page.
    """
    ref = referer or referer_for(platform)
    headers: dict[str, str] = {
        "User-Agent": DESKTOP_USER_AGENT,
        "Accept-Language": ACCEPT_LANGUAGE,
        "Referer": ref,
    }
    if kind == "document":
        headers.update(
            {
                "Accept": ACCEPT_DOCUMENT,
                "Cache-Control": "no-cache",
                "Pragma": "no-cache",
                "DNT": "1",
                "Upgrade-Insecure-Requests": "1",
                "sec-ch-ua": SEC_CH_UA,
                "sec-ch-ua-mobile": "?0",
                "sec-ch-ua-platform": '"Windows"',
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "same-origin",
                "Sec-Fetch-User": "?1",
            }
        )
    elif kind == "image":
        headers.update(
            {
                "Accept": ACCEPT_IMAGE,
                "Origin": ref.rstrip("/"),
                "Sec-Fetch-Dest": "image",
                "Sec-Fetch-Mode": "no-cors",
                "Sec-Fetch-Site": "cross-site",
            }
        )
    elif kind == "video":
        headers.update(
            {
                "Accept": ACCEPT_VIDEO,
                "Origin": ref.rstrip("/"),
                "Sec-Fetch-Dest": "video",
                "Sec-Fetch-Mode": "cors",
                "Sec-Fetch-Site": "cross-site",
            }
        )
    else:
        headers["Accept"] = "application/json, text/plain, */*"
    return headers


# ---------------------------------------------------------------------------
# Retry with backoff
# ---------------------------------------------------------------------------

def is_retryable(exc: BaseException) -> bool:
    """Transport failures, throttling and 5xx answers are worth retrying."""
    if not isinstance(exc, UpstreamUnavailable):
        return False
    return exc.status is None or exc.status == 429 or exc.status >= 500


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "fetch_retry_scheduled",
        extra={
            "attempt": retry_state.attempt_number,
            "delay_seconds": retry_state.next_action.sleep if retry_state.next_action else 0,
            "error_message": str(exc),
        },
    )


async def fetch_with_retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Call *fn* up to *max_retries* times with exponential backoff.

    The delay before attempt ``n + 1`` is ``initial_delay * 2 ** (n - 1)``.
    The last error is re-raised once attempts are exhausted.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_retries)),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(fn)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class FetchClient:
    """Async HTTP client with spoofed headers, proxies and retries.

    ``transport`` is passed through to ``httpx`` so tests can plug in an
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        probe_timeout: float | None = None,
        max_redirects: int | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        proxy_urls: list[str] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self.probe_timeout = (
            probe_timeout if probe_timeout is not None else settings.PROBE_TIMEOUT_SECONDS
        )
        self.max_redirects = (
            max_redirects if max_redirects is not None else settings.FETCH_MAX_REDIRECTS
        )
        self.max_retries = max_retries if max_retries is not None else settings.FETCH_MAX_RETRIES
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.FETCH_RETRY_DELAY_SECONDS
        )
        self._sleep = sleep

        self._direct = httpx.AsyncClient(
            transport=transport,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            timeout=self.timeout,
        )
        if proxy_urls is None and settings.USE_PROXIES:
            proxy_urls = settings.proxy_urls
        self._proxies = [
            httpx.AsyncClient(
                proxy=proxy_url,
                follow_redirects=True,
                max_redirects=self.max_redirects,
                timeout=self.timeout,
            )
            for proxy_url in (proxy_urls or [])
        ]
        self._proxy_cycle = itertools.cycle(self._proxies) if self._proxies else None

    async def aclose(self) -> None:
        await self._direct.aclose()
        for client in self._proxies:
            await client.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        timeout: float,
        follow_redirects: bool,
    ) -> httpx.Response:
        if self._proxy_cycle is not None:
            proxied = next(self._proxy_cycle)
            try:
                return await proxied.request(
                    method, url, headers=headers, timeout=timeout,
                    follow_redirects=follow_redirects,
                )
            except httpx.TransportError as exc:
                logger.warning(
                    "fetch_proxy_failed",
                    extra={"url": url, "error_message": str(exc)},
                )
        return await self._direct.request(
            method, url, headers=headers, timeout=timeout,
            follow_redirects=follow_redirects,
        )

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        max_redirects: int | None = None,
        accept_status: StatusCheck = accept_2xx,
    ) -> FetchResult:
        """Issue one request; raise ``UpstreamUnavailable`` on any failure.

        ``max_redirects=None`` follows redirects up to the client-wide limit.
        An integer caps the hops for this call: ``0`` hands the 3xx answer to
        *accept_status*, and a chain longer than the cap raises with the last
        redirect's status.
        """
        sent_headers = headers or browser_headers(platform_for_url(url))
        wait = timeout if timeout is not None else self.timeout
        hop_method = method
        try:
            response = await self._send(method, url, sent_headers, wait, max_redirects is None)
            for _ in range(max_redirects or 0):
                if not response.is_redirect:
                    break
                if response.status_code not in (307, 308) and hop_method != "HEAD":
                    hop_method = "GET"
                target = str(response.url.join(response.headers["location"]))
                response = await self._send(hop_method, target, sent_headers, wait, False)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "fetch_transport_error",
                extra={"url": url, "method": method, "error_type": type(exc).__name__,
                       "error_message": str(exc)},
            )
            raise UpstreamUnavailable(
                f"Request to {urlsplit(url).netloc or url} failed",
                url=url,
                detail=f"{type(exc).__name__}: {exc}",
            ) from exc

        if max_redirects and response.is_redirect:
            logger.warning(
                "fetch_too_many_redirects",
                extra={"url": url, "method": method, "max_redirects": max_redirects,
                       "status_code": response.status_code},
            )
            raise UpstreamUnavailable(
                "Too many redirects",
                url=url,
                status=response.status_code,
                detail="TooManyRedirects",
            )

        if not accept_status(response.status_code):
            logger.warning(
                "fetch_bad_status",
                extra={
                    "url": url,
                    "method": method,
                    "status_code": response.status_code,
                    "body_excerpt": response.text[:200] if method != "HEAD" else "",
                },
            )
            raise UpstreamUnavailable(
                f"Upstream answered {response.status_code}",
                url=url,
                status=response.status_code,
                detail=f"HTTP {response.status_code}",
            )

        return FetchResult(
            url=str(response.url),
            status=response.status_code,
            headers=dict(response.headers),
            content=response.content,
            encoding=response.encoding or "utf-8",
        )

    async def fetch_with_retry(self, url: str, **kwargs: Any) -> FetchResult:
        """``fetch`` wrapped in the client's retry policy."""
        return await fetch_with_retry(
            lambda: self.fetch(url, **kwargs),
            self.max_retries,
            self.retry_delay,
            sleep=self._sleep,
        )

    async def probe(self, url: str, platform: str | None = None) -> bool:
        """HEAD *url* to check it is reachable; log, never raise.

        Many CDNs reject HEAD but serve GET, so ``False`` is advisory.
        """
        try:
            await self.fetch(
                url,
                method="HEAD",
                headers=browser_headers(platform, kind="image"),
                timeout=self.probe_timeout,
                accept_status=accept_below_400,
            )
        except UpstreamUnavailable as exc:
            logger.info(
                "image_probe_failed",
                extra={"url": url, "platform": platform, "error_message": exc.detail},
            )
            return False
        return True


# ---------------------------------------------------------------------------
# Process-wide client
# ---------------------------------------------------------------------------

_client: FetchClient | None = None


def get_fetch_client() -> FetchClient:
    """Return the singleton fetch client, creating it on first call."""
    global _client
    if _client is None:
        _client = FetchClient()
    return _client


async def close_fetch_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
