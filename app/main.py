"""FastAPI application entry point.

Configures CORS, structured logging, error handlers, lifespan events
(APScheduler and the outbound HTTP client), and router registration.
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import register_error_handlers
from app.core.logging import setup_logging
from app.routers import analytics, feed, health, posts, social
from app.scheduler.jobs import shutdown_scheduler, start_scheduler
from app.services.fetch import close_fetch_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup and shutdown hooks."""
    setup_logging()
    logger.info("Application starting up")
    start_scheduler()
    yield
    shutdown_scheduler()
    await close_fetch_client()
    logger.info("Application shutting down")


app = FastAPI(
    title="Link Feed API",
    description="Imports YouTube, Instagram, Facebook and TikTok posts into a public link-in-bio feed",
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

# ---------------------------------------------------------------------------
# CORS Configuration
# ---------------------------------------------------------------------------
_raw_origins = settings.ALLOWED_ORIGINS.strip()
if _raw_origins == "*":
    _allowed_origins: list[str] = ["*"]
else:
    _allowed_origins = [o.strip() for o in _raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Router Registration
# ---------------------------------------------------------------------------
app.include_router(health.router, tags=["Health"])
app.include_router(social.router, prefix="/api/v1/social", tags=["Social"])
app.include_router(posts.router, prefix="/api/v1/posts", tags=["Posts"])
app.include_router(feed.router, prefix="/api/v1/feed", tags=["Feed"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])
