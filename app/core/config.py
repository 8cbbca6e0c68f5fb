"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str
    SUPABASE_STORAGE_BUCKET: str = "post-images"

    # YouTube Data API
    YOUTUBE_API_KEY: str = ""
    YOUTUBE_API_BASE_URL: str = "https://www.googleapis.com/youtube/v3"

    # TikTok helper API (tikwm-compatible)
    TIKTOK_HELPER_API_URL: str = "https://www.tikwm.com/api/"

    # Asset rehosting
    REHOST_ENABLED: bool = True
    REHOST_MIN_BYTES: int = 1024

    # Outbound fetching
    FETCH_TIMEOUT_SECONDS: float = 15.0
    PROBE_TIMEOUT_SECONDS: float = 5.0
    FETCH_MAX_REDIRECTS: int = 5
    FETCH_MAX_RETRIES: int = 3
    FETCH_RETRY_DELAY_SECONDS: float = 1.0

    # Proxy rotation (comma separated proxy URLs)
    USE_PROXIES: bool = False
    PROXY_URLS: str = ""

    # Image proxy cache
    IMAGE_CACHE_TTL_HOURS: int = 24
    CACHE_SWEEP_INTERVAL_MINUTES: int = 60

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def proxy_urls(self) -> list[str]:
        """Return the configured proxy URLs as a list, skipping blanks."""
        return [p.strip() for p in self.PROXY_URLS.split(",") if p.strip()]


settings = Settings()  # type: ignore[call-arg]
