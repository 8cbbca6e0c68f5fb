"""Platform to extractor lookup."""

from __future__ import annotations

from app.models.enums import Platform
from app.services.extractors.base import Extractor
from app.services.extractors.facebook import FacebookExtractor
from app.services.extractors.instagram import InstagramExtractor
from app.services.extractors.tiktok import TikTokExtractor
from app.services.extractors.youtube import YouTubeExtractor

_EXTRACTORS: dict[Platform, Extractor] = {
    Platform.youtube: YouTubeExtractor(),
    Platform.instagram: InstagramExtractor(),
    Platform.facebook: FacebookExtractor(),
    Platform.tiktok: TikTokExtractor(),
}


def get_extractor(platform: Platform) -> Extractor:
    return _EXTRACTORS[platform]
