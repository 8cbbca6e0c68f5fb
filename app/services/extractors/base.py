"""Shared extractor interface and cascade runner."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

from app.models.enums import Platform
from app.models.post import PostMetadata
from app.services.extractors.heuristics import absolutize_url, profile_score
from app.services.fetch import FetchClient
from app.services.normalizer import NormalizedUrl

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """What an extractor found for one post.

    ``rehost`` says whether the image should be copied to owned storage;
    ``placeholder`` marks a static platform logo substituted for content.
    """

    image_url: str
    method: str
    metadata: PostMetadata = field(default_factory=PostMetadata)
    degraded: bool = False
    rehost: bool = True
    placeholder: bool = False


class Strategy(NamedTuple):
    """A tagged heuristic: page text to candidate URLs."""

    method: str
    find: Callable[[str], list[str]]


class CascadeHit(NamedTuple):
    url: str
    method: str
    degraded: bool


def run_cascade(page: str, strategies: Sequence[Strategy]) -> CascadeHit | None:
    """Walk *strategies* in order and return the first content image.

    Candidates that look like profile pictures are set aside.  When no
    strategy yields anything else, the set-aside candidate with the fewest
    pattern hits (earliest on ties) is returned flagged as degraded.
    """
    fallback: tuple[int, str, str] | None = None
    for strategy in strategies:
        for raw in strategy.find(page):
            url = absolutize_url(raw)
            if url is None:
                continue
            score = profile_score(url)
            if score == 0:
                logger.debug("cascade_hit", extra={"method": strategy.method, "url": url})
                return CascadeHit(url, strategy.method, False)
            if fallback is None or score < fallback[0]:
                fallback = (score, url, strategy.method)

    if fallback is None:
        return None
    _, url, method = fallback
    logger.info("cascade_degraded", extra={"method": method, "url": url})
    return CascadeHit(url, method, True)


class Extractor(ABC):
    """Per-platform image and metadata extractor."""

    platform: Platform

    @abstractmethod
    async def extract(self, normalized: NormalizedUrl, fetcher: FetchClient) -> ExtractionResult:
        """Return the post's image and metadata.

        Raises ``AppError`` subclasses for platforms without a placeholder.
        """
