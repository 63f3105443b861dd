"""YouTube 추출기 (Data API v3)."""

from .extractor import YouTubeExtractor

__all__ = ["YouTubeExtractor"]
