"""TikTok 추출기 (HTTP 팔로워 + Playwright 게시물)."""

from .extractor import TikTokExtractor

__all__ = ["TikTokExtractor"]
