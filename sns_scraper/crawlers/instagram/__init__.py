"""Instagram 추출기 (로그인 세션 + 익명 폴백)."""

from .extractor import InstagramExtractor

__all__ = ["InstagramExtractor"]
