"""Facebook 추출기 (로그인 세션 + 익명 폴백)."""

from .extractor import FacebookExtractor

__all__ = ["FacebookExtractor"]
