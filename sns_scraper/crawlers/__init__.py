"""플랫폼별 추출기 (HTTP + Playwright).

공개 API는 이 파일에서만 export합니다.
"""

from .executor import PlatformExtractor, SessionGatedExtractor
from .facebook import FacebookExtractor
from .instagram import InstagramExtractor
from .tiktok import TikTokExtractor
from .youtube import YouTubeExtractor

__all__ = [
        "PlatformExtractor",
        "SessionGatedExtractor",
        "TikTokExtractor",
        "InstagramExtractor",
        "YouTubeExtractor",
        "FacebookExtractor",
]
