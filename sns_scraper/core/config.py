"""설정 관리 - 환경 변수 로드 및 검증"""
from pathlib import Path

from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """스크래퍼 설정"""

    # 브라우저
    # SCRAPER_DEBUG=true 이면 공용 브라우저를 headful로 띄워 동작을 눈으로 확인할 수 있습니다.
    scraper_debug: bool = False
    crawler_max_retries: int = 3
    crawler_launch_timeout_s: float = 25.0

    # 네비게이션 타임아웃 (ms)
    crawler_navigation_timeout_ms: int = 25000
    crawler_settle_timeout_ms: int = 8000
    crawler_settle_delay_ms: int = 3000

    # HTTP (curl_cffi) - TikTok 팔로워, YouTube Data API
    crawler_http_timeout_s: float = 15.0
    crawler_http_impersonate: str = "chrome110"
    crawler_http_max_clients: int = 20

    # 로그인 세션(쿠키) 저장 위치
    cookie_dir: Path = Path.home() / ".sns-dashboard-cookies"
    login_navigation_timeout_ms: int = 30000

    # YouTube Data API v3
    youtube_api_key: str = ""
    youtube_api_base: str = "https://www.googleapis.com/youtube/v3"

    # 플랫폼별 동시 실행 슬롯 (없는 플랫폼은 제한 없음)
    governor_capacities: dict[str, int] = {"tiktok": 2, "instagram": 1, "facebook": 1}
    # 슬롯 반납 전 랜덤 대기 구간 (초)
    governor_pacing_s: dict[str, tuple[float, float]] = {
        "tiktok": (2.0, 4.0),
        "instagram": (2.0, 4.0),
        "facebook": (2.0, 4.0),
    }
    # 슬롯 대기 상한 (초). 0 이면 무한 대기
    governor_acquire_timeout_s: float = 300.0

    # 재시도 정책
    retry_max_attempts: dict[str, int] = {"tiktok": 2, "instagram": 2, "youtube": 2, "facebook": 2}
    retry_base_delay_s: float = 2.0
    retry_jitter_s: float = 2.0
    retry_max_delay_s: float = 10.0
    # "충분히 좋음" 기준: 팔로워 + 게시물 필드 N개 이상
    retry_min_post_fields: dict[str, int] = {"tiktok": 3, "instagram": 3, "youtube": 3, "facebook": 2}

    # 일괄 새로고침 시 호출 측에서 순차 + 랜덤 지연으로 보낼 플랫폼
    bulk_paced_platforms: list[str] = ["tiktok"]
    bulk_dispatch_delay_s: tuple[float, float] = (1.0, 2.0)

    # 섀도우밴 재확인
    shadowban_view_threshold: int = 100
    shadowban_recheck_delay_s: float = 600.0
    shadowban_tag_label: str = "#Shadowban"

    # 로깅
    log_level: str = "INFO"

    @field_validator(
        "crawler_navigation_timeout_ms",
        "crawler_settle_timeout_ms",
        "login_navigation_timeout_ms",
    )
    @classmethod
    def validate_timeouts_ms(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("navigation timeouts must be positive")
        return v

    @field_validator("crawler_http_timeout_s", "crawler_launch_timeout_s")
    @classmethod
    def validate_timeouts_s(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("governor_capacities")
    @classmethod
    def validate_capacities(cls, v: dict[str, int]) -> dict[str, int]:
        for platform, capacity in v.items():
            if capacity <= 0:
                raise ValueError(f"governor capacity for '{platform}' must be positive")
        return {k.lower(): c for k, c in v.items()}

    @field_validator("governor_pacing_s")
    @classmethod
    def validate_pacing(cls, v: dict[str, tuple[float, float]]) -> dict[str, tuple[float, float]]:
        for platform, (low, high) in v.items():
            if low < 0 or high < low:
                raise ValueError(f"invalid pacing bounds for '{platform}': ({low}, {high})")
        return {k.lower(): b for k, b in v.items()}

    @field_validator("governor_acquire_timeout_s")
    @classmethod
    def validate_acquire_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("governor_acquire_timeout_s must be >= 0")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: dict[str, int]) -> dict[str, int]:
        for platform, attempts in v.items():
            if attempts <= 0:
                raise ValueError(f"retry_max_attempts for '{platform}' must be positive")
        return {k.lower(): a for k, a in v.items()}

    @field_validator("retry_min_post_fields")
    @classmethod
    def validate_min_post_fields(cls, v: dict[str, int]) -> dict[str, int]:
        for platform, n in v.items():
            if not 0 <= n <= 4:
                raise ValueError(f"retry_min_post_fields for '{platform}' must be within 0..4")
        return {k.lower(): n for k, n in v.items()}

    @field_validator("shadowban_view_threshold")
    @classmethod
    def validate_shadowban_threshold(cls, v: int) -> int:
        if v < 0:
            raise ValueError("shadowban_view_threshold must be >= 0")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
