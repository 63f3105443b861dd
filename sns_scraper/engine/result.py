"""Extraction Result - Standardized Result Format

모든 플랫폼 추출기가 반환하는 표준 결과 형식입니다.
각 필드는 독립적으로 None 이 될 수 있고, None 은 "이번 시도에서 확인 못 함",
0 은 실제 값(예: 조회수 0)입니다.
"""

from dataclasses import dataclass, fields as dataclass_fields
from datetime import date
from enum import Enum
from typing import Any, Optional

from sns_scraper.core.exceptions import UnsupportedPlatformException


class Platform(str, Enum):
    """지원 플랫폼"""

    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    FACEBOOK = "facebook"

    @classmethod
    def parse(cls, value: Any) -> "Platform":
        """대소문자 무시 변환. 지원하지 않는 값은 UnsupportedPlatformException."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedPlatformException(value) from None


# 수동 로그인(쿠키 세션)을 지원하는 플랫폼
LOGIN_PLATFORMS = frozenset({Platform.INSTAGRAM, Platform.FACEBOOK})

TARGET_FIELDS = (
    "followers",
    "last_post_date",
    "last_post_view",
    "last_post_like",
    "last_post_save",
)
POST_FIELDS = TARGET_FIELDS[1:]


@dataclass
class ExtractionResult:
    """(플랫폼, 사용자명) 1회 추출 결과

    Attributes:
        platform: 플랫폼
        username: 플랫폼 내 사용자명 (전역 유일 아님)
        followers: 팔로워/구독자 수
        last_post_date: 최근 게시물 날짜 (시간 없음)
        last_post_view: 최근 게시물 조회수
        last_post_like: 최근 게시물 좋아요 수
        last_post_save: 최근 게시물 저장 수
        session_expired: 로그인 세션 만료로 추출을 건너뛴 경우 True
    """

    platform: Platform
    username: str
    followers: Optional[int] = None
    last_post_date: Optional[date] = None
    last_post_view: Optional[int] = None
    last_post_like: Optional[int] = None
    last_post_save: Optional[int] = None

    session_expired: bool = False

    @classmethod
    def empty(cls, platform: Platform, username: str) -> "ExtractionResult":
        """모든 필드가 None 인 결과 생성"""
        return cls(platform=platform, username=username)

    @property
    def score(self) -> int:
        """5개 대상 필드 중 값이 있는 필드 수"""
        return sum(1 for name in TARGET_FIELDS if getattr(self, name) is not None)

    @property
    def post_field_count(self) -> int:
        """게시물 단위 4개 필드 중 값이 있는 필드 수"""
        return sum(1 for name in POST_FIELDS if getattr(self, name) is not None)

    @property
    def is_empty(self) -> bool:
        return self.score == 0

    def missing_fields(self) -> list[str]:
        return [name for name in TARGET_FIELDS if getattr(self, name) is None]

    def merge(self, other: "ExtractionResult") -> "ExtractionResult":
        """other 의 값으로 비어 있는 필드만 채웁니다.

        - 이미 값이 있는 필드는 나중의 None 으로 덮어쓰지 않음
        - 조회수는 두 출처 중 0 이 아닌 값을 우선
        """
        for name in TARGET_FIELDS:
            current = getattr(self, name)
            candidate = getattr(other, name)
            if candidate is None:
                continue
            if current is None:
                setattr(self, name, candidate)
            elif name == "last_post_view" and current == 0 and candidate != 0:
                setattr(self, name, candidate)
        self.session_expired = self.session_expired or other.session_expired
        return self

    def set_if_missing(self, name: str, value: Any) -> None:
        """단일 필드 버전의 merge"""
        if name not in TARGET_FIELDS:
            raise ValueError(f"Unknown result field: {name}")
        if value is None:
            return
        current = getattr(self, name)
        if current is None or (name == "last_post_view" and current == 0 and value != 0):
            setattr(self, name, value)

    def to_dict(self) -> dict[str, Any]:
        """소비자(API/UI) 계약 형식. 날짜는 YYYY-MM-DD, None 은 그대로 유지."""
        return {
            "platform": self.platform.value,
            "username": self.username,
            "followers": self.followers,
            "lastPostDate": self.last_post_date.isoformat() if self.last_post_date else None,
            "lastPostView": self.last_post_view,
            "lastPostLike": self.last_post_like,
            "lastPostSave": self.last_post_save,
            "sessionExpired": self.session_expired,
        }

    def summary(self) -> str:
        """로그용 한 줄 요약"""
        parts = [f"{f.name}={getattr(self, f.name)}" for f in dataclass_fields(self) if f.name in TARGET_FIELDS]
        return f"{' '.join(parts)} ({self.score}/5 fields)"
