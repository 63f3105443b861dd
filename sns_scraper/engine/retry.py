"""Retry/Scoring Controller - 부분 성공을 정상 케이스로 다루는 재시도 루프

각 시도의 결과를 5개 대상 필드 중 채워진 수로 점수화하고,
지금까지 본 결과 중 최고 점수를 돌려줍니다 (마지막 시도가 아니라).
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import BrowserException, ConfigurationException, NoSessionException
from sns_scraper.core.logging import logger

from .result import ExtractionResult, Platform, TARGET_FIELDS


# 재시도해도 결과가 달라질 수 없는 예외 → 즉시 호출자에게 전달
# (BrowserException 은 브라우저 실행 재시도까지 이미 소진한 상태)
NON_RETRYABLE = (NoSessionException, ConfigurationException, BrowserException)


@dataclass
class RetryPolicy:
    """재시도 정책

    Attributes:
        max_attempts: 최대 시도 횟수
        base_delay_s: 백오프 기본값 (시도 번호에 비례)
        jitter_s: 백오프에 더하는 랜덤 지터 상한
        max_delay_s: 백오프 상한
        min_post_fields: "충분히 좋음" 기준 게시물 필드 수 (None 이면 5/5 만 조기 종료)
        require_followers: "충분히 좋음" 판정에 팔로워 필드 필수 여부
    """

    max_attempts: int = 2
    base_delay_s: float = 2.0
    jitter_s: float = 2.0
    max_delay_s: float = 10.0
    min_post_fields: Optional[int] = 3
    require_followers: bool = True

    def __post_init__(self):
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if self.base_delay_s < 0 or self.jitter_s < 0 or self.max_delay_s < 0:
            raise ValueError("retry delays must be >= 0")
        if self.min_post_fields is not None and not 0 <= self.min_post_fields <= len(TARGET_FIELDS) - 1:
            raise ValueError("min_post_fields must be within 0..4")

    @classmethod
    def for_platform(cls, platform: Platform) -> "RetryPolicy":
        """설정값에서 플랫폼별 정책 생성"""
        key = platform.value
        return cls(
            max_attempts=settings.retry_max_attempts.get(key, 2),
            base_delay_s=settings.retry_base_delay_s,
            jitter_s=settings.retry_jitter_s,
            max_delay_s=settings.retry_max_delay_s,
            min_post_fields=settings.retry_min_post_fields.get(key),
        )

    def is_good_enough(self, result: ExtractionResult) -> bool:
        if result.score == len(TARGET_FIELDS):
            return True
        if self.min_post_fields is None:
            return False
        if self.require_followers and result.followers is None:
            return False
        return result.post_field_count >= self.min_post_fields


@dataclass
class AttemptRecord:
    """시도 1회 기록"""

    index: int
    score: int
    backoff_s: float = 0.0
    error: Optional[str] = None


@dataclass
class RetryOutcome:
    """재시도 루프 결과"""

    result: ExtractionResult
    attempts: list[AttemptRecord] = field(default_factory=list)
    best_attempt: Optional[int] = None

    @property
    def score(self) -> int:
        return self.result.score


class RetryController:
    """추출 함수 재시도/점수화

    Usage:
        controller = RetryController()
        outcome = await controller.run(
            lambda: extractor.extract("username"),
            RetryPolicy.for_platform(Platform.TIKTOK),
            fallback=ExtractionResult.empty(Platform.TIKTOK, "username"),
        )
    """

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_for(self, attempt: int, policy: RetryPolicy) -> float:
        """attempt 번째 실패 후 대기 시간 (초)"""
        base = policy.base_delay_s * attempt
        jitter = self._rng.uniform(0.0, policy.jitter_s) if policy.jitter_s > 0 else 0.0
        return min(policy.max_delay_s, base + jitter)

    async def run(
        self,
        extract_fn: Callable[[], Awaitable[ExtractionResult]],
        policy: RetryPolicy,
        fallback: ExtractionResult,
    ) -> RetryOutcome:
        """추출 함수를 정책에 따라 반복 실행

        Args:
            extract_fn: 시도 1회를 수행하는 async 함수
            policy: 재시도 정책
            fallback: 모든 시도가 예외로 끝났을 때 반환할 빈 결과

        Returns:
            RetryOutcome: 최고 점수 결과와 시도 기록

        Raises:
            NoSessionException: 로그인 세션 없음 (재시도 무의미)
            ConfigurationException: 자격 증명 누락 등 설정 오류
            BrowserException: 공용 브라우저를 띄울 수 없음
        """
        best: Optional[ExtractionResult] = None
        best_score = -1
        outcome = RetryOutcome(result=fallback)
        label = f"[{fallback.platform.value}] @{fallback.username}"

        for attempt in range(1, policy.max_attempts + 1):
            record = AttemptRecord(index=attempt, score=0)
            outcome.attempts.append(record)

            try:
                result = await extract_fn()
            except NON_RETRYABLE:
                raise
            except Exception as e:
                record.error = f"{type(e).__name__}: {e}"
                logger.warning(f"{label} attempt {attempt}/{policy.max_attempts} failed: {record.error}")
                result = None

            if result is not None:
                record.score = result.score
                # 동점이면 먼저 나온 결과 유지
                if record.score > best_score:
                    best, best_score = result, record.score
                    outcome.best_attempt = attempt
                logger.info(f"{label} attempt {attempt}/{policy.max_attempts}: {result.summary()}")

                if result.session_expired:
                    logger.error(f"{label} login session expired - re-login required, not retrying")
                    break
                if policy.is_good_enough(result):
                    break

            if attempt < policy.max_attempts:
                record.backoff_s = self.backoff_for(attempt, policy)
                missing = ", ".join(best.missing_fields()) if best is not None else "all fields"
                logger.info(f"{label} retrying in {record.backoff_s:.1f}s (missing: {missing})...")
                await self._sleep(record.backoff_s)

        if best is not None:
            outcome.result = best
        if outcome.result.is_empty:
            logger.warning(f"{label} no data could be fetched after {len(outcome.attempts)} attempt(s)")
        return outcome
