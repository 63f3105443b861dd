"""Scrape Orchestrator - Main Engine Entry Point

외부(API 라우트, 배치 새로고침)가 호출하는 경계 연산을 모읍니다:
- scrape / scrape_many: 플랫폼 슬롯 → 추출기 → 재시도/점수화
- open_login_browser / close_login_browser / has_login_session: 수동 로그인 흐름
- shutdown: 로그인 브라우저, 공용 브라우저, HTTP 세션 정리
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import UnsupportedPlatformException
from sns_scraper.core.logging import logger
from sns_scraper.crawlers import (
    FacebookExtractor,
    InstagramExtractor,
    PlatformExtractor,
    TikTokExtractor,
    YouTubeExtractor,
)
from sns_scraper.crawlers.http_client import SharedHttpClient, get_shared_http_client
from sns_scraper.crawlers.parsing import clean_username
from sns_scraper.crawlers.playwright.browser import BrowserSessionManager
from sns_scraper.crawlers.playwright.session_store import LoginSessionStore

from .governor import ConcurrencyGovernor
from .result import LOGIN_PLATFORMS, ExtractionResult, Platform
from .retry import RetryController, RetryOutcome, RetryPolicy


class ScrapeOrchestrator:
    """추출 엔진 오케스트레이터

    모든 협력 객체는 주입 가능하며, 생략하면 설정값으로 기본 인스턴스를 만듭니다.
    """

    def __init__(
        self,
        browsers: Optional[BrowserSessionManager] = None,
        session_store: Optional[LoginSessionStore] = None,
        http_client: Optional[SharedHttpClient] = None,
        governor: Optional[ConcurrencyGovernor] = None,
        retry_controller: Optional[RetryController] = None,
        extractors: Optional[dict[Platform, PlatformExtractor]] = None,
        policies: Optional[dict[Platform, RetryPolicy]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.browsers = browsers or BrowserSessionManager()
        self.sessions = session_store or LoginSessionStore(self.browsers)
        self.http = http_client or get_shared_http_client()
        self.governor = governor or ConcurrencyGovernor.from_settings()
        self.retry = retry_controller or RetryController()
        self.extractors = extractors if extractors is not None else self._default_extractors()
        self.policies = dict(policies or {})
        self._sleep = sleep
        self._rng = rng or random.Random()

    def _default_extractors(self) -> dict[Platform, PlatformExtractor]:
        return {
            Platform.TIKTOK: TikTokExtractor(self.browsers, self.http),
            Platform.INSTAGRAM: InstagramExtractor(self.browsers, self.sessions),
            Platform.YOUTUBE: YouTubeExtractor(self.http),
            Platform.FACEBOOK: FacebookExtractor(self.browsers, self.sessions),
        }

    def policy_for(self, platform: Platform) -> RetryPolicy:
        return self.policies.get(platform) or RetryPolicy.for_platform(platform)

    async def scrape_with_outcome(self, platform: Any, username: str) -> RetryOutcome:
        """scrape() 와 같지만 시도 기록까지 반환"""
        parsed = Platform.parse(platform)
        name = clean_username(username)
        if not name:
            raise ValueError(f"Invalid username: {username!r}")

        extractor = self.extractors.get(parsed)
        if extractor is None:
            raise UnsupportedPlatformException(
                parsed.value, {"platform": parsed.value, "reason": "no extractor registered"}
            )

        async def attempt() -> ExtractionResult:
            async with self.governor.slot(parsed):
                return await extractor.extract(name)

        logger.info(f"[Scrape] {parsed.value}/{name} started")
        outcome = await self.retry.run(
            attempt,
            self.policy_for(parsed),
            fallback=ExtractionResult.empty(parsed, name),
        )
        logger.info(
            f"[Scrape] {parsed.value}/{name} finished: {outcome.result.score}/5 fields "
            f"after {len(outcome.attempts)} attempt(s)"
        )
        return outcome

    async def scrape(self, platform: Any, username: str) -> ExtractionResult:
        """(플랫폼, 사용자명) 1건 추출

        데이터가 없으면 모든 값이 None 인 결과를 돌려줄 뿐 예외를 던지지 않습니다.

        Raises:
            UnsupportedPlatformException: 지원하지 않거나 추출기가 등록되지 않은 플랫폼
            NoSessionException: 세션 저장소가 세션 없음으로 판단
            BrowserException: 공용 브라우저를 띄울 수 없음
            ValueError: 입력 검증 실패 (공백과 @ 를 제거하면 빈 사용자명). 작업 시작 전에 던짐
        """
        outcome = await self.scrape_with_outcome(platform, username)
        return outcome.result

    def _is_paced(self, platform: Any) -> bool:
        key = platform.value if isinstance(platform, Platform) else str(platform).strip().lower()
        return key in settings.bulk_paced_platforms

    async def _dispatch_paced(self, jobs: list[tuple[Any, str]]) -> list[Any]:
        # 순차로 보내되 완료를 기다리지는 않음 (동시 실행 수는 governor 가 제한)
        tasks = []
        low, high = settings.bulk_dispatch_delay_s
        for i, (platform, username) in enumerate(jobs):
            if i > 0:
                await self._sleep(self._rng.uniform(low, high))
            tasks.append(asyncio.ensure_future(self.scrape(platform, username)))
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def scrape_many(
        self,
        requests: Iterable[tuple[Any, str]],
    ) -> list[Union[ExtractionResult, BaseException]]:
        """여러 계정 일괄 추출 (입력 순서대로 결과 또는 예외 반환)

        bulk_paced_platforms 에 속한 플랫폼은 랜덤 간격으로 하나씩 보내고,
        나머지는 한꺼번에 보냅니다. 두 그룹은 서로 병렬로 진행됩니다.
        """
        jobs = list(requests)
        paced_idx = [i for i, (platform, _) in enumerate(jobs) if self._is_paced(platform)]
        other_idx = [i for i in range(len(jobs)) if i not in set(paced_idx)]

        logger.info(f"[Scrape] Bulk refresh: {len(jobs)} account(s), {len(paced_idx)} paced")

        others = asyncio.gather(
            *(self.scrape(*jobs[i]) for i in other_idx),
            return_exceptions=True,
        )
        paced = self._dispatch_paced([jobs[i] for i in paced_idx])
        other_results, paced_results = await asyncio.gather(others, paced)

        results: list[Any] = [None] * len(jobs)
        for i, res in zip(other_idx, other_results):
            results[i] = res
        for i, res in zip(paced_idx, paced_results):
            results[i] = res

        failed = sum(1 for r in results if isinstance(r, BaseException))
        if failed:
            logger.warning(f"[Scrape] Bulk refresh finished with {failed} failure(s)")
        return results

    async def open_login_browser(self, platform: Any) -> None:
        """수동 로그인 브라우저 열기 (instagram/facebook)"""
        await self.sessions.open(platform)

    async def close_login_browser(self, platform: Any) -> None:
        """로그인 브라우저 쿠키 저장 후 종료 (세션 파일을 쓰는 유일한 경로)"""
        await self.sessions.close(platform)

    def has_login_session(self, platform: Any) -> bool:
        return self.sessions.has_session(platform)

    def login_status(self) -> dict[str, bool]:
        return {p.value: self.sessions.has_session(p) for p in sorted(LOGIN_PLATFORMS, key=lambda p: p.value)}

    async def shutdown(self) -> None:
        await self.sessions.close_all()
        await self.browsers.shutdown()
        await self.http.close()
        logger.info("[Scrape] Orchestrator shut down")
