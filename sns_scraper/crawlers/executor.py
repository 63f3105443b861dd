"""Extractor Protocol - 플랫폼별 추출기 공통 인터페이스

Defines the common interface that all platform extractors must implement,
plus the shared skeleton for session-gated (login cookie) platforms.
"""

from typing import Any, Protocol

from sns_scraper.core.exceptions import SessionExpiredException
from sns_scraper.core.logging import logger
from sns_scraper.engine.result import ExtractionResult, Platform

from .parsing import clean_username
from .playwright.browser import BrowserSessionManager
from .playwright.session_store import LoginSessionStore, is_login_redirect


class PlatformExtractor(Protocol):
    """플랫폼 추출기 프로토콜

    구현 예시:
        class YouTubeExtractor:
            platform = Platform.YOUTUBE

            async def extract(self, username: str) -> ExtractionResult:
                ...
    """

    platform: Platform

    async def extract(self, username: str) -> ExtractionResult:
        """추출 1회 실행

        Args:
            username: 플랫폼 내 사용자명 (@ 제외)

        Returns:
            ExtractionResult: 찾지 못한 필드는 None. "데이터 없음"으로는 예외를 던지지 않음

        Raises:
            TransportException: 네비게이션/네트워크 실패 (재시도 대상)
            NoSessionException: 인증 추출인데 저장된 세션이 없음
        """
        ...


class SessionGatedExtractor:
    """로그인 세션 유무에 따라 인증/익명 경로를 고르는 추출기 골격

    - 세션 있음: _extract_authenticated (LoginSessionStore.with_session)
    - 세션 없음: _extract_anonymous (스텔스 컨텍스트, 팔로워 정도만)
    - 로그인 페이지로 리다이렉트되면 모든 값이 None 이고
      session_expired=True 인 결과를 돌려줍니다 (재시도하지 않음).
    """

    platform: Platform

    def __init__(self, browsers: BrowserSessionManager, session_store: LoginSessionStore) -> None:
        self._browsers = browsers
        self._sessions = session_store

    @property
    def tag(self) -> str:
        return f"[{self.platform.value.capitalize()}]"

    async def extract(self, username: str) -> ExtractionResult:
        username = clean_username(username)
        result = ExtractionResult.empty(self.platform, username)

        if not self._sessions.has_session(self.platform):
            logger.warning(f"{self.tag} No login session - using anonymous fallback for {username}")
            await self._extract_anonymous(username, result)
            logger.info(f"{self.tag} {username} (anonymous): {result.summary()}")
            return result

        try:
            await self._extract_authenticated(username, result)
        except SessionExpiredException as e:
            logger.error(f"{self.tag} {e.message}. Re-login required via the login browser.")
            expired = ExtractionResult.empty(self.platform, username)
            expired.session_expired = True
            return expired

        logger.info(f"{self.tag} {username} (logged in): {result.summary()}")
        return result

    def ensure_logged_in(self, page: Any) -> None:
        """현재 페이지가 로그인 화면이면 SessionExpiredException"""
        url = page.url or ""
        if is_login_redirect(self.platform, url):
            raise SessionExpiredException(self.platform.value, url)

    async def _extract_authenticated(self, username: str, result: ExtractionResult) -> None:
        raise NotImplementedError

    async def _extract_anonymous(self, username: str, result: ExtractionResult) -> None:
        raise NotImplementedError
