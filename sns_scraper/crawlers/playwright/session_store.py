"""로그인 세션(쿠키) 저장소.

흐름:
1. open(platform): 보이는 브라우저를 띄워 로그인 페이지로 이동 → 사용자가 직접 로그인
2. close(platform): 그 브라우저의 쿠키를 <cookie_dir>/<platform>.json 에 저장 후 종료
3. with_session(platform, url): 저장된 쿠키를 새 스텔스 컨텍스트에 주입하고 이동

세션 신선도는 여기서 검증하지 않습니다. 로그인 페이지 리다이렉트 여부는
플랫폼별 표식을 아는 추출기가 판단합니다 (is_login_redirect 참고).
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import (
    CookiePersistException,
    NoSessionException,
    UnsupportedPlatformException,
)
from sns_scraper.core.logging import logger
from sns_scraper.engine.result import LOGIN_PLATFORMS, Platform

from .browser import BrowserSessionManager
from .pages import configure_page, navigate


LOGIN_URLS = {
    Platform.INSTAGRAM: "https://www.instagram.com/accounts/login/",
    Platform.FACEBOOK: "https://www.facebook.com/login/",
}

# 세션 만료 시 리다이렉트되는 URL 표식
LOGIN_URL_MARKERS = {
    Platform.INSTAGRAM: ("/accounts/login",),
    Platform.FACEBOOK: ("/login", "/checkpoint"),
}


@dataclass
class LoginSession:
    """플랫폼별로 하나씩 저장되는 로그인 세션"""

    platform: Platform
    cookies: list[dict[str, Any]] = field(default_factory=list)
    captured_at: Optional[datetime] = None

    def to_json(self) -> str:
        return json.dumps(
            {
                "captured_at": self.captured_at.isoformat() if self.captured_at else None,
                "cookies": self.cookies,
            },
            ensure_ascii=False,
            indent=2,
        )

    @classmethod
    def from_json(cls, platform: Platform, raw: str) -> "LoginSession":
        data = json.loads(raw)
        # 예전 형식: 쿠키 배열만 저장
        if isinstance(data, list):
            return cls(platform=platform, cookies=data)
        captured_at = data.get("captured_at")
        return cls(
            platform=platform,
            cookies=list(data.get("cookies") or []),
            captured_at=datetime.fromisoformat(captured_at) if captured_at else None,
        )


@dataclass
class _LoginFlow:
    browser: Any
    context: Any
    page: Any


def _require_login_platform(platform: Any) -> Platform:
    parsed = Platform.parse(platform)
    if parsed not in LOGIN_PLATFORMS:
        raise UnsupportedPlatformException(parsed.value, {"reason": "manual login is only supported for instagram/facebook"})
    return parsed


def is_login_redirect(platform: Platform, url: str) -> bool:
    """현재 URL 이 로그인 페이지인지 (세션 만료 판정용)"""
    markers = LOGIN_URL_MARKERS.get(Platform.parse(platform), ())
    return any(m in (url or "") for m in markers)


class LoginSessionStore:
    """쿠키 기반 로그인 세션 영속화"""

    def __init__(
        self,
        browsers: BrowserSessionManager,
        cookie_dir: Optional[Path] = None,
    ) -> None:
        self._browsers = browsers
        self.cookie_dir = Path(cookie_dir or settings.cookie_dir)
        self._login_flows: dict[Platform, _LoginFlow] = {}

    def cookie_path(self, platform: Any) -> Path:
        return self.cookie_dir / f"{Platform.parse(platform).value}.json"

    def has_session(self, platform: Any) -> bool:
        """쿠키 파일 존재 여부만 확인 (유효성 검증 없음)"""
        return self.cookie_path(platform).exists()

    def is_open(self, platform: Any) -> bool:
        return Platform.parse(platform) in self._login_flows

    def load(self, platform: Any) -> LoginSession:
        """저장된 세션 읽기

        Raises:
            NoSessionException: 쿠키 파일이 없음
        """
        parsed = Platform.parse(platform)
        path = self.cookie_path(parsed)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NoSessionException(parsed.value) from None
        return LoginSession.from_json(parsed, raw)

    def save(self, session: LoginSession) -> Path:
        """임시 파일에 쓴 뒤 교체 (읽는 쪽이 반쯤 쓰인 파일을 보지 않도록)"""
        self.cookie_dir.mkdir(parents=True, exist_ok=True)
        path = self.cookie_path(session.platform)
        fd, tmp = tempfile.mkstemp(dir=self.cookie_dir, prefix=f".{session.platform.value}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(session.to_json())
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
        return path

    async def open(self, platform: Any) -> None:
        """수동 로그인용 브라우저 열기 (플랫폼당 최대 1개)"""
        parsed = _require_login_platform(platform)
        await self._discard_flow(parsed)

        self.cookie_dir.mkdir(parents=True, exist_ok=True)
        browser = await self._browsers.launch_visible()
        try:
            context = await browser.new_context(viewport={"width": 1280, "height": 900}, locale="ko-KR")
            page = await context.new_page()
        except BaseException:
            await self._close_browser(browser, parsed)
            raise

        try:
            await page.goto(
                LOGIN_URLS[parsed],
                wait_until="domcontentloaded",
                timeout=settings.login_navigation_timeout_ms,
            )
        except PlaywrightError as e:
            # 로그인은 사용자가 직접 진행하므로 로딩 지연은 치명적이지 않음
            logger.warning(f"[Auth] {parsed.value} login page load incomplete: {type(e).__name__}")

        self._login_flows[parsed] = _LoginFlow(browser=browser, context=context, page=page)
        logger.info(f"[Auth] Opened {parsed.value} login browser. Please log in manually.")

    async def close(self, platform: Any) -> Optional[Path]:
        """로그인 브라우저의 쿠키를 저장하고 브라우저 종료.

        쿠키 저장이 실패해도 브라우저는 항상 닫고, 실패는
        CookiePersistException 으로 알립니다.

        Returns:
            저장된 파일 경로 (열린 로그인 브라우저가 없으면 None)
        """
        parsed = _require_login_platform(platform)
        flow = self._login_flows.pop(parsed, None)
        if flow is None:
            logger.info(f"[Auth] No open {parsed.value} login browser to close")
            return None

        error: Optional[Exception] = None
        path: Optional[Path] = None
        try:
            cookies = await flow.context.cookies()
            path = self.save(
                LoginSession(platform=parsed, cookies=list(cookies), captured_at=datetime.now(timezone.utc))
            )
            logger.info(f"[Auth] Saved {len(cookies)} cookies for {parsed.value}.")
        except Exception as e:
            error = e
            logger.error(f"[Auth] Failed to save cookies for {parsed.value}: {type(e).__name__}: {e}")
        finally:
            await self._close_browser(flow.browser, parsed)

        if error is not None:
            raise CookiePersistException(parsed.value, f"{type(error).__name__}: {error}") from error
        return path

    async def _discard_flow(self, platform: Platform) -> None:
        """쿠키를 저장하지 않고 기존 로그인 브라우저만 종료"""
        flow = self._login_flows.pop(platform, None)
        if flow is not None:
            await self._close_browser(flow.browser, platform)

    async def _close_browser(self, browser: Any, platform: Platform) -> None:
        try:
            if browser.is_connected():
                await browser.close()
        except PlaywrightError as e:
            logger.debug(f"[Auth] {platform.value} login browser already closed: {e}")
        finally:
            await self._browsers.release_visible(browser)
        logger.info(f"[Auth] Closed {platform.value} login browser.")

    async def close_all(self) -> None:
        for platform in list(self._login_flows):
            await self._discard_flow(platform)

    async def with_session(self, platform: Any, url: str):
        """저장된 쿠키로 인증된 컨텍스트를 만들고 url 로 이동.

        Returns:
            (context, page) - 호출자가 context 를 반드시 close() 해야 함

        Raises:
            NoSessionException: 저장된 세션 없음
            TransportException: 네비게이션 실패 (컨텍스트는 닫고 전달)
        """
        session = self.load(platform)
        context = await self._browsers.new_context(stealth=True)
        try:
            if session.cookies:
                await context.add_cookies(session.cookies)
            page = await context.new_page()
            await configure_page(page)
            await navigate(page, url)
        except BaseException:
            await context.close()
            raise
        return context, page
