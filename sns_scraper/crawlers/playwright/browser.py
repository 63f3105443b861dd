"""Playwright 공용 브라우저/컨텍스트 관리.

브라우저 프로세스 하나를 여러 추출 요청이 공유하고, 요청마다
격리된 BrowserContext(쿠키/UA/뷰포트/지문 마스킹)를 새로 만듭니다.

상태: UNSTARTED → RUNNING → DISCONNECTED
- acquire()는 RUNNING 브라우저를 돌려주고, UNSTARTED/DISCONNECTED 이면 다시 띄웁니다.
- 죽은 프로세스에서 만든 컨텍스트는 복구하지 않습니다. 호출 측에서
  네비게이션 실패를 일반 오류로 처리해야 합니다.
"""

from __future__ import annotations

import asyncio
import platform
import random
from enum import Enum
from typing import Any, Callable, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import BrowserException
from sns_scraper.core.logging import logger

from .stealth import apply_stealth, build_stealth


USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36",
]

VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
    {"width": 1680, "height": 1050},
    {"width": 2560, "height": 1440},
    {"width": 1280, "height": 720},
]

DEFAULT_HEADERS = {
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "cross-site",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}


class BrowserState(str, Enum):
    """공용 브라우저 프로세스 상태"""

    UNSTARTED = "unstarted"
    RUNNING = "running"
    DISCONNECTED = "disconnected"


def build_launch_args() -> list[str]:
    args: list[str] = [
        "--disable-blink-features=AutomationControlled",
        "--disable-dev-shm-usage",
        "--disable-infobars",
        "--disable-background-networking",
        "--disable-background-timer-throttling",
        "--disable-backgrounding-occluded-windows",
        "--disable-renderer-backgrounding",
        "--disable-breakpad",
        "--disable-component-extensions-with-background-pages",
        "--disable-features=TranslateUI",
        "--disable-ipc-flooding-protection",
        "--disable-default-apps",
        "--disable-extensions",
        "--no-first-run",
        "--no-default-browser-check",
        "--force-color-profile=srgb",
        "--hide-scrollbars",
        "--metrics-recording-only",
        "--mute-audio",
    ]

    if platform.system().lower() == "linux":
        args.extend(["--no-sandbox", "--disable-setuid-sandbox"])

    deduped: list[str] = []
    seen: set[str] = set()
    for a in args:
        if a not in seen:
            seen.add(a)
            deduped.append(a)
    return deduped


class BrowserSessionManager:
    """공용 스텔스 브라우저 + 요청별 격리 컨텍스트 관리자

    모듈 전역 변수 대신 인스턴스를 주입받아 사용합니다
    (테스트에서는 가짜 playwright_factory 로 교체).
    """

    def __init__(
        self,
        playwright_factory: Callable[[], Any] = async_playwright,
        headless: Optional[bool] = None,
        rng: Optional[random.Random] = None,
        stealth: Any = None,
    ) -> None:
        self._playwright_factory = playwright_factory
        self._stealth = stealth if stealth is not None else build_stealth()
        self._headless = (not settings.scraper_debug) if headless is None else headless
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._state = BrowserState.UNSTARTED
        # 수동 로그인 브라우저별 전용 드라이버 (id(browser) -> Playwright)
        self._visible_drivers: dict[int, Playwright] = {}
        self.launch_count = 0

    @property
    def state(self) -> BrowserState:
        return self._state

    def _on_disconnected(self, browser: Any = None) -> None:
        if browser is None or browser is self._browser:
            if self._state == BrowserState.RUNNING:
                logger.warning("[Playwright] Shared browser disconnected; will relaunch on next acquire()")
            self._state = BrowserState.DISCONNECTED

    async def _ensure_driver(self) -> Playwright:
        if self._playwright is None:
            self._playwright = await asyncio.wait_for(
                self._playwright_factory().start(),
                timeout=20.0,  # Playwright 드라이버 시작에 최대 20초
            )
        return self._playwright

    async def _close_browser(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug(f"[Playwright] Browser close ignored: {type(e).__name__}: {e}")
            self._browser = None

    async def _cleanup(self) -> None:
        await self._close_browser()
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"[Playwright] Driver stop ignored: {type(e).__name__}: {e}")
            self._playwright = None

    def _is_running(self) -> bool:
        if self._browser is None or self._state != BrowserState.RUNNING:
            return False
        try:
            return bool(self._browser.is_connected())
        except Exception:
            return False

    async def acquire(self) -> Browser:
        """RUNNING 상태의 공용 브라우저 반환 (필요 시 lazy launch/relaunch)

        Raises:
            BrowserException: 재시도 후에도 실행 실패
        """
        async with self._lock:
            if self._is_running():
                return self._browser

            if self._state == BrowserState.RUNNING:
                self._state = BrowserState.DISCONNECTED
            await self._close_browser()

            max_retries = max(1, settings.crawler_max_retries)
            last_err: Optional[Exception] = None
            for attempt in range(1, max_retries + 1):
                try:
                    logger.info(f"[Playwright] Launching browser (attempt {attempt}/{max_retries})...")
                    pw = await self._ensure_driver()
                    browser = await asyncio.wait_for(
                        pw.chromium.launch(
                            headless=self._headless,
                            args=build_launch_args(),
                        ),
                        timeout=settings.crawler_launch_timeout_s,
                    )
                    browser.on("disconnected", self._on_disconnected)
                    self._browser = browser
                    self._state = BrowserState.RUNNING
                    self.launch_count += 1
                    logger.info("[Playwright] Browser launched successfully (shared)")
                    return browser
                except Exception as e:
                    last_err = e
                    logger.error(
                        f"[Playwright] Failed to launch browser (attempt {attempt}/{max_retries}): "
                        f"{type(e).__name__}: {e}"
                    )
                    await self._cleanup()
                    if attempt < max_retries:
                        wait_time = min(2.0 * attempt, 10.0)
                        logger.info(f"[Playwright] Waiting {wait_time:.1f}s before retry...")
                        await asyncio.sleep(wait_time)

            raise BrowserException(f"[Playwright] Browser launch failed after retries: {last_err}")

    async def new_context(self, stealth: bool = True) -> BrowserContext:
        """격리된 새 컨텍스트 생성. 호출자가 모든 경로에서 close() 해야 합니다."""
        browser = await self.acquire()
        user_agent = self._rng.choice(USER_AGENTS)
        viewport = self._rng.choice(VIEWPORTS)

        context = await browser.new_context(
            user_agent=user_agent,
            locale="ko-KR",
            viewport=viewport,
            device_scale_factor=1,
            has_touch=False,
            is_mobile=False,
            java_script_enabled=True,
            extra_http_headers=DEFAULT_HEADERS,
        )
        if stealth:
            try:
                # 페이지 생성 전에 등록해야 사이트 스크립트보다 먼저 실행됨
                await apply_stealth(context, self._stealth)
            except Exception:
                await context.close()
                raise
        logger.debug(f"[Playwright] New context (viewport={viewport['width']}x{viewport['height']})")
        return context

    async def launch_visible(self) -> Browser:
        """수동 로그인용 headful 브라우저

        공용 풀과 드라이버를 공유하지 않으므로 공용 브라우저 재실행/정리가
        사용자가 로그인 중인 창을 닫지 않습니다. 사용 후 release_visible() 필요.
        """
        try:
            pw = await asyncio.wait_for(self._playwright_factory().start(), timeout=20.0)
        except Exception as e:
            raise BrowserException(f"[Playwright] Visible driver start failed: {type(e).__name__}: {e}") from e

        try:
            browser = await pw.chromium.launch(
                headless=False,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-infobars",
                    "--window-size=1280,900",
                ],
            )
        except Exception as e:
            await self._stop_driver(pw)
            raise BrowserException(f"[Playwright] Visible browser launch failed: {type(e).__name__}: {e}") from e

        self._visible_drivers[id(browser)] = pw
        return browser

    async def release_visible(self, browser: Any) -> None:
        """로그인 브라우저 종료 후 전용 드라이버 정리"""
        pw = self._visible_drivers.pop(id(browser), None)
        if pw is not None:
            await self._stop_driver(pw)

    async def _stop_driver(self, pw: Any) -> None:
        try:
            await pw.stop()
        except Exception as e:
            logger.debug(f"[Playwright] Visible driver stop ignored: {type(e).__name__}: {e}")

    async def shutdown(self) -> None:
        async with self._lock:
            await self._cleanup()
            self._state = BrowserState.UNSTARTED
        drivers = list(self._visible_drivers.values())
        self._visible_drivers.clear()
        for pw in drivers:
            await self._stop_driver(pw)
