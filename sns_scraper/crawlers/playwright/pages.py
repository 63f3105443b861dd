"""Playwright page 설정/보조 함수.

Page 생성 후 리소스 차단, 기본 타임아웃, 네비게이션/대기 공통 처리를 분리합니다.
"""

from __future__ import annotations

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import NetworkTimeoutException, TransportException
from sns_scraper.core.logging import logger


_BLOCKED_RESOURCE_TYPES = {"image", "media", "font"}
_BLOCKED_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".mp4",
    ".woff",
    ".woff2",
    ".ttf",
)


async def configure_page(page: Page) -> Page:
    page.set_default_timeout(settings.crawler_navigation_timeout_ms)

    async def _route_handler(route, request):
        try:
            url = (request.url or "").lower().split("?", 1)[0]
            if request.resource_type in _BLOCKED_RESOURCE_TYPES or url.endswith(_BLOCKED_EXTENSIONS):
                await route.abort()
                return
            await route.continue_()
        except PlaywrightError:
            # 페이지가 이미 닫힌 경우 등
            return

    try:
        await page.route("**/*", _route_handler)
    except PlaywrightError as e:
        logger.debug(f"[Playwright] Resource blocking not installed: {e}")

    return page


async def navigate(
    page: Page,
    url: str,
    *,
    timeout_ms: int | None = None,
    settle: bool = True,
) -> None:
    """URL 이동 후 렌더링이 잦아들 때까지 잠시 대기.

    DOMContentLoaded 까지의 실패는 전송 오류로 올려 재시도 대상이 되게 하고,
    이후의 networkidle 대기 타임아웃은 흔한 일이라 무시합니다.

    Raises:
        NetworkTimeoutException: 네비게이션 타임아웃
        TransportException: DNS/네트워크 등 네비게이션 실패
    """
    timeout_ms = timeout_ms or settings.crawler_navigation_timeout_ms
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        raise NetworkTimeoutException("goto", timeout_ms, {"url": url}) from e
    except PlaywrightError as e:
        raise TransportException(f"Navigation to {url} failed: {e}", details={"url": url}) from e

    if not settle:
        return

    try:
        await page.wait_for_load_state("networkidle", timeout=settings.crawler_settle_timeout_ms)
    except PlaywrightTimeoutError:
        logger.debug(f"[Playwright] networkidle not reached for {url}; continuing with partial render")

    if settings.crawler_settle_delay_ms > 0:
        await page.wait_for_timeout(settings.crawler_settle_delay_ms)


async def scroll_down(page: Page, pixels: int = 800, wait_ms: int = 2000) -> None:
    """지연 로딩 카드를 띄우기 위한 스크롤"""
    try:
        await page.evaluate(f"window.scrollBy(0, {int(pixels)})")
        await page.wait_for_timeout(wait_ms)
    except PlaywrightError as e:
        logger.debug(f"[Playwright] Scroll ignored: {e}")
