"""Instagram 추출기

로그인 세션이 있으면 프로필 → 릴스 탭 → 릴스 상세 순으로 이동하고,
없으면 익명 컨텍스트로 프로필의 og:description 에서 팔로워만 읽습니다.
"""

from __future__ import annotations

from sns_scraper.core.logging import logger
from sns_scraper.crawlers.executor import SessionGatedExtractor
from sns_scraper.crawlers.parsing import HtmlDocument
from sns_scraper.crawlers.playwright.pages import configure_page, navigate
from sns_scraper.engine.result import ExtractionResult, Platform

from .parsing import (
    absolute_url,
    followers_from_og_description,
    parse_first_reel,
    parse_followers,
    parse_reel_detail,
    profile_url,
    reels_url,
)


class InstagramExtractor(SessionGatedExtractor):
    platform = Platform.INSTAGRAM

    async def _extract_authenticated(self, username: str, result: ExtractionResult) -> None:
        context, page = await self._sessions.with_session(Platform.INSTAGRAM, profile_url(username))
        try:
            self.ensure_logged_in(page)

            profile = HtmlDocument(await page.content(), page.url)
            result.set_if_missing("followers", parse_followers(profile))

            await navigate(page, reels_url(username))
            self.ensure_logged_in(page)
            thumb = parse_first_reel(HtmlDocument(await page.content(), page.url))
            if thumb is None:
                logger.info(f"[Instagram] @{username} no reels found on reels tab")
                return

            await navigate(page, absolute_url(thumb.href))
            self.ensure_logged_in(page)
            detail = parse_reel_detail(HtmlDocument(await page.content(), page.url))

            result.set_if_missing("last_post_like", detail.likes)
            result.set_if_missing("last_post_view", detail.views)
            result.set_if_missing("last_post_date", detail.posted_on)
            # 썸네일 카운터는 상세에서 못 찾은 값만 보충
            result.set_if_missing("last_post_like", thumb.likes)
            result.set_if_missing("last_post_view", thumb.views)
        finally:
            await context.close()

    async def _extract_anonymous(self, username: str, result: ExtractionResult) -> None:
        context = await self._browsers.new_context(stealth=True)
        try:
            page = await context.new_page()
            await configure_page(page)
            await navigate(page, profile_url(username))
            doc = HtmlDocument(await page.content(), page.url)
            result.set_if_missing("followers", followers_from_og_description(doc))
        finally:
            await context.close()
