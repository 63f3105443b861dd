"""Facebook 추출기

로그인 세션이 있으면 프로필(팔로워) → 동영상 탭(조회수/날짜),
없으면 익명 컨텍스트로 릴스 페이지에서 팔로워만 읽습니다.
숫자 ID 계정은 profile.php?id= 형식 URL 을 씁니다.
"""

from __future__ import annotations

from sns_scraper.core.logging import logger
from sns_scraper.crawlers.executor import SessionGatedExtractor
from sns_scraper.crawlers.parsing import HtmlDocument
from sns_scraper.crawlers.playwright.pages import configure_page, navigate, scroll_down
from sns_scraper.engine.result import ExtractionResult, Platform

from .parsing import (
    follower_debug_snippets,
    parse_followers,
    parse_followers_anonymous,
    parse_latest_video,
    profile_url,
    reels_url,
    videos_url,
)


class FacebookExtractor(SessionGatedExtractor):
    platform = Platform.FACEBOOK

    async def _extract_authenticated(self, username: str, result: ExtractionResult) -> None:
        context, page = await self._sessions.with_session(Platform.FACEBOOK, profile_url(username))
        try:
            self.ensure_logged_in(page)

            profile = HtmlDocument(await page.content(), page.url)
            result.set_if_missing("followers", parse_followers(profile))
            if result.followers is None:
                logger.debug(f"[Facebook] {username} follower candidates: {follower_debug_snippets(profile)}")

            await navigate(page, videos_url(username))
            self.ensure_logged_in(page)
            # 지연 로딩되는 동영상 카드
            await scroll_down(page)

            video = parse_latest_video(HtmlDocument(await page.content(), page.url))
            result.set_if_missing("last_post_view", video.views)
            result.set_if_missing("last_post_date", video.posted_on)
        finally:
            await context.close()

    async def _extract_anonymous(self, username: str, result: ExtractionResult) -> None:
        context = await self._browsers.new_context(stealth=True)
        try:
            page = await context.new_page()
            await configure_page(page)
            await navigate(page, reels_url(username))
            doc = HtmlDocument(await page.content(), page.url)
            result.set_if_missing("followers", parse_followers_anonymous(doc))
        finally:
            await context.close()
