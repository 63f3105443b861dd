"""TikTok 추출기 (하이브리드)

1) 팔로워: 브라우저 없이 curl_cffi 로 프로필 SSR HTML 을 받아 followerCount 파싱
2) 게시물: 스텔스 컨텍스트로 프로필을 열고 /api/post/item_list 응답을 가로챔
   → SSR JSON → DOM 그리드 순으로 최신(비고정) 게시물 선택
3) 좋아요/저장/날짜가 비면 게시물 상세 페이지를 한 번 더 방문

한쪽 출처가 실패해도 다른 쪽 결과는 그대로 돌려줍니다.
"""

from __future__ import annotations

from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError

from sns_scraper.core.exceptions import TransportException
from sns_scraper.core.logging import logger
from sns_scraper.crawlers.http_client import SharedHttpClient, get_shared_http_client
from sns_scraper.crawlers.parsing import HtmlDocument, clean_username
from sns_scraper.crawlers.playwright.browser import BrowserSessionManager
from sns_scraper.crawlers.playwright.pages import configure_page, navigate
from sns_scraper.engine.result import ExtractionResult, Platform

from .parsing import (
    ITEM_LIST_PATH,
    TikTokPost,
    decode_item_list,
    is_blocked_html,
    parse_followers,
    parse_latest_post,
    parse_video_detail,
    profile_url,
    video_url,
)


def apply_post(result: ExtractionResult, post: Optional[TikTokPost]) -> None:
    """게시물 값으로 빈 필드만 채움"""
    if post is None:
        return
    result.set_if_missing("last_post_view", post.play_count)
    result.set_if_missing("last_post_like", post.digg_count)
    result.set_if_missing("last_post_save", post.collect_count)
    result.set_if_missing("last_post_date", post.posted_on)


class TikTokExtractor:
    platform = Platform.TIKTOK

    def __init__(
        self,
        browsers: BrowserSessionManager,
        http_client: Optional[SharedHttpClient] = None,
    ) -> None:
        self._browsers = browsers
        self._http = http_client or get_shared_http_client()

    async def extract(self, username: str) -> ExtractionResult:
        username = clean_username(username)
        result = ExtractionResult.empty(Platform.TIKTOK, username)

        followers = await self.fetch_followers(username)
        result.set_if_missing("followers", followers)

        scraped = ExtractionResult.empty(Platform.TIKTOK, username)
        try:
            await self._extract_posts(username, scraped)
        except (TransportException, PlaywrightError) as e:
            if result.is_empty and scraped.is_empty:
                raise
            logger.warning(
                f"[TikTok] @{username} browser step failed, keeping partial result: {type(e).__name__}: {e}"
            )
        finally:
            # HTTP 팔로워가 우선이고 브라우저 값은 빈 필드만 채움
            result.merge(scraped)

        logger.info(f"[TikTok] @{username}: {result.summary()}")
        return result

    async def fetch_followers(self, username: str) -> Optional[int]:
        """프로필 SSR HTML 에서 팔로워 수 (실패 시 None)"""
        res = await self._http.get_text(profile_url(username))
        if res is None:
            return None
        status, html = res
        if status != 200 or is_blocked_html(html):
            logger.info(f"[TikTok] @{username} profile HTTP fetch unusable (status={status}, len={len(html)})")
            return None
        followers = parse_followers(HtmlDocument(html, profile_url(username)))
        logger.debug(f"[TikTok] @{username} HTTP followers={followers}")
        return followers

    async def _extract_posts(self, username: str, result: ExtractionResult) -> None:
        context = await self._browsers.new_context(stealth=True)
        try:
            page = await context.new_page()
            await configure_page(page)

            responses: list[Any] = []

            def _on_response(response: Any) -> None:
                if ITEM_LIST_PATH in (response.url or ""):
                    responses.append(response)

            page.on("response", _on_response)
            await navigate(page, profile_url(username))

            payloads = []
            for response in responses:
                try:
                    body = await response.text()
                except PlaywrightError as e:
                    logger.debug(f"[TikTok] item_list body unavailable: {e}")
                    continue
                decoded = decode_item_list(body)
                if decoded is not None:
                    payloads.append(decoded)
            logger.debug(f"[TikTok] @{username} intercepted {len(payloads)} item_list response(s)")

            doc = HtmlDocument(await page.content(), page.url, payloads)
            result.set_if_missing("followers", parse_followers(doc))

            post = parse_latest_post(doc)
            apply_post(result, post)

            if post is not None and post.video_id and post.needs_detail:
                await navigate(page, video_url(username, post.video_id))
                detail = parse_video_detail(HtmlDocument(await page.content(), page.url), post.video_id)
                apply_post(result, detail)
        finally:
            await context.close()
