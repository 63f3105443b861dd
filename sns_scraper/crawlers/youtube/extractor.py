"""YouTube 추출기 (공식 Data API v3)

1) channels?forHandle → 채널 ID + 구독자 수
2) search?order=date  → 최신 영상 ID (쇼츠 포함)
3) videos             → 조회수/좋아요/게시일

DOM 파싱이 없고 봇 차단도 없어 브라우저를 쓰지 않습니다.
저장 수는 API 가 제공하지 않으므로 항상 None 입니다.
"""

from __future__ import annotations

from typing import Any, Optional

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import TransportException
from sns_scraper.core.logging import logger
from sns_scraper.crawlers.http_client import SharedHttpClient, get_shared_http_client
from sns_scraper.crawlers.parsing import clean_username
from sns_scraper.engine.result import ExtractionResult, Platform

from .parsing import parse_channel, parse_latest_video_id, parse_video


class YouTubeExtractor:
    platform = Platform.YOUTUBE

    def __init__(
        self,
        http_client: Optional[SharedHttpClient] = None,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
    ) -> None:
        self._http = http_client or get_shared_http_client()
        self._api_key = settings.youtube_api_key if api_key is None else api_key
        self._api_base = (api_base or settings.youtube_api_base).rstrip("/")

    async def _call(self, resource: str, params: dict[str, Any]) -> Optional[Any]:
        """API 호출 1회. 네트워크 실패는 TransportException, HTTP 오류는 None"""
        url = f"{self._api_base}/{resource}"
        res = await self._http.get_json(url, params={**params, "key": self._api_key})
        if res is None:
            raise TransportException(f"YouTube API request failed: {resource}", details={"resource": resource})
        status, data = res
        if status != 200:
            logger.error(f"[YouTube] {resource} API error: status={status}")
            return None
        return data

    async def extract(self, username: str) -> ExtractionResult:
        """API 키가 없으면 호출 없이 빈 결과를 돌려줍니다.

        Raises:
            TransportException: API 서버에 도달하지 못함
        """
        handle = clean_username(username)
        result = ExtractionResult.empty(Platform.YOUTUBE, handle)
        if not self._api_key:
            logger.error(f"[YouTube] YOUTUBE_API_KEY is not set; skipping @{handle}")
            return result

        logger.info(f"[YouTube] Fetching data for @{handle} via YouTube Data API...")

        channel = parse_channel(await self._call("channels", {"part": "statistics", "forHandle": handle}))
        if channel is None:
            logger.warning(f"[YouTube] Channel not found for @{handle}")
            return result
        result.followers = channel.subscribers

        video_id = parse_latest_video_id(
            await self._call(
                "search",
                {
                    "part": "id",
                    "channelId": channel.channel_id,
                    "order": "date",
                    "maxResults": 1,
                    "type": "video",
                },
            )
        )
        if video_id is None:
            logger.warning(f"[YouTube] No videos found for @{handle}")
            return result

        video = parse_video(await self._call("videos", {"part": "statistics,snippet", "id": video_id}))
        if video is not None:
            result.last_post_view = video.views
            result.last_post_like = video.likes
            result.last_post_date = video.published_on

        logger.info(f"[YouTube] @{handle}: {result.summary()}")
        return result
