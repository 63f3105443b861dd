"""TikTok - HTML/JSON 파싱 유틸.

네트워크/브라우저와 분리된 순수 파싱 로직입니다. 입력은 HtmlDocument
(렌더링된 HTML + 가로챈 /api/post/item_list 응답) 하나입니다.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Iterator, Optional

from sns_scraper.core.logging import logger
from sns_scraper.crawlers.parsing import HtmlDocument, find_first_value, iter_dicts, node_text
from sns_scraper.crawlers.strategy import FieldStrategy, first_success
from sns_scraper.utils.normalize import (
    epoch_to_date,
    parse_magnitude,
    parse_relative_or_absolute_date,
    to_int,
)


TIKTOK_BASE = "https://www.tiktok.com"
ITEM_LIST_PATH = "/api/post/item_list"

_VIDEO_ID_RE = re.compile(r"/video/(\d+)")

_BLOCK_KEYWORDS = (
    "verify to continue",
    "captcha",
    "access denied",
)


def profile_url(username: str) -> str:
    return f"{TIKTOK_BASE}/@{username}"


def video_url(username: str, video_id: str) -> str:
    return f"{TIKTOK_BASE}/@{username}/video/{video_id}"


def is_blocked_html(html: str) -> bool:
    if not html:
        return True
    lowered = html.lower()
    return any(k in lowered for k in _BLOCK_KEYWORDS) and "followerCount" not in html


@dataclass
class TikTokPost:
    """게시물 1개 (목록/상세 공통)"""

    video_id: Optional[str] = None
    create_time: Optional[int] = None
    play_count: Optional[int] = None
    digg_count: Optional[int] = None
    collect_count: Optional[int] = None
    pinned: bool = False
    # 상세 페이지 DOM 에서 읽은 날짜 (epoch 가 없을 때)
    posted_date: Optional[date] = None

    @property
    def posted_on(self) -> Optional[date]:
        return epoch_to_date(self.create_time) or self.posted_date

    @property
    def needs_detail(self) -> bool:
        """좋아요/저장/날짜 중 빠진 값이 있으면 상세 페이지 방문 대상"""
        return self.digg_count is None or self.collect_count is None or self.posted_on is None


def decode_item_list(text: Optional[str]) -> Optional[dict]:
    """가로챈 item_list 응답 본문 → dict (비어 있거나 JSON 이 아니면 None)"""
    if not text or len(text) < 10:
        return None
    try:
        data = json.loads(text)
    except ValueError:
        logger.debug(f"[TikTok] item_list body is not JSON ({len(text)} chars)")
        return None
    return data if isinstance(data, dict) else None


def _stat(item: dict, key: str) -> Optional[int]:
    # statsV2 는 문자열 숫자
    for container in ("stats", "statsV2"):
        stats = item.get(container)
        if isinstance(stats, dict) and stats.get(key) is not None:
            return to_int(stats.get(key))
    return None


def post_from_item(item: dict) -> TikTokPost:
    video_id = item.get("id")
    return TikTokPost(
        video_id=str(video_id) if video_id is not None else None,
        create_time=to_int(item.get("createTime")),
        play_count=_stat(item, "playCount"),
        digg_count=_stat(item, "diggCount"),
        collect_count=_stat(item, "collectCount"),
        pinned=bool(item.get("isPinnedItem")),
    )


def iter_items(blobs: Iterable[Any]) -> Iterator[dict]:
    """JSON 안의 게시물 dict (createTime + stats 를 가진 dict)"""
    for blob in blobs:
        for d in iter_dicts(blob):
            if "createTime" in d and ("stats" in d or "statsV2" in d):
                yield d


def newest_post(items: Iterable[dict]) -> Optional[TikTokPost]:
    """고정(pinned)되지 않은 게시물 중 createTime 이 가장 큰 것"""
    newest: Optional[TikTokPost] = None
    for item in items:
        post = post_from_item(item)
        if post.pinned:
            continue
        if newest is None or (post.create_time or -1) > (newest.create_time or -1):
            newest = post
    return newest


def post_from_api(doc: HtmlDocument) -> Optional[TikTokPost]:
    return newest_post(iter_items(doc.api_payloads))


def post_from_ssr(doc: HtmlDocument) -> Optional[TikTokPost]:
    return newest_post(iter_items(doc.json_blobs))


def post_from_dom(doc: HtmlDocument) -> Optional[TikTokPost]:
    """프로필 그리드 카드 (고정 배지가 붙은 카드는 건너뜀)"""
    for card in doc.nodes('[data-e2e="user-post-item"]'):
        if card.css_first('[data-e2e="video-card-badge"]') is not None:
            continue
        video_id = None
        link = card.css_first('a[href*="/video/"]')
        if link is not None:
            match = _VIDEO_ID_RE.search(link.attributes.get("href") or "")
            video_id = match.group(1) if match else None
        views = parse_magnitude(node_text(card.css_first('[data-e2e="video-views"]')))
        if video_id is None and views is None:
            continue
        return TikTokPost(video_id=video_id, play_count=views)
    return None


def followers_from_json(doc: HtmlDocument) -> Optional[int]:
    return to_int(find_first_value(doc.all_json(), ("followerCount",)))


def followers_from_dom(doc: HtmlDocument) -> Optional[int]:
    return parse_magnitude(node_text(doc.tree.css_first('[data-e2e="followers-count"]')))


FOLLOWER_STRATEGIES = (
    FieldStrategy("embedded_json", followers_from_json),
    FieldStrategy("followers_count_dom", followers_from_dom),
)

POST_STRATEGIES = (
    FieldStrategy("item_list_api", post_from_api),
    FieldStrategy("ssr_json", post_from_ssr),
    FieldStrategy("post_grid_dom", post_from_dom),
)


def parse_followers(doc: HtmlDocument) -> Optional[int]:
    followers, _ = first_success(FOLLOWER_STRATEGIES, doc, label="[TikTok] followers/")
    return followers


def parse_latest_post(doc: HtmlDocument) -> Optional[TikTokPost]:
    post, _ = first_success(POST_STRATEGIES, doc, label="[TikTok] post/")
    return post


def _detail_item(doc: HtmlDocument, video_id: str) -> Optional[dict]:
    for item in iter_items(doc.all_json()):
        if str(item.get("id")) == video_id:
            return item
    return None


def parse_video_detail(doc: HtmlDocument, video_id: str) -> TikTokPost:
    """상세 페이지: JSON (itemStruct) 우선, 없으면 data-e2e 카운터"""
    item = _detail_item(doc, video_id)
    if item is not None:
        return post_from_item(item)

    post = TikTokPost(video_id=video_id)
    post.digg_count = parse_magnitude(node_text(doc.tree.css_first('[data-e2e="like-count"]')))
    # 저장 수 카운터는 data-e2e 값이 비어 있는 채로 배포되는 경우가 있음
    for selector in ('[data-e2e="collect-count"]', '[data-e2e="undefined-count"]'):
        value = parse_magnitude(node_text(doc.tree.css_first(selector)))
        if value is not None:
            post.collect_count = value
            break
    post.play_count = parse_magnitude(node_text(doc.tree.css_first('[data-e2e="video-views"]')))

    spans = doc.nodes('[data-e2e="browser-nickname"] span')
    if spans:
        post.posted_date = parse_relative_or_absolute_date(node_text(spans[-1]))
    return post
