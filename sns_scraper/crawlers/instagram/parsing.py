"""Instagram - HTML/JSON 파싱 유틸.

프로필(팔로워) → 릴스 탭(첫 비고정 릴스 + 썸네일 카운터) → 릴스 상세
(좋아요/조회수/날짜) 세 페이지 각각의 순수 파싱 함수입니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sns_scraper.crawlers.parsing import (
    HtmlDocument,
    closest,
    find_first_value,
    first_number_token,
    is_numeric_text,
    iter_dicts,
    node_text,
)
from sns_scraper.crawlers.strategy import FieldStrategy, first_success
from sns_scraper.utils.normalize import (
    epoch_to_date,
    parse_magnitude,
    parse_relative_or_absolute_date,
    to_int,
)


INSTAGRAM_BASE = "https://www.instagram.com"

_OG_FOLLOWERS_KR_RE = re.compile(r"팔로워\s+([\d,만.]+)\s*명")
_OG_FOLLOWERS_EN_RE = re.compile(r"([\d,KkMm.]+)\s+[Ff]ollowers")
_LIKE_EN_RE = re.compile(r"^Like(\d[\d,.KkMm]*)(?:Comment|$)")

_PINNED_MARKERS = ('svg[aria-label*="Pinned"]', 'svg[aria-label*="고정"]')


def profile_url(username: str) -> str:
    return f"{INSTAGRAM_BASE}/{username}/"


def reels_url(username: str) -> str:
    return f"{INSTAGRAM_BASE}/{username}/reels/"


def absolute_url(href: str) -> str:
    return href if href.startswith("http") else f"{INSTAGRAM_BASE}{href}"


# --- 팔로워 ---------------------------------------------------------------

def followers_from_json(doc: HtmlDocument) -> Optional[int]:
    for d in iter_dicts(doc.all_json()):
        edge = d.get("edge_followed_by")
        if isinstance(edge, dict) and edge.get("count") is not None:
            return to_int(edge.get("count"))
        if d.get("follower_count") is not None:
            return to_int(d.get("follower_count"))
    return None


def followers_from_og_description(doc: HtmlDocument) -> Optional[int]:
    """og:description 의 "팔로워 1.2만명" / "1,234 Followers" """
    desc = doc.meta_content("og:description") or ""
    kr = _OG_FOLLOWERS_KR_RE.search(desc)
    if kr:
        return parse_magnitude(kr.group(1))
    en = _OG_FOLLOWERS_EN_RE.search(desc)
    if en:
        return parse_magnitude(en.group(1))
    return None


def followers_from_link(doc: HtmlDocument) -> Optional[int]:
    for link in doc.nodes('a[href*="followers"]'):
        value = parse_magnitude(first_number_token(node_text(link)))
        if value is not None:
            return value
    return None


def followers_from_title_span(doc: HtmlDocument) -> Optional[int]:
    """팔로워 링크 안의 span[title] (title 에 축약 안 된 정확한 수)"""
    for span in doc.nodes("span[title]"):
        link = closest(span, "a")
        if link is None or "follower" not in (link.attributes.get("href") or ""):
            continue
        return parse_magnitude(span.attributes.get("title") or node_text(span))
    return None


FOLLOWER_STRATEGIES = (
    FieldStrategy("embedded_json", followers_from_json),
    FieldStrategy("og_description", followers_from_og_description),
    FieldStrategy("follower_link", followers_from_link),
    FieldStrategy("title_span", followers_from_title_span),
)


def parse_followers(doc: HtmlDocument) -> Optional[int]:
    followers, _ = first_success(FOLLOWER_STRATEGIES, doc, label="[Instagram] followers/")
    return followers


# --- 릴스 탭 --------------------------------------------------------------

@dataclass
class ReelThumbnail:
    """릴스 그리드의 첫 카드"""

    href: str
    likes: Optional[int] = None
    views: Optional[int] = None


def parse_first_reel(doc: HtmlDocument) -> Optional[ReelThumbnail]:
    """고정되지 않은 첫 번째 릴스 링크와 썸네일 카운터

    썸네일 span 은 숫자를 두 번씩 렌더링하므로 연속 중복을 제거한 뒤
    [좋아요, 댓글, 조회수] 순서로 해석합니다.
    """
    for link in doc.nodes('a[href*="/reel/"]'):
        if any(link.css_first(marker) is not None for marker in _PINNED_MARKERS):
            continue
        href = link.attributes.get("href")
        if not href:
            continue

        numbers: list[str] = []
        prev = ""
        for span in link.css("span"):
            text = node_text(span)
            if is_numeric_text(text):
                if text != prev:
                    numbers.append(text)
                prev = text

        return ReelThumbnail(
            href=href,
            likes=parse_magnitude(numbers[0]) if len(numbers) >= 1 else None,
            views=parse_magnitude(numbers[2]) if len(numbers) >= 3 else None,
        )
    return None


# --- 릴스 상세 ------------------------------------------------------------

_TEXT_SCAN_SELECTOR = "button, span, a, div, section"


def likes_from_json(doc: HtmlDocument) -> Optional[int]:
    return to_int(find_first_value(doc.all_json(), ("like_count",)))


def likes_from_korean_label(doc: HtmlDocument) -> Optional[int]:
    """"좋아요 1,234개" """
    for text in doc.texts(_TEXT_SCAN_SELECTOR, max_length=30):
        if "좋아요" in text and any(c.isdigit() for c in text):
            value = parse_magnitude(first_number_token(text))
            if value is not None:
                return value
    return None


def likes_from_english_label(doc: HtmlDocument) -> Optional[int]:
    """영문 UI 액션 바 텍스트 "Like5CommentShareSave" """
    for text in doc.texts(_TEXT_SCAN_SELECTOR, max_length=40):
        match = _LIKE_EN_RE.match(text)
        if match:
            return parse_magnitude(match.group(1))
    return None


def likes_from_section_span(doc: HtmlDocument) -> Optional[int]:
    for text in doc.texts("section span", max_length=15):
        if is_numeric_text(text):
            return parse_magnitude(text)
    return None


LIKE_STRATEGIES = (
    FieldStrategy("embedded_json", likes_from_json),
    FieldStrategy("korean_label", likes_from_korean_label),
    FieldStrategy("english_label", likes_from_english_label),
    FieldStrategy("section_span", likes_from_section_span),
)


def views_from_json(doc: HtmlDocument) -> Optional[int]:
    return to_int(find_first_value(doc.all_json(), ("play_count", "video_play_count", "video_view_count")))


VIEW_STRATEGIES = (
    FieldStrategy("embedded_json", views_from_json),
)


def date_from_json(doc: HtmlDocument) -> Optional[date]:
    return epoch_to_date(find_first_value(doc.all_json(), ("taken_at", "taken_at_timestamp")))


def date_from_time_attr(doc: HtmlDocument) -> Optional[date]:
    for node in doc.nodes("time[datetime]"):
        posted = parse_relative_or_absolute_date(node.attributes.get("datetime"))
        if posted is not None:
            return posted
    return None


def date_from_time_text(doc: HtmlDocument) -> Optional[date]:
    for text in doc.texts("time"):
        if len(text) > 1 and any(c.isdigit() for c in text):
            return parse_relative_or_absolute_date(text)
    return None


DATE_STRATEGIES = (
    FieldStrategy("embedded_json", date_from_json),
    FieldStrategy("time_datetime", date_from_time_attr),
    FieldStrategy("time_text", date_from_time_text),
)


@dataclass
class ReelDetail:
    likes: Optional[int] = None
    views: Optional[int] = None
    posted_on: Optional[date] = None


def parse_reel_detail(doc: HtmlDocument) -> ReelDetail:
    likes, _ = first_success(LIKE_STRATEGIES, doc, label="[Instagram] likes/")
    views, _ = first_success(VIEW_STRATEGIES, doc, label="[Instagram] views/")
    posted_on, _ = first_success(DATE_STRATEGIES, doc, label="[Instagram] date/")
    return ReelDetail(likes=likes, views=views, posted_on=posted_on)
