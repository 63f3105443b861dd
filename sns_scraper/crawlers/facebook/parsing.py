"""Facebook - HTML 파싱 유틸.

Facebook 은 SSR JSON 에 팔로워/조회수가 안정적으로 실리지 않아
렌더링된 DOM 텍스트의 한국어/영문 라벨을 순서대로 훑습니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sns_scraper.crawlers.parsing import (
    NUMBER_TOKEN,
    HtmlDocument,
    child_element_count,
    first_number_token,
    node_text,
)
from sns_scraper.crawlers.strategy import FieldStrategy, first_success
from sns_scraper.utils.normalize import parse_magnitude, parse_relative_or_absolute_date


FACEBOOK_BASE = "https://www.facebook.com"

_FOLLOWED_BY_RE = re.compile(rf"({NUMBER_TOKEN})\s*명이\s*팔로우")
_FOLLOWER_LABEL_RE = re.compile(rf"팔로워\s*({NUMBER_TOKEN})")
_PAGE_LIKES_RE = re.compile(rf"({NUMBER_TOKEN})\s*명이\s*좋아합니다")
_VIEWS_KR_RE = re.compile(rf"조회\s*({NUMBER_TOKEN})\s*회")
_VIEWS_EN_RE = re.compile(rf"({NUMBER_TOKEN})\s*views", re.IGNORECASE)

_REL_UNITS = r"(?:년|개월|주|일|시간|분)"
_RELATIVE_RE = re.compile(rf"^\d+\s*{_REL_UNITS}\s*전$")
_RELATIVE_NO_SUFFIX_RE = re.compile(rf"^\d+\s*{_REL_UNITS}\s*전?$")
_KOREAN_DATE_RE = re.compile(r"\d{4}년\s*\d{1,2}월\s*\d{1,2}일")

_FOLLOWER_WORDS = ("팔로워", "팔로우", "follower")
_TEXT_SCAN_SELECTOR = "a, span, div"
_VIDEO_SCAN_SELECTOR = "span, div, abbr"


def _is_numeric_id(username: str) -> bool:
    return username.isdigit()


def profile_url(username: str) -> str:
    if _is_numeric_id(username):
        return f"{FACEBOOK_BASE}/profile.php?id={username}"
    return f"{FACEBOOK_BASE}/{username}/"


def videos_url(username: str) -> str:
    if _is_numeric_id(username):
        return f"{FACEBOOK_BASE}/profile.php?id={username}&sk=videos"
    return f"{FACEBOOK_BASE}/{username}/videos/"


def reels_url(username: str) -> str:
    if _is_numeric_id(username):
        return f"{FACEBOOK_BASE}/profile.php?id={username}&sk=reels"
    return f"{FACEBOOK_BASE}/{username}/reels/"


def _mentions_followers(text: str) -> bool:
    lowered = text.lower()
    return any(w in lowered for w in _FOLLOWER_WORDS)


def _search_texts(doc: HtmlDocument, pattern: re.Pattern, selector: str = _TEXT_SCAN_SELECTOR) -> Optional[int]:
    for text in doc.texts(selector):
        match = pattern.search(text)
        if match:
            value = parse_magnitude(match.group(1))
            if value is not None:
                return value
    return None


# --- 팔로워 ---------------------------------------------------------------

def followers_from_followed_by(doc: HtmlDocument) -> Optional[int]:
    """페이지 형식 "1,320명이 팔로우합니다" """
    return _search_texts(doc, _FOLLOWED_BY_RE)


def followers_from_follower_label(doc: HtmlDocument) -> Optional[int]:
    """"팔로워 1.3만명" """
    return _search_texts(doc, _FOLLOWER_LABEL_RE)


def followers_from_labelled_element(doc: HtmlDocument) -> Optional[int]:
    """팔로워 라벨이 붙은 짧은 요소: <strong> 숫자 우선, 없으면 첫 숫자"""
    for node in doc.nodes(_TEXT_SCAN_SELECTOR):
        text = node_text(node)
        if not text or len(text) >= 60 or not _mentions_followers(text):
            continue
        if not any(c.isdigit() for c in text):
            continue
        strong = node.css_first("strong")
        if strong is not None:
            value = parse_magnitude(node_text(strong))
            if value is not None:
                return value
        value = parse_magnitude(first_number_token(text))
        if value is not None:
            return value
    return None


def followers_from_aria_label(doc: HtmlDocument) -> Optional[int]:
    for node in doc.nodes("[aria-label]"):
        label = node.attributes.get("aria-label") or ""
        if _mentions_followers(label) and any(c.isdigit() for c in label):
            value = parse_magnitude(first_number_token(label))
            if value is not None:
                return value
    return None


def followers_from_link(doc: HtmlDocument) -> Optional[int]:
    for link in doc.nodes('a[href*="follower"], a[href*="friends"]'):
        value = parse_magnitude(first_number_token(node_text(link)))
        if value is not None:
            return value
    return None


def followers_from_page_likes(doc: HtmlDocument) -> Optional[int]:
    """"N명이 좋아합니다" (페이지 좋아요 수로 대체)"""
    return _search_texts(doc, _PAGE_LIKES_RE)


FOLLOWER_STRATEGIES = (
    FieldStrategy("followed_by_text", followers_from_followed_by),
    FieldStrategy("follower_label_text", followers_from_follower_label),
    FieldStrategy("labelled_element", followers_from_labelled_element),
    FieldStrategy("aria_label", followers_from_aria_label),
    FieldStrategy("follower_link", followers_from_link),
    FieldStrategy("page_likes_text", followers_from_page_likes),
)


def parse_followers(doc: HtmlDocument) -> Optional[int]:
    followers, _ = first_success(FOLLOWER_STRATEGIES, doc, label="[Facebook] followers/")
    return followers


def parse_followers_anonymous(doc: HtmlDocument) -> Optional[int]:
    """비로그인 릴스 페이지: 팔로워 라벨이 붙은 짧은 링크/스팬만 훑음"""
    for text in doc.texts("a, span", max_length=60):
        if _mentions_followers(text) and any(c.isdigit() for c in text):
            value = parse_magnitude(first_number_token(text))
            if value is not None:
                return value
    return None


def follower_debug_snippets(doc: HtmlDocument, limit: int = 5) -> list[str]:
    """팔로워를 못 찾았을 때 로그로 남길 후보 텍스트"""
    snippets: list[str] = []
    for text in doc.texts("a, span", max_length=80):
        lowered = text.lower()
        if len(text) > 2 and any(c.isdigit() for c in text) and (
            "팔로" in text or "좋아" in text or "follow" in lowered or "like" in lowered
        ):
            snippets.append(text[:70])
        if len(snippets) >= limit:
            break
    return snippets


# --- 동영상 탭 ------------------------------------------------------------

def _video_texts(doc: HtmlDocument, max_children: int):
    for node in doc.nodes(_VIDEO_SCAN_SELECTOR):
        if child_element_count(node) > max_children:
            continue
        text = node_text(node)
        if text:
            yield text


def _views_matching(doc: HtmlDocument, pattern: re.Pattern) -> Optional[int]:
    for text in _video_texts(doc, max_children=3):
        match = pattern.search(text)
        if match:
            value = parse_magnitude(match.group(1))
            if value is not None:
                return value
    return None


def views_from_korean_label(doc: HtmlDocument) -> Optional[int]:
    """"조회 117회" """
    return _views_matching(doc, _VIEWS_KR_RE)


def views_from_english_label(doc: HtmlDocument) -> Optional[int]:
    return _views_matching(doc, _VIEWS_EN_RE)


VIEW_STRATEGIES = (
    FieldStrategy("korean_views_label", views_from_korean_label),
    FieldStrategy("english_views_label", views_from_english_label),
)


def date_from_relative_text(doc: HtmlDocument) -> Optional[date]:
    """"5년 전" 처럼 상대 시간만 담긴 요소"""
    for text in _video_texts(doc, max_children=2):
        if _RELATIVE_RE.match(text):
            return parse_relative_or_absolute_date(text)
    return None


def date_from_abbr(doc: HtmlDocument) -> Optional[date]:
    for abbr in doc.nodes("abbr"):
        text = node_text(abbr)
        if _RELATIVE_NO_SUFFIX_RE.match(text):
            return parse_relative_or_absolute_date(text if text.endswith("전") else f"{text} 전")
        aria = abbr.attributes.get("aria-label") or ""
        if _RELATIVE_RE.match(aria):
            return parse_relative_or_absolute_date(aria)
    return None


def date_from_korean_absolute(doc: HtmlDocument) -> Optional[date]:
    """"2025년 1월 15일" """
    for text in doc.texts(_VIDEO_SCAN_SELECTOR, max_length=30):
        if _KOREAN_DATE_RE.search(text):
            return parse_relative_or_absolute_date(text)
    return None


DATE_STRATEGIES = (
    FieldStrategy("relative_text", date_from_relative_text),
    FieldStrategy("abbr", date_from_abbr),
    FieldStrategy("korean_absolute", date_from_korean_absolute),
)


@dataclass
class FacebookVideo:
    views: Optional[int] = None
    posted_on: Optional[date] = None


def parse_latest_video(doc: HtmlDocument) -> FacebookVideo:
    views, _ = first_success(VIEW_STRATEGIES, doc, label="[Facebook] views/")
    posted_on, _ = first_success(DATE_STRATEGIES, doc, label="[Facebook] date/")
    return FacebookVideo(views=views, posted_on=posted_on)
