"""YouTube Data API v3 응답 파싱 (순수 함수)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from sns_scraper.utils.normalize import parse_relative_or_absolute_date, to_int


@dataclass
class ChannelInfo:
    channel_id: str
    subscribers: Optional[int] = None


@dataclass
class VideoStats:
    views: Optional[int] = None
    likes: Optional[int] = None
    published_on: Optional[date] = None


def _first_item(data: Any) -> Optional[dict]:
    if not isinstance(data, dict):
        return None
    items = data.get("items") or []
    if not items or not isinstance(items[0], dict):
        return None
    return items[0]


def parse_channel(data: Any) -> Optional[ChannelInfo]:
    """channels?part=statistics 응답. 구독자 수 비공개면 subscribers=None"""
    item = _first_item(data)
    if item is None or not item.get("id"):
        return None
    stats = item.get("statistics") or {}
    subscribers = None
    if not stats.get("hiddenSubscriberCount"):
        subscribers = to_int(stats.get("subscriberCount"))
    return ChannelInfo(channel_id=str(item["id"]), subscribers=subscribers)


def parse_latest_video_id(data: Any) -> Optional[str]:
    """search?order=date&type=video 응답의 첫 videoId"""
    item = _first_item(data)
    if item is None:
        return None
    video_id = (item.get("id") or {}).get("videoId")
    return str(video_id) if video_id else None


def parse_video(data: Any) -> Optional[VideoStats]:
    """videos?part=statistics,snippet 응답"""
    item = _first_item(data)
    if item is None:
        return None
    stats = item.get("statistics") or {}
    snippet = item.get("snippet") or {}
    return VideoStats(
        views=to_int(stats.get("viewCount")),
        likes=to_int(stats.get("likeCount")),
        published_on=parse_relative_or_absolute_date(snippet.get("publishedAt")),
    )
