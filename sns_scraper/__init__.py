"""SNS engagement-metric extraction engine.

TikTok / Instagram / YouTube / Facebook 계정의 팔로워 수와 최근 게시물
지표(날짜, 조회수, 좋아요, 저장)를 추출합니다.

Usage:
    from sns_scraper import scrape

    result = await scrape("tiktok", "someone")
    print(result.to_dict())
"""

from typing import Any, Iterable, Optional, Union

from .engine.orchestrator import ScrapeOrchestrator
from .engine.result import ExtractionResult, Platform

__version__ = "0.1.0"

_default: Optional[ScrapeOrchestrator] = None


def get_orchestrator() -> ScrapeOrchestrator:
    """프로세스 공용 기본 오케스트레이터 (lazy)"""
    global _default
    if _default is None:
        _default = ScrapeOrchestrator()
    return _default


async def scrape(platform: Any, username: str) -> ExtractionResult:
    return await get_orchestrator().scrape(platform, username)


async def scrape_many(requests: Iterable[tuple[Any, str]]) -> list[Union[ExtractionResult, BaseException]]:
    return await get_orchestrator().scrape_many(requests)


async def open_login_browser(platform: Any) -> None:
    await get_orchestrator().open_login_browser(platform)


async def close_login_browser(platform: Any) -> None:
    await get_orchestrator().close_login_browser(platform)


def has_login_session(platform: Any) -> bool:
    return get_orchestrator().has_login_session(platform)


def login_status() -> dict[str, bool]:
    return get_orchestrator().login_status()


async def shutdown() -> None:
    global _default
    if _default is not None:
        await _default.shutdown()
        _default = None


__all__ = [
    "ScrapeOrchestrator",
    "ExtractionResult",
    "Platform",
    "get_orchestrator",
    "scrape",
    "scrape_many",
    "open_login_browser",
    "close_login_browser",
    "has_login_session",
    "login_status",
    "shutdown",
]
