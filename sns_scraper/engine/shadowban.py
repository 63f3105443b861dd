"""Shadowban Monitor - 조회수 0 게시물 재확인 + 태그 판정

흐름:
1. 일반 추출 결과에 대해 evaluate() → 태그 부여/해제
2. 최근 게시물 조회수가 0 이면 (None 이 아니라 0) 일정 시간 뒤 1회 재추출 예약
3. 재추출 결과로 다시 판정해 "#Shadowban" 태그를 붙이거나 뗌

태그 저장소(계정/태그 DB)는 외부 협력자이며 Tagger 프로토콜로만 다룹니다.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import ScraperException
from sns_scraper.core.logging import logger

from .result import ExtractionResult, Platform


class ShadowbanVerdict(str, Enum):
    SUSPECTED = "suspected"
    CLEAR = "clear"
    UNKNOWN = "unknown"


class Tagger(Protocol):
    """계정 태그 저장소 (외부)"""

    async def assign_tag(self, account_id: str, label: str) -> None: ...

    async def unassign_tag(self, account_id: str, label: str) -> None: ...


ScrapeFn = Callable[[Platform, str], Awaitable[ExtractionResult]]


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def needs_recheck(result: ExtractionResult) -> bool:
    """조회수가 정확히 0 일 때만 재확인 (None 은 "모름")"""
    return result.last_post_view == 0


def evaluate(
    result: ExtractionResult,
    today: Optional[date] = None,
    view_threshold: Optional[int] = None,
    recheck: bool = False,
) -> ShadowbanVerdict:
    """섀도우밴 의심 여부 판정

    - 날짜/조회수 중 하나라도 None → UNKNOWN (태그를 건드리지 않음)
    - 어제 올린 게시물인데 조회수가 기준 미만 → SUSPECTED
    - 재확인에서도 조회수 0 → SUSPECTED
    - 그 외 → CLEAR
    """
    if result.last_post_date is None or result.last_post_view is None:
        return ShadowbanVerdict.UNKNOWN

    today = today or _utc_today()
    threshold = settings.shadowban_view_threshold if view_threshold is None else view_threshold
    yesterday = today - timedelta(days=1)

    if result.last_post_date == yesterday and result.last_post_view < threshold:
        return ShadowbanVerdict.SUSPECTED
    if recheck and result.last_post_view == 0:
        return ShadowbanVerdict.SUSPECTED
    return ShadowbanVerdict.CLEAR


@dataclass
class RecheckHandle:
    """예약된 재확인 1건"""

    account_id: str
    platform: Platform
    username: str
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()


class ShadowbanMonitor:
    """계정당 최대 1개의 지연 재확인을 관리

    Usage:
        monitor = ShadowbanMonitor(orchestrator.scrape, tagger)
        result = await orchestrator.scrape("tiktok", "someone")
        await monitor.observe("acc-1", result)
        ...
        await monitor.cancel_all()
    """

    def __init__(
        self,
        scrape: ScrapeFn,
        tagger: Tagger,
        delay_s: Optional[float] = None,
        tag_label: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self._scrape = scrape
        self._tagger = tagger
        self.delay_s = settings.shadowban_recheck_delay_s if delay_s is None else delay_s
        self.tag_label = tag_label or settings.shadowban_tag_label
        self._sleep = sleep
        self._today = today
        self._pending: dict[str, RecheckHandle] = {}

    def pending(self, account_id: str) -> Optional[RecheckHandle]:
        return self._pending.get(account_id)

    async def observe(self, account_id: str, result: ExtractionResult) -> Optional[RecheckHandle]:
        """1차 추출 결과 반영: 태그 판정 후 필요하면 재확인 예약"""
        verdict = evaluate(result, today=self._today())
        await self.apply_verdict(account_id, verdict)
        if needs_recheck(result):
            return self.schedule(account_id, result.platform, result.username)
        return None

    def schedule(self, account_id: str, platform: Platform, username: str) -> RecheckHandle:
        """delay_s 뒤 1회 재추출 예약 (같은 계정의 이전 예약은 취소)"""
        previous = self._pending.pop(account_id, None)
        if previous is not None:
            previous.cancel()
            logger.debug(f"[Shadowban] Replaced pending recheck for {account_id}")

        handle = RecheckHandle(account_id=account_id, platform=Platform.parse(platform), username=username)
        handle.task = asyncio.create_task(self._recheck(handle))
        self._pending[account_id] = handle
        logger.info(
            f"[Shadowban] {handle.platform.value}/{username}: 0 views, recheck in {self.delay_s:.0f}s"
        )
        return handle

    async def _recheck(self, handle: RecheckHandle) -> Optional[ShadowbanVerdict]:
        try:
            await self._sleep(self.delay_s)
            result = await self._scrape(handle.platform, handle.username)
            verdict = evaluate(result, today=self._today(), recheck=True)
            logger.info(
                f"[Shadowban] {handle.platform.value}/{handle.username} recheck: "
                f"views={result.last_post_view} date={result.last_post_date} -> {verdict.value}"
            )
            await self.apply_verdict(handle.account_id, verdict)
            return verdict
        except ScraperException as e:
            logger.warning(f"[Shadowban] Recheck failed for {handle.account_id}: {e}")
            return None
        finally:
            if self._pending.get(handle.account_id) is handle:
                del self._pending[handle.account_id]

    async def apply_verdict(self, account_id: str, verdict: ShadowbanVerdict) -> None:
        if verdict == ShadowbanVerdict.SUSPECTED:
            await self._tagger.assign_tag(account_id, self.tag_label)
            logger.info(f"[Shadowban] Tagged {account_id} with {self.tag_label}")
        elif verdict == ShadowbanVerdict.CLEAR:
            await self._tagger.unassign_tag(account_id, self.tag_label)

    async def cancel_all(self) -> None:
        handles = list(self._pending.values())
        self._pending.clear()
        for handle in handles:
            handle.cancel()
        tasks = [h.task for h in handles if h.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
