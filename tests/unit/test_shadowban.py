"""섀도우밴 판정/재확인 테스트."""

from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock

import pytest

from sns_scraper.core.exceptions import NetworkTimeoutException
from sns_scraper.engine.result import ExtractionResult, Platform
from sns_scraper.engine.shadowban import ShadowbanMonitor, ShadowbanVerdict, evaluate, needs_recheck


TODAY = date(2025, 6, 15)
YESTERDAY = date(2025, 6, 14)


def _result(view, posted=YESTERDAY) -> ExtractionResult:
    return ExtractionResult(
        platform=Platform.TIKTOK,
        username="someone",
        followers=100,
        last_post_date=posted,
        last_post_view=view,
    )


class RecordingTagger:
    def __init__(self):
        self.events: list[tuple[str, str, str]] = []

    async def assign_tag(self, account_id: str, label: str) -> None:
        self.events.append(("assign", account_id, label))

    async def unassign_tag(self, account_id: str, label: str) -> None:
        self.events.append(("unassign", account_id, label))


class ScriptedScrape:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[Platform, str]] = []

    async def __call__(self, platform: Platform, username: str) -> ExtractionResult:
        self.calls.append((platform, username))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.mark.parametrize(
    "view,posted,recheck,expected",
    [
        (50, YESTERDAY, False, ShadowbanVerdict.SUSPECTED),
        (100, YESTERDAY, False, ShadowbanVerdict.CLEAR),
        (0, date(2025, 6, 1), False, ShadowbanVerdict.CLEAR),
        (0, date(2025, 6, 1), True, ShadowbanVerdict.SUSPECTED),
        (5, TODAY, False, ShadowbanVerdict.CLEAR),
        (None, YESTERDAY, False, ShadowbanVerdict.UNKNOWN),
        (10, None, False, ShadowbanVerdict.UNKNOWN),
    ],
)
def test_evaluate(view, posted, recheck, expected):
    verdict = evaluate(_result(view, posted), today=TODAY, view_threshold=100, recheck=recheck)
    assert verdict is expected


def test_only_exact_zero_triggers_recheck():
    assert needs_recheck(_result(0))
    assert not needs_recheck(_result(None))
    assert not needs_recheck(_result(3))


def _monitor(scrape, tagger, sleep) -> ShadowbanMonitor:
    return ShadowbanMonitor(scrape, tagger, delay_s=600, tag_label="#Shadowban", sleep=sleep, today=lambda: TODAY)


@pytest.mark.asyncio
async def test_zero_views_schedules_recheck_and_tags_when_still_zero(no_sleep):
    tagger = RecordingTagger()
    scrape = ScriptedScrape(_result(0, date(2025, 6, 1)))
    monitor = _monitor(scrape, tagger, no_sleep)

    handle = await monitor.observe("acc-1", _result(0, date(2025, 6, 1)))

    assert handle is not None
    assert monitor.pending("acc-1") is handle
    verdict = await handle.task

    assert verdict is ShadowbanVerdict.SUSPECTED
    assert no_sleep.calls == [600]
    assert scrape.calls == [(Platform.TIKTOK, "someone")]
    # 1차 판정(CLEAR) 후 재확인에서 태그 부여
    assert tagger.events == [("unassign", "acc-1", "#Shadowban"), ("assign", "acc-1", "#Shadowban")]
    assert monitor.pending("acc-1") is None


@pytest.mark.asyncio
async def test_recheck_with_views_clears_tag(no_sleep):
    tagger = RecordingTagger()
    scrape = ScriptedScrape(_result(250, date(2025, 6, 1)))
    monitor = _monitor(scrape, tagger, no_sleep)

    handle = monitor.schedule("acc-1", Platform.TIKTOK, "someone")
    verdict = await handle.task

    assert verdict is ShadowbanVerdict.CLEAR
    assert tagger.events == [("unassign", "acc-1", "#Shadowban")]


@pytest.mark.asyncio
async def test_observe_without_zero_views_does_not_schedule(no_sleep):
    tagger = RecordingTagger()
    monitor = _monitor(ScriptedScrape(), tagger, no_sleep)

    assert await monitor.observe("acc-1", _result(12)) is None
    assert tagger.events == [("assign", "acc-1", "#Shadowban")]

    assert await monitor.observe("acc-2", _result(None)) is None
    # UNKNOWN 은 태그를 건드리지 않음
    assert len(tagger.events) == 1


@pytest.mark.asyncio
async def test_rescheduling_cancels_previous_recheck():
    gate = asyncio.Event()

    async def blocking_sleep(seconds: float) -> None:
        await gate.wait()

    tagger = RecordingTagger()
    scrape = ScriptedScrape(_result(7, date(2025, 6, 1)))
    monitor = _monitor(scrape, tagger, blocking_sleep)

    first = monitor.schedule("acc-1", Platform.TIKTOK, "someone")
    await asyncio.sleep(0)
    second = monitor.schedule("acc-1", Platform.TIKTOK, "someone")

    gate.set()
    await asyncio.gather(first.task, second.task, return_exceptions=True)

    assert first.task.cancelled()
    assert not second.task.cancelled()
    assert len(scrape.calls) == 1
    assert monitor.pending("acc-1") is None


@pytest.mark.asyncio
async def test_failed_recheck_leaves_tags_untouched(no_sleep):
    tagger = RecordingTagger()
    monitor = _monitor(ScriptedScrape(NetworkTimeoutException("goto", 25000)), tagger, no_sleep)

    handle = monitor.schedule("acc-1", Platform.TIKTOK, "someone")

    assert await handle.task is None
    assert tagger.events == []
    assert monitor.pending("acc-1") is None


@pytest.mark.asyncio
async def test_tagger_errors_surface_on_recheck_task(no_sleep):
    tagger = AsyncMock()
    tagger.unassign_tag.side_effect = RuntimeError("tag api down")
    monitor = _monitor(ScriptedScrape(_result(300, date(2025, 6, 1))), tagger, no_sleep)

    handle = monitor.schedule("acc-1", Platform.TIKTOK, "someone")

    with pytest.raises(RuntimeError):
        await handle.task
    tagger.unassign_tag.assert_awaited_once_with("acc-1", "#Shadowban")
    tagger.assign_tag.assert_not_awaited()
    assert monitor.pending("acc-1") is None


@pytest.mark.asyncio
async def test_cancel_all_stops_pending_rechecks():
    async def never(seconds: float) -> None:
        await asyncio.Event().wait()

    scrape = ScriptedScrape()
    monitor = _monitor(scrape, RecordingTagger(), never)
    a = monitor.schedule("acc-1", Platform.TIKTOK, "a")
    b = monitor.schedule("acc-2", Platform.INSTAGRAM, "b")
    await asyncio.sleep(0)

    await monitor.cancel_all()

    assert a.task.cancelled() and b.task.cancelled()
    assert scrape.calls == []
    assert monitor.pending("acc-1") is None
