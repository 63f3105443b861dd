"""RetryController 테스트."""

from __future__ import annotations

import random
from datetime import date

import pytest

from sns_scraper.core.exceptions import (
    BrowserException,
    NetworkTimeoutException,
    NoSessionException,
    UnsupportedPlatformException,
)
from sns_scraper.engine.result import ExtractionResult, Platform
from sns_scraper.engine.retry import RetryController, RetryPolicy


FIELD_ORDER = ("followers", "last_post_date", "last_post_view", "last_post_like", "last_post_save")


def _scored(score: int, tag: int = 0) -> ExtractionResult:
    """앞에서부터 score 개 필드가 채워진 결과"""
    values = {
        "followers": 1000 + tag,
        "last_post_date": date(2025, 6, 1),
        "last_post_view": 10,
        "last_post_like": 2,
        "last_post_save": 1,
    }
    result = ExtractionResult.empty(Platform.TIKTOK, "someone")
    for name in FIELD_ORDER[:score]:
        setattr(result, name, values[name])
    if score == 0:
        result.followers = None
    return result


def _sequence(*items):
    queue = list(items)
    calls = {"n": 0}

    async def extract() -> ExtractionResult:
        calls["n"] += 1
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    return extract, calls


def _policy(**kwargs) -> RetryPolicy:
    defaults = dict(max_attempts=3, base_delay_s=2.0, jitter_s=2.0, max_delay_s=10.0, min_post_fields=None)
    defaults.update(kwargs)
    return RetryPolicy(**defaults)


@pytest.mark.asyncio
async def test_returns_best_scoring_attempt_not_last(no_sleep):
    second = _scored(4, tag=2)
    extract, calls = _sequence(_scored(2, tag=1), second, _scored(1, tag=3))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(extract, _policy(), fallback=ExtractionResult.empty(Platform.TIKTOK, "someone"))

    assert calls["n"] == 3
    assert outcome.result is second
    assert outcome.best_attempt == 2
    assert [a.score for a in outcome.attempts] == [2, 4, 1]


@pytest.mark.asyncio
async def test_ties_keep_earliest(no_sleep):
    first = _scored(3, tag=1)
    extract, _ = _sequence(first, _scored(3, tag=2))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(
        extract, _policy(max_attempts=2), fallback=ExtractionResult.empty(Platform.TIKTOK, "someone")
    )

    assert outcome.result is first
    assert outcome.result.followers == 1001


@pytest.mark.asyncio
async def test_stops_early_on_full_score(no_sleep):
    extract, calls = _sequence(_scored(5), _scored(1))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(extract, _policy(), fallback=ExtractionResult.empty(Platform.TIKTOK, "someone"))

    assert calls["n"] == 1
    assert outcome.score == 5
    assert no_sleep.calls == []


@pytest.mark.asyncio
async def test_stops_when_good_enough(no_sleep):
    # 팔로워 + 게시물 필드 3개 = 4/5
    extract, calls = _sequence(_scored(4), _scored(5))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(
        extract, _policy(min_post_fields=3), fallback=ExtractionResult.empty(Platform.TIKTOK, "someone")
    )

    assert calls["n"] == 1
    assert outcome.score == 4


@pytest.mark.asyncio
async def test_transport_errors_count_as_failed_attempts(no_sleep):
    good = _scored(2)
    extract, calls = _sequence(NetworkTimeoutException("goto", 25000), good, NetworkTimeoutException("goto", 25000))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(extract, _policy(), fallback=ExtractionResult.empty(Platform.TIKTOK, "someone"))

    assert calls["n"] == 3
    assert outcome.result is good
    assert outcome.attempts[0].score == 0
    assert "NETWORK_TIMEOUT" in outcome.attempts[0].error
    assert len(no_sleep.calls) == 2


@pytest.mark.asyncio
async def test_all_attempts_failing_returns_fallback(no_sleep):
    fallback = ExtractionResult.empty(Platform.TIKTOK, "someone")
    extract, _ = _sequence(RuntimeError("a"), RuntimeError("b"))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(extract, _policy(max_attempts=2), fallback=fallback)

    assert outcome.result is fallback
    assert outcome.result.is_empty
    assert outcome.best_attempt is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [NoSessionException("instagram"), UnsupportedPlatformException("myspace"), BrowserException("no browser")],
)
async def test_non_retryable_errors_propagate(no_sleep, error):
    extract, calls = _sequence(error, _scored(5))
    controller = RetryController(sleep=no_sleep)

    with pytest.raises(type(error)):
        await controller.run(extract, _policy(), fallback=ExtractionResult.empty(Platform.TIKTOK, "someone"))

    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_session_expired_stops_retrying(no_sleep):
    expired = ExtractionResult.empty(Platform.INSTAGRAM, "someone")
    expired.session_expired = True
    extract, calls = _sequence(expired, _scored(5))
    controller = RetryController(sleep=no_sleep)

    outcome = await controller.run(extract, _policy(), fallback=ExtractionResult.empty(Platform.INSTAGRAM, "someone"))

    assert calls["n"] == 1
    assert outcome.result.session_expired is True


def test_backoff_grows_with_attempt_and_is_capped():
    controller = RetryController(rng=random.Random(7))
    policy = _policy(base_delay_s=2.0, jitter_s=2.0, max_delay_s=5.0)

    first = controller.backoff_for(1, policy)
    assert 2.0 <= first <= 4.0
    assert controller.backoff_for(10, policy) == 5.0

    no_jitter = _policy(base_delay_s=2.0, jitter_s=0.0, max_delay_s=100.0)
    assert controller.backoff_for(3, no_jitter) == 6.0


def test_policy_good_enough_requires_followers():
    policy = _policy(min_post_fields=3)
    result = _scored(4)
    assert policy.is_good_enough(result)

    result.followers = None
    assert not policy.is_good_enough(result)


def test_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(min_post_fields=5)


def test_policy_for_platform_reads_settings():
    policy = RetryPolicy.for_platform(Platform.FACEBOOK)
    assert policy.max_attempts == 2
    assert policy.min_post_fields == 2
