"""ExtractionResult / Platform 테스트."""

from datetime import date

import pytest

from sns_scraper.core.exceptions import UnsupportedPlatformException
from sns_scraper.engine.result import ExtractionResult, Platform


def _result(**kwargs) -> ExtractionResult:
    return ExtractionResult(platform=Platform.TIKTOK, username="someone", **kwargs)


def test_platform_parse_is_case_insensitive():
    assert Platform.parse("TikTok") is Platform.TIKTOK
    assert Platform.parse(" youtube ") is Platform.YOUTUBE
    assert Platform.parse(Platform.FACEBOOK) is Platform.FACEBOOK


def test_platform_parse_rejects_unknown():
    with pytest.raises(UnsupportedPlatformException) as exc:
        Platform.parse("myspace")
    assert exc.value.error_code == "UNSUPPORTED_PLATFORM"


def test_score_counts_zero_as_present():
    result = _result(followers=10, last_post_view=0)
    assert result.score == 2
    assert result.post_field_count == 1
    assert not result.is_empty
    assert ExtractionResult.empty(Platform.TIKTOK, "x").is_empty


def test_merge_fills_only_missing_fields():
    base = _result(followers=100, last_post_like=5)
    other = _result(followers=999, last_post_like=None, last_post_date=date(2025, 6, 1))

    base.merge(other)

    assert base.followers == 100
    assert base.last_post_like == 5
    assert base.last_post_date == date(2025, 6, 1)


def test_merge_prefers_non_zero_view():
    base = _result(last_post_view=0)
    base.merge(_result(last_post_view=420))
    assert base.last_post_view == 420

    kept = _result(last_post_view=300)
    kept.merge(_result(last_post_view=0))
    assert kept.last_post_view == 300


def test_set_if_missing_never_writes_none():
    result = _result(last_post_save=7)
    result.set_if_missing("last_post_save", None)
    result.set_if_missing("last_post_save", 9)
    assert result.last_post_save == 7

    with pytest.raises(ValueError):
        result.set_if_missing("session_expired", True)


def test_to_dict_uses_consumer_keys():
    result = _result(followers=1500, last_post_date=date(2023, 11, 14), last_post_view=0)
    data = result.to_dict()

    assert data == {
        "platform": "tiktok",
        "username": "someone",
        "followers": 1500,
        "lastPostDate": "2023-11-14",
        "lastPostView": 0,
        "lastPostLike": None,
        "lastPostSave": None,
        "sessionExpired": False,
    }


def test_missing_fields_and_summary():
    result = _result(followers=1)
    assert result.missing_fields() == ["last_post_date", "last_post_view", "last_post_like", "last_post_save"]
    assert "(1/5 fields)" in result.summary()
