"""숫자/날짜 정규화 테스트."""

from datetime import date, datetime, timezone

import pytest

from sns_scraper.utils.normalize import (
    epoch_to_date,
    parse_magnitude,
    parse_relative_or_absolute_date,
    to_int,
)


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("1.2만", 12000),
        ("3.4K", 3400),
        ("2,300", 2300),
        ("1.5M", 1500000),
        ("2억", 200000000),
        ("3천", 3000),
        ("1,234,567", 1234567),
        ("팔로워 7.8만명", 78000),
        ("0", 0),
    ],
)
def test_parse_magnitude(text, expected):
    assert parse_magnitude(text) == expected


@pytest.mark.parametrize("text", ["", None, "abc", "   "])
def test_parse_magnitude_no_digits_is_none(text):
    assert parse_magnitude(text) is None


def test_parse_magnitude_rounds_half_up():
    assert parse_magnitude("1.25K") == 1250
    assert parse_magnitude("1.2345K") == 1235


def test_parse_magnitude_keeps_zero_distinct_from_missing():
    assert parse_magnitude("0") == 0
    assert parse_magnitude("") is None


def test_unit_suffix_not_taken_from_following_word():
    # "5 months" 의 m 을 백만 단위로 읽으면 안 됨
    assert parse_magnitude("5 months") == 5


@pytest.mark.parametrize(
    "text,expected",
    [
        ("3일 전", date(2025, 6, 12)),
        ("1주 전", date(2025, 6, 8)),
        ("2025-01-15", date(2025, 1, 15)),
        ("2025-01-15T10:00:00Z", date(2025, 1, 15)),
        ("2024년 3월 2일", date(2024, 3, 2)),
        ("5시간 전", date(2025, 6, 15)),
        ("2 weeks ago", date(2025, 6, 1)),
        ("3 days ago", date(2025, 6, 12)),
        ("1개월 전", date(2025, 5, 15)),
        ("2년 전", date(2023, 6, 15)),
        ("어제", date(2025, 6, 14)),
        ("yesterday", date(2025, 6, 14)),
        ("방금", date(2025, 6, 15)),
        ("4d", date(2025, 6, 11)),
        ("1-15", date(2025, 1, 15)),
    ],
)
def test_parse_relative_or_absolute_date(text, expected):
    assert parse_relative_or_absolute_date(text, now=NOW) == expected


@pytest.mark.parametrize("text", ["garbage", "", None, "2025-13-45"])
def test_parse_date_unrecognized_is_none(text):
    assert parse_relative_or_absolute_date(text, now=NOW) is None


def test_month_shift_clamps_day():
    now = datetime(2025, 3, 31, tzinfo=timezone.utc)
    assert parse_relative_or_absolute_date("1개월 전", now=now) == date(2025, 2, 28)


def test_epoch_to_date_is_utc():
    assert epoch_to_date(1700000000) == date(2023, 11, 14)
    assert epoch_to_date("1700000000") == date(2023, 11, 14)
    assert epoch_to_date(None) is None
    assert epoch_to_date(0) is None


def test_to_int():
    assert to_int("1200") == 1200
    assert to_int(5) == 5
    assert to_int(0) == 0
    assert to_int(None) is None
    assert to_int("n/a") is None
    assert to_int(True) is None
