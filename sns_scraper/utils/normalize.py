"""숫자/날짜 문자열 정규화 (순수 함수, I/O 없음).

플랫폼마다 "1.2만", "3.4K", "2,300" 처럼 표기가 제각각이라
모든 추출 경로는 여기서 정수/날짜로 변환합니다.

중요: 값이 없으면 항상 None 을 반환합니다. 0 은 "조회수 0" 같은
의미 있는 값이므로 "없음"을 0 으로 바꾸면 안 됩니다.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


_MULTIPLIERS: dict[str, int] = {
    "k": 1_000,
    "m": 1_000_000,
    "b": 1_000_000_000,
    "천": 1_000,
    "만": 10_000,
    "억": 100_000_000,
}

_MAGNITUDE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(만|천|억|[KkMmBb](?![A-Za-z]))?")

_UNIT_ALIASES: dict[str, str] = {
    "분": "minutes", "minute": "minutes", "minutes": "minutes", "min": "minutes", "mins": "minutes", "m": "minutes",
    "시간": "hours", "hour": "hours", "hours": "hours", "hr": "hours", "hrs": "hours", "h": "hours",
    "일": "days", "day": "days", "days": "days", "d": "days",
    "주": "weeks", "week": "weeks", "weeks": "weeks", "w": "weeks",
    "개월": "months", "달": "months", "month": "months", "months": "months",
    "년": "years", "year": "years", "years": "years", "yr": "years", "yrs": "years", "y": "years",
}

_UNIT_PATTERN = (
    r"(분|시간|일|주|개월|달|년"
    r"|minutes?|mins?|hours?|hrs?|days?|weeks?|months?|years?|yrs?"
    r"|[mhdwy])"
)
_RELATIVE_RE = re.compile(r"(\d+)\s*" + _UNIT_PATTERN + r"\s*(?:전|ago)", re.IGNORECASE)
_SHORT_RELATIVE_RE = re.compile(r"^(\d+)\s*" + _UNIT_PATTERN + r"$", re.IGNORECASE)

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T\s].*)?$")
_KOREAN_DATE_RE = re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일")
_MONTH_DAY_RE = re.compile(r"^(\d{1,2})-(\d{1,2})$")

_YESTERDAY_WORDS = ("어제", "yesterday")
_JUST_NOW_WORDS = ("방금", "just now", "오늘", "today")


def parse_magnitude(text: Optional[str]) -> Optional[int]:
    """단위가 붙은 숫자 문자열을 정수로 변환합니다.

    - 천 단위 구분자(,)와 공백 제거
    - K/M/B, 천/만/억 접미사는 Decimal 곱셈 후 반올림
    - 숫자가 없으면 None (빈 문자열을 0 으로 취급하지 않음)

    Examples:
        >>> parse_magnitude("1.2만")
        12000
        >>> parse_magnitude("3.4K")
        3400
        >>> parse_magnitude("2,300")
        2300
        >>> parse_magnitude("") is None
        True
    """
    if not text:
        return None

    cleaned = str(text).replace(",", "").strip()
    match = _MAGNITUDE_RE.search(cleaned)
    if not match:
        return None

    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        return None

    suffix = match.group(2)
    if suffix:
        value *= _MULTIPLIERS[suffix.lower()]

    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_int(value: Any) -> Optional[int]:
    """API 응답의 숫자(문자열 포함)를 정수로. None/변환 불가는 None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return None


def epoch_to_date(seconds: Any) -> Optional[date]:
    """Unix epoch 초 → UTC 기준 날짜"""
    value = to_int(seconds)
    if value is None or value <= 0:
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def _shift_months(d: date, months: int) -> date:
    total = d.year * 12 + (d.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _subtract(now: datetime, amount: int, unit: str) -> date:
    if unit == "minutes":
        return (now - timedelta(minutes=amount)).date()
    if unit == "hours":
        return (now - timedelta(hours=amount)).date()
    if unit == "days":
        return (now - timedelta(days=amount)).date()
    if unit == "weeks":
        return (now - timedelta(weeks=amount)).date()
    if unit == "months":
        return _shift_months(now.date(), amount)
    return _shift_months(now.date(), amount * 12)


def parse_relative_or_absolute_date(
    text: Optional[str],
    now: Optional[datetime] = None,
) -> Optional[date]:
    """상대/절대 날짜 문자열을 날짜로 변환합니다.

    상대 표현("3일 전", "2 weeks ago", "5h")은 평가 시점(now)에서 빼고
    날짜만 남깁니다. 원본 게시 시각이 아니라 평가 시점 기준이라 시간 단위
    정밀도는 버려집니다. 절대 표현("2025-01-15", "2025년 1월 15일")은
    그대로 반환합니다.

    Args:
        text: 날짜 문자열
        now: 평가 시점 (기본값: 현재 UTC 시각)

    Returns:
        date 또는 None
    """
    if not text:
        return None

    raw = str(text).strip()
    if not raw:
        return None

    now = now or datetime.now(timezone.utc)

    iso = _ISO_DATE_RE.match(raw)
    if iso:
        return _safe_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

    korean = _KOREAN_DATE_RE.search(raw)
    if korean:
        return _safe_date(int(korean.group(1)), int(korean.group(2)), int(korean.group(3)))

    relative = _RELATIVE_RE.search(raw) or _SHORT_RELATIVE_RE.match(raw)
    if relative:
        unit = _UNIT_ALIASES.get(relative.group(2).lower())
        if unit:
            try:
                return _subtract(now, int(relative.group(1)), unit)
            except (ValueError, OverflowError):
                return None

    lowered = raw.lower()
    if any(w in lowered for w in _YESTERDAY_WORDS):
        return (now - timedelta(days=1)).date()
    if any(w in lowered for w in _JUST_NOW_WORDS):
        return now.date()

    # TikTok 목록의 "1-15" (올해 날짜)
    month_day = _MONTH_DAY_RE.match(raw)
    if month_day:
        return _safe_date(now.year, int(month_day.group(1)), int(month_day.group(2)))

    return None
