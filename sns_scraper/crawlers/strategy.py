"""Field Strategy - 필드별 추출 전략 체인

각 필드의 추출 순서(JSON 우선 → DOM 폴백 1 → DOM 폴백 2 ...)를 중첩 if 대신
이름 붙은 전략의 튜플로 표현합니다. 앞에서부터 실행해 처음으로 값을
돌려준 전략이 이깁니다.

Usage:
    FOLLOWER_STRATEGIES = (
        FieldStrategy("embedded_json", followers_from_json),
        FieldStrategy("og_description", followers_from_og_description),
    )
    followers, source = first_success(FOLLOWER_STRATEGIES, doc)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from sns_scraper.core.logging import logger


T = TypeVar("T")


@dataclass(frozen=True)
class FieldStrategy(Generic[T]):
    """이름 붙은 단일 추출 전략 (값이 없으면 None 반환)"""

    name: str
    func: Callable[[Any], Optional[T]]

    def __call__(self, source: Any) -> Optional[T]:
        return self.func(source)


def first_success(
    strategies: Iterable[FieldStrategy[T]],
    source: Any,
    *,
    label: str = "",
) -> tuple[Optional[T], Optional[str]]:
    """전략을 순서대로 실행해 첫 번째 값과 전략 이름 반환

    파싱 중 예외는 해당 전략의 "못 찾음"으로 취급합니다.

    Returns:
        (값, 전략 이름) 또는 (None, None)
    """
    for strategy in strategies:
        try:
            value = strategy(source)
        except (ValueError, KeyError, TypeError, AttributeError, IndexError) as e:
            logger.debug(f"[Strategy] {label}{strategy.name} raised {type(e).__name__}: {e}")
            continue
        if value is not None:
            logger.debug(f"[Strategy] {label}{strategy.name} -> {value!r}")
            return value, strategy.name
    logger.debug(f"[Strategy] {label}no strategy matched")
    return None, None
