"""공용 HTML/JSON 파싱 유틸 (selectolax).

네트워크/브라우저와 분리된 순수 파싱 로직입니다. 각 플랫폼의
parsing.py 가 이 위에 필드별 전략을 얹습니다.
"""

from __future__ import annotations

import json
import re
from functools import cached_property
from typing import Any, Iterable, Iterator, Optional

from selectolax.parser import HTMLParser, Node

from sns_scraper.core.logging import logger


# "1,234" / "1.2만" / "3.4K" 같은 숫자 토큰
NUMBER_TOKEN = r"\d[\d,.]*\s*(?:만|천|억|[KkMmBb](?![A-Za-z]))?"
NUMBER_TOKEN_RE = re.compile(NUMBER_TOKEN)
NUMERIC_ONLY_RE = re.compile(r"^[\d,.만천억KkMmBb]+$")

_JSON_SCRIPT_SELECTORS = (
    'script[type="application/json"]',
    'script[type="application/ld+json"]',
    "script#SIGI_STATE",
    "script#__UNIVERSAL_DATA_FOR_REHYDRATION__",
)
_ASSIGNED_JSON_RE = re.compile(r"window\._sharedData\s*=\s*(\{.*?\});\s*$", re.S)


def clean_username(username: Optional[str]) -> str:
    """앞뒤 공백과 선행 @ 제거"""
    return (username or "").strip().lstrip("@").strip()


def first_number_token(text: Optional[str]) -> Optional[str]:
    """텍스트에서 첫 번째 숫자 토큰 추출"""
    if not text:
        return None
    match = NUMBER_TOKEN_RE.search(text)
    return match.group(0).strip() if match else None


def is_numeric_text(text: Optional[str], max_length: int = 15) -> bool:
    """숫자/단위만으로 된 짧은 텍스트인지 ("1,234", "1.2만")"""
    if not text or len(text) >= max_length:
        return False
    return bool(NUMERIC_ONLY_RE.match(text)) and any(c.isdigit() for c in text)


def iter_dicts(obj: Any) -> Iterator[dict]:
    """중첩 JSON 안의 모든 dict 를 문서 순서대로 순회"""
    stack = [obj]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            yield current
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


def find_first_value(blobs: Iterable[Any], keys: Iterable[str]) -> Any:
    """여러 JSON blob 에서 keys 중 하나로 처음 나오는 값 (None 제외)"""
    keys = tuple(keys)
    for blob in blobs:
        for d in iter_dicts(blob):
            for key in keys:
                value = d.get(key)
                if value is not None:
                    return value
    return None


def node_text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return (node.text(deep=True, separator="", strip=True) or "").strip()


def child_element_count(node: Node) -> int:
    return sum(1 for _ in node.iter(include_text=False))


def closest(node: Optional[Node], tag: str) -> Optional[Node]:
    current = node.parent if node is not None else None
    while current is not None:
        if current.tag == tag:
            return current
        current = current.parent
    return None


class HtmlDocument:
    """렌더링된 페이지 한 장 (HTML + URL + 가로챈 API 응답)"""

    def __init__(self, html: str, url: str = "", api_payloads: Optional[list[Any]] = None):
        self.html = html or ""
        self.url = url or ""
        self.api_payloads = list(api_payloads or [])

    @cached_property
    def tree(self) -> HTMLParser:
        return HTMLParser(self.html)

    @cached_property
    def json_blobs(self) -> list[Any]:
        """페이지에 박힌 JSON (SSR 상태, ld+json, _sharedData)"""
        blobs: list[Any] = []
        seen: set[int] = set()
        for selector in _JSON_SCRIPT_SELECTORS:
            for node in self.tree.css(selector):
                raw = node.text(deep=True) or ""
                # 같은 script 가 여러 selector 에 걸릴 수 있음
                if not raw.strip() or hash(raw) in seen:
                    continue
                seen.add(hash(raw))
                try:
                    blobs.append(json.loads(raw))
                except ValueError:
                    logger.debug(f"[Parsing] Skipped non-JSON script ({len(raw)} chars)")
        for node in self.tree.css("script"):
            raw = node.text(deep=True) or ""
            match = _ASSIGNED_JSON_RE.search(raw)
            if match:
                try:
                    blobs.append(json.loads(match.group(1)))
                except ValueError:
                    pass
        return blobs

    def all_json(self) -> list[Any]:
        """가로챈 API 응답 → 페이지 내장 JSON 순서"""
        return self.api_payloads + self.json_blobs

    def meta_content(self, key: str) -> Optional[str]:
        node = self.tree.css_first(f'meta[property="{key}"]') or self.tree.css_first(f'meta[name="{key}"]')
        if node is None:
            return None
        return node.attributes.get("content")

    def nodes(self, selector: str) -> list[Node]:
        return self.tree.css(selector)

    def texts(self, selector: str, max_length: Optional[int] = None) -> Iterator[str]:
        """selector 에 맞는 요소의 텍스트 (max_length 이상은 건너뜀)"""
        for node in self.tree.css(selector):
            text = node_text(node)
            if not text:
                continue
            if max_length is not None and len(text) >= max_length:
                continue
            yield text
