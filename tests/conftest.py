"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (브라우저 관리자, 컨텍스트, 페이지, HTTP 클라이언트)
- HTML 픽스처 로딩

금지:
- 실제 네트워크/브라우저 접속
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

FIXTURE_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


@pytest.fixture
def load_fixture() -> Callable[[str], str]:
    def _load(name: str) -> str:
        return (FIXTURE_DIR / name).read_text(encoding="utf-8")

    return _load


class FakeResponse:
    """page.on("response") 로 전달되는 응답"""

    def __init__(self, url: str, body: str):
        self.url = url
        self._body = body

    async def text(self) -> str:
        return self._body


class FakePage:
    """Playwright Page 대역

    - html_by_url: URL → page.content() 결과
    - redirects: 요청 URL → 실제 도착 URL (로그인 리다이렉트 재현)
    - responses_by_url: 이동 시 response 핸들러로 흘려보낼 응답
    - goto_error: goto() 가 던질 예외
    """

    def __init__(
        self,
        html_by_url: Optional[dict[str, str]] = None,
        redirects: Optional[dict[str, str]] = None,
        responses_by_url: Optional[dict[str, list[FakeResponse]]] = None,
        goto_error: Optional[BaseException] = None,
    ):
        self.html_by_url = dict(html_by_url or {})
        self.redirects = dict(redirects or {})
        self.responses_by_url = dict(responses_by_url or {})
        self.goto_error = goto_error
        self.url = "about:blank"
        self.visited: list[str] = []
        self.routes: list[str] = []
        self.default_timeout: Optional[int] = None
        self.evaluated: list[str] = []
        self._handlers: dict[str, list[Callable[[Any], None]]] = {}
        self.closed = False

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    async def route(self, pattern: str, handler: Any) -> None:
        self.routes.append(pattern)

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self._handlers.setdefault(event, []).append(handler)

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[int] = None) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)
        self.url = self.redirects.get(url, url)
        for response in self.responses_by_url.get(url, []):
            for handler in self._handlers.get("response", []):
                handler(response)

    async def wait_for_load_state(self, state: str, timeout: Optional[int] = None) -> None:
        return None

    async def wait_for_timeout(self, timeout: int) -> None:
        return None

    async def evaluate(self, script: str) -> None:
        self.evaluated.append(script)

    async def content(self) -> str:
        return self.html_by_url.get(self.url, "<html><body></body></html>")

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    """BrowserContext 대역 (close 횟수 기록)"""

    def __init__(self, page: FakePage):
        self.page = page
        self.close_count = 0
        self.added_cookies: list[dict[str, Any]] = []
        self.cookie_jar: list[dict[str, Any]] = []
        self.init_scripts: list[str] = []
        self.pages_created = 0

    async def new_page(self) -> FakePage:
        self.pages_created += 1
        return self.page

    async def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.added_cookies.extend(cookies)

    async def cookies(self) -> list[dict[str, Any]]:
        return list(self.cookie_jar)

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def close(self) -> None:
        self.close_count += 1


class FakeBrowserManager:
    """BrowserSessionManager 대역 (new_context / close 짝 검증용)"""

    def __init__(self, page: Optional[FakePage] = None):
        self.page = page or FakePage()
        self.contexts: list[FakeContext] = []
        self.released_visible: list[Any] = []
        self.shutdown_calls = 0

    async def new_context(self, stealth: bool = True) -> FakeContext:
        context = FakeContext(self.page)
        self.contexts.append(context)
        return context

    async def release_visible(self, browser: Any) -> None:
        self.released_visible.append(browser)

    async def shutdown(self) -> None:
        self.shutdown_calls += 1

    @property
    def open_contexts(self) -> int:
        return sum(1 for c in self.contexts if c.close_count == 0)


class FakeHttpClient:
    """SharedHttpClient 대역 (URL 별 고정 응답)"""

    def __init__(
        self,
        text_by_url: Optional[dict[str, Optional[tuple[int, str]]]] = None,
        json_by_url: Optional[dict[str, Optional[tuple[int, Any]]]] = None,
    ):
        self.text_by_url = dict(text_by_url or {})
        self.json_by_url = dict(json_by_url or {})
        self.calls: list[tuple[str, Optional[dict[str, Any]]]] = []
        self.closed = False

    async def get_text(self, url: str, *, timeout_s=None, params=None, headers=None):
        self.calls.append((url, params))
        return self.text_by_url.get(url)

    async def get_json(self, url: str, *, timeout_s=None, params=None):
        self.calls.append((url, params))
        return self.json_by_url.get(url)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_page() -> type[FakePage]:
    return FakePage


@pytest.fixture
def make_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def make_browsers() -> type[FakeBrowserManager]:
    return FakeBrowserManager


@pytest.fixture
def make_http() -> type[FakeHttpClient]:
    return FakeHttpClient


@pytest.fixture
def no_sleep() -> Callable[[float], Any]:
    """asyncio.sleep 대체 (호출된 지연값 기록)"""

    calls: list[float] = []

    async def _sleep(seconds: float) -> None:
        calls.append(seconds)

    _sleep.calls = calls  # type: ignore[attr-defined]
    return _sleep
