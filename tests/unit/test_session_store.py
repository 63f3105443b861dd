"""LoginSessionStore 테스트 (쿠키 영속화 + 인증 컨텍스트)."""

from __future__ import annotations

import json
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

from sns_scraper.core.exceptions import (
    CookiePersistException,
    NoSessionException,
    TransportException,
    UnsupportedPlatformException,
)
from sns_scraper.crawlers.playwright.session_store import (
    LoginSession,
    LoginSessionStore,
    is_login_redirect,
)
from sns_scraper.engine.result import Platform


COOKIES = [
    {"name": "sessionid", "value": "abc", "domain": ".instagram.com", "path": "/"},
    {"name": "csrftoken", "value": "xyz", "domain": ".instagram.com", "path": "/"},
]


class _LoginContext:
    def __init__(self, page: Any, cookies: Any = None, cookie_error: Exception | None = None):
        self.page = page
        self._cookies = cookies or []
        self._cookie_error = cookie_error

    async def new_page(self):
        return self.page

    async def cookies(self):
        if self._cookie_error is not None:
            raise self._cookie_error
        return list(self._cookies)


class _VisibleBrowser:
    def __init__(self, context: _LoginContext):
        self.context = context
        self.close_count = 0

    async def new_context(self, **kwargs):
        return self.context

    def is_connected(self) -> bool:
        return self.close_count == 0

    async def close(self) -> None:
        self.close_count += 1


def _browsers_with_login(make_browsers, make_page, cookies=None, cookie_error=None):
    """launch_visible 을 지원하는 브라우저 관리자 대역"""
    browsers = make_browsers(make_page())
    visible = _VisibleBrowser(_LoginContext(make_page(), cookies, cookie_error))

    async def launch_visible():
        return visible

    browsers.launch_visible = launch_visible
    return browsers, visible


def test_save_then_load_returns_same_cookies(tmp_path, make_browsers):
    store = LoginSessionStore(make_browsers(), cookie_dir=tmp_path)

    store.save(LoginSession(platform=Platform.INSTAGRAM, cookies=COOKIES))
    loaded = store.load("instagram")

    assert loaded.cookies == COOKIES
    assert store.has_session(Platform.INSTAGRAM)
    assert not store.has_session(Platform.FACEBOOK)
    # 임시 파일이 남지 않아야 함
    assert sorted(p.name for p in tmp_path.iterdir()) == ["instagram.json"]


def test_load_accepts_legacy_cookie_array(tmp_path, make_browsers):
    (tmp_path / "facebook.json").write_text(json.dumps(COOKIES), encoding="utf-8")
    store = LoginSessionStore(make_browsers(), cookie_dir=tmp_path)

    session = store.load(Platform.FACEBOOK)

    assert session.cookies == COOKIES
    assert session.captured_at is None


def test_load_without_file_raises_no_session(tmp_path, make_browsers):
    store = LoginSessionStore(make_browsers(), cookie_dir=tmp_path)

    with pytest.raises(NoSessionException) as exc:
        store.load("instagram")
    assert exc.value.error_code == "NO_SESSION"


@pytest.mark.asyncio
async def test_with_session_injects_saved_cookies(tmp_path, make_browsers, make_page):
    page = make_page()
    browsers = make_browsers(page)
    store = LoginSessionStore(browsers, cookie_dir=tmp_path)
    store.save(LoginSession(platform=Platform.INSTAGRAM, cookies=COOKIES))

    context, returned = await store.with_session("instagram", "https://www.instagram.com/someone/")

    assert returned is page
    assert context.added_cookies == COOKIES
    assert page.visited == ["https://www.instagram.com/someone/"]
    assert page.routes == ["**/*"]
    assert context.close_count == 0
    await context.close()


@pytest.mark.asyncio
async def test_with_session_closes_context_when_navigation_fails(tmp_path, make_browsers, make_page):
    browsers = make_browsers(make_page(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED")))
    store = LoginSessionStore(browsers, cookie_dir=tmp_path)
    store.save(LoginSession(platform=Platform.FACEBOOK, cookies=COOKIES))

    with pytest.raises(TransportException):
        await store.with_session("facebook", "https://www.facebook.com/someone")

    assert browsers.contexts[0].close_count == 1


@pytest.mark.asyncio
async def test_with_session_without_cookies_opens_no_context(tmp_path, make_browsers):
    browsers = make_browsers()
    store = LoginSessionStore(browsers, cookie_dir=tmp_path)

    with pytest.raises(NoSessionException):
        await store.with_session("instagram", "https://www.instagram.com/someone/")

    assert browsers.contexts == []


@pytest.mark.asyncio
async def test_open_then_close_persists_login_cookies(tmp_path, make_browsers, make_page):
    browsers, visible = _browsers_with_login(make_browsers, make_page, cookies=COOKIES)
    store = LoginSessionStore(browsers, cookie_dir=tmp_path)

    await store.open("instagram")
    assert store.is_open("instagram")
    assert visible.context.page.visited == ["https://www.instagram.com/accounts/login/"]

    path = await store.close("instagram")

    assert path == tmp_path / "instagram.json"
    assert store.load("instagram").cookies == COOKIES
    assert store.load("instagram").captured_at is not None
    assert visible.close_count == 1
    assert browsers.released_visible == [visible]
    assert not store.is_open("instagram")


@pytest.mark.asyncio
async def test_close_failure_still_closes_browser(tmp_path, make_browsers, make_page):
    browsers, visible = _browsers_with_login(
        make_browsers, make_page, cookie_error=RuntimeError("target closed")
    )
    store = LoginSessionStore(browsers, cookie_dir=tmp_path)
    await store.open("facebook")

    with pytest.raises(CookiePersistException) as exc:
        await store.close("facebook")

    assert "target closed" in exc.value.message
    assert visible.close_count == 1
    assert browsers.released_visible == [visible]
    assert not store.has_session("facebook")


@pytest.mark.asyncio
async def test_close_without_open_browser_is_noop(tmp_path, make_browsers):
    store = LoginSessionStore(make_browsers(), cookie_dir=tmp_path)
    assert await store.close("instagram") is None


@pytest.mark.asyncio
async def test_manual_login_rejected_for_cookieless_platforms(tmp_path, make_browsers):
    store = LoginSessionStore(make_browsers(), cookie_dir=tmp_path)
    with pytest.raises(UnsupportedPlatformException):
        await store.open("tiktok")


@pytest.mark.parametrize(
    "platform,url,expected",
    [
        (Platform.INSTAGRAM, "https://www.instagram.com/accounts/login/?next=/someone/", True),
        (Platform.INSTAGRAM, "https://www.instagram.com/someone/reels/", False),
        (Platform.FACEBOOK, "https://www.facebook.com/login/?next=x", True),
        (Platform.FACEBOOK, "https://www.facebook.com/checkpoint/1501092823525282/", True),
        (Platform.FACEBOOK, "https://www.facebook.com/someone/videos", False),
        (Platform.TIKTOK, "https://www.tiktok.com/login", False),
    ],
)
def test_is_login_redirect(platform, url, expected):
    assert is_login_redirect(platform, url) is expected
