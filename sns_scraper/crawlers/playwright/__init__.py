"""Playwright 모듈 (공용 브라우저, 페이지 설정, 로그인 세션)."""

from .browser import BrowserSessionManager, BrowserState
from .pages import configure_page, navigate
from .session_store import LoginSession, LoginSessionStore, is_login_redirect

__all__ = [
    "BrowserSessionManager",
    "BrowserState",
    "configure_page",
    "navigate",
    "LoginSession",
    "LoginSessionStore",
    "is_login_redirect",
]
