"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class ScraperException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 전송 계층 예외 (재시도 대상)
class TransportException(ScraperException):
    """네비게이션/네트워크 실패의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "TRANSPORT_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "TRANSPORT_ERROR", details)


class NetworkTimeoutException(TransportException):
    """네트워크 타임아웃 예외"""
    def __init__(self, operation: str, timeout_ms: int, details: Optional[dict[str, Any]] = None):
        message = f"Network timeout during '{operation}' after {timeout_ms}ms"
        super().__init__(message, "NETWORK_TIMEOUT",
                        details or {"operation": operation, "timeout_ms": timeout_ms})


class BrowserException(TransportException):
    """브라우저 실행 오류"""
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "BROWSER_ERROR", details)


# 로그인 세션 관련 예외
class SessionException(ScraperException):
    """로그인 세션 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "SESSION_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "SESSION_ERROR", details)


class NoSessionException(SessionException):
    """저장된 쿠키가 없음 - 재시도해도 소용없으므로 즉시 호출자에게 전달"""
    def __init__(self, platform: str, details: Optional[dict[str, Any]] = None):
        message = f"No login session for {platform}. Please log in first."
        super().__init__(message, "NO_SESSION", details or {"platform": platform})


class SessionExpiredException(SessionException):
    """쿠키로 접속했지만 로그인 페이지로 리다이렉트됨"""
    def __init__(self, platform: str, url: str, details: Optional[dict[str, Any]] = None):
        message = f"Login session for {platform} expired (redirected to {url})"
        super().__init__(message, "SESSION_EXPIRED", details or {"platform": platform, "url": url})


class CookiePersistException(SessionException):
    """로그인 브라우저 쿠키 읽기/저장 실패"""
    def __init__(self, platform: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to persist cookies for {platform}: {reason}"
        super().__init__(message, "COOKIE_PERSIST_ERROR",
                        details or {"platform": platform, "reason": reason})


# 설정 관련 예외 (호출자에게 그대로 전달)
class ConfigurationException(ScraperException):
    """설정 오류의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "CONFIG_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CONFIG_ERROR", details)


class UnsupportedPlatformException(ConfigurationException):
    """지원하지 않는 플랫폼"""
    def __init__(self, platform: Any, details: Optional[dict[str, Any]] = None):
        message = f"Unsupported platform: {platform}"
        super().__init__(message, "UNSUPPORTED_PLATFORM", details or {"platform": platform})


# 동시성 관련 예외
class SlotTimeoutException(ScraperException):
    """플랫폼 슬롯 대기 시간 초과"""
    def __init__(self, platform: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        message = f"Timed out after {timeout_s}s waiting for a '{platform}' slot"
        super().__init__(message, "SLOT_TIMEOUT",
                        details or {"platform": platform, "timeout_s": timeout_s})
