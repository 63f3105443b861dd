"""공유 HTTP 클라이언트 (curl_cffi)

- 브라우저 없이 가져오는 데이터(TikTok 프로필 SSR, YouTube Data API)용
- 요청마다 AsyncSession 을 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 세션을 재사용하고, 종료 시 close()로 정리합니다.
- 실패는 예외 대신 None 으로 돌려주고 호출 측에서 결정합니다.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

from curl_cffi.requests import AsyncSession

from sns_scraper.core.config import settings
from sns_scraper.core.logging import logger, sanitize_for_log


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.crawler_http_impersonate,
                headers=self.default_headers(),
                allow_redirects=True,
                max_clients=settings.crawler_http_max_clients,
                trust_env=False,
            )
            return self._session

    def default_headers(self) -> Dict[str, str]:
        return {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
        }

    async def get_text(
        self,
        url: str,
        *,
        timeout_s: Optional[float] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[tuple[int, str]]:
        sess = await self._ensure_session()
        try:
            resp = await sess.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout_s or settings.crawler_http_timeout_s,
            )
            status = getattr(resp, "status_code", 0) or 0
            text = getattr(resp, "text", "") or ""
            return status, text
        except Exception as e:
            logger.info(f"[HTTP_CLIENT] GET {sanitize_for_log(url)} failed: {type(e).__name__}: {repr(e)}")
            return None

    async def get_json(
        self,
        url: str,
        *,
        timeout_s: Optional[float] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[tuple[int, Any]]:
        """JSON GET. 네트워크 실패는 None, 본문이 JSON 이 아니면 (status, None)."""
        res = await self.get_text(
            url,
            timeout_s=timeout_s,
            params=params,
            headers={"Accept": "application/json"},
        )
        if res is None:
            return None
        status, text = res
        try:
            return status, json.loads(text) if text else None
        except ValueError:
            logger.info(f"[HTTP_CLIENT] Non-JSON body from {sanitize_for_log(url)} (status={status}, len={len(text)})")
            return status, None

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.warning(f"[HTTP_CLIENT] Failed to close session: {type(e).__name__}: {e}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
