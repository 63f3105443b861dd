"""Concurrency Governor - 플랫폼별 동시 실행 슬롯 관리

플랫폼마다 고정된 슬롯 수와 FIFO 대기열을 둡니다.
- 슬롯이 비면 대기열의 다음 요청에게 직접 넘겨주므로(active 유지)
  순간적으로라도 capacity 를 넘지 않습니다.
- 슬롯 반납 전 랜덤 지연을 넣어 사람처럼 요청 간격을 벌립니다.
- 설정에 없는 플랫폼(YouTube 등)은 제한 없이 통과합니다.

Usage:
    governor = ConcurrencyGovernor.from_settings()

    async with governor.slot("instagram"):
        result = await extractor.extract(username)
"""

from __future__ import annotations

import asyncio
import random
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Mapping, Optional

from sns_scraper.core.config import settings
from sns_scraper.core.exceptions import SlotTimeoutException
from sns_scraper.core.logging import logger


@dataclass
class SlotPool:
    """플랫폼 하나의 슬롯 상태"""

    capacity: int
    pacing_s: tuple[float, float] = (0.0, 0.0)
    active: int = 0
    peak: int = 0
    waiters: deque = field(default_factory=deque)

    def has_live_waiters(self) -> bool:
        return any(not w.done() for w in self.waiters)


class ConcurrencyGovernor:
    """플랫폼별 입장 제어"""

    def __init__(
        self,
        capacities: Mapping[str, int],
        pacing: Optional[Mapping[str, tuple[float, float]]] = None,
        acquire_timeout_s: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            capacities: 플랫폼명 → 동시 슬롯 수
            pacing: 플랫폼명 → 반납 전 랜덤 지연 구간 (초)
            acquire_timeout_s: 슬롯 대기 상한 (None/0 이면 무한 대기)
            sleep: 지연 함수 (테스트에서 교체)
            rng: 난수 생성기 (테스트에서 시드 고정)
        """
        pacing = pacing or {}
        self._pools: dict[str, SlotPool] = {}
        for name, capacity in capacities.items():
            if capacity <= 0:
                raise ValueError(f"capacity for '{name}' must be positive")
            key = self._key(name)
            self._pools[key] = SlotPool(capacity=capacity, pacing_s=tuple(pacing.get(key, (0.0, 0.0))))
        self.acquire_timeout_s = acquire_timeout_s or None
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls) -> "ConcurrencyGovernor":
        return cls(
            capacities=settings.governor_capacities,
            pacing=settings.governor_pacing_s,
            acquire_timeout_s=settings.governor_acquire_timeout_s,
        )

    @staticmethod
    def _key(platform: object) -> str:
        return str(getattr(platform, "value", platform)).lower()

    def _pool(self, platform: object) -> Optional[SlotPool]:
        return self._pools.get(self._key(platform))

    def is_gated(self, platform: object) -> bool:
        return self._pool(platform) is not None

    def active(self, platform: object) -> int:
        pool = self._pool(platform)
        return pool.active if pool else 0

    def waiting(self, platform: object) -> int:
        pool = self._pool(platform)
        return sum(1 for w in pool.waiters if not w.done()) if pool else 0

    def peak(self, platform: object) -> int:
        pool = self._pool(platform)
        return pool.peak if pool else 0

    async def acquire(self, platform: object) -> None:
        """슬롯 획득 (대기열이 있으면 도착 순서대로 대기)

        Raises:
            SlotTimeoutException: acquire_timeout_s 내에 슬롯을 받지 못한 경우
        """
        pool = self._pool(platform)
        if pool is None:
            return

        if pool.active < pool.capacity and not pool.has_live_waiters():
            pool.active += 1
            pool.peak = max(pool.peak, pool.active)
            return

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future = loop.create_future()
        pool.waiters.append(waiter)
        logger.debug(
            f"[Governor] {self._key(platform)} slot busy "
            f"(active={pool.active}/{pool.capacity}, waiting={len(pool.waiters)})"
        )

        try:
            if self.acquire_timeout_s:
                await asyncio.wait_for(waiter, timeout=self.acquire_timeout_s)
            else:
                await waiter
        except (asyncio.TimeoutError, asyncio.CancelledError) as e:
            if waiter.done() and not waiter.cancelled():
                # 슬롯을 넘겨받은 직후 취소/타임아웃 → 다음 대기자에게 전달
                self._release_pool(pool)
            else:
                try:
                    pool.waiters.remove(waiter)
                except ValueError:
                    pass
            if isinstance(e, asyncio.TimeoutError):
                logger.warning(
                    f"[Governor] {self._key(platform)} slot wait timed out after {self.acquire_timeout_s}s"
                )
                raise SlotTimeoutException(self._key(platform), self.acquire_timeout_s) from None
            raise

    def release(self, platform: object) -> None:
        """슬롯 반납. 대기자가 있으면 슬롯을 그대로 넘겨줍니다."""
        pool = self._pool(platform)
        if pool is None:
            return
        self._release_pool(pool)

    def _release_pool(self, pool: SlotPool) -> None:
        while pool.waiters:
            waiter = pool.waiters.popleft()
            if not waiter.done():
                # active 는 그대로: 반납과 획득이 한 번에 일어남
                waiter.set_result(None)
                return
        if pool.active <= 0:
            raise RuntimeError("release() called without a matching acquire()")
        pool.active -= 1

    def pacing_delay(self, platform: object) -> float:
        pool = self._pool(platform)
        if pool is None:
            return 0.0
        low, high = pool.pacing_s
        if high <= 0:
            return 0.0
        return self._rng.uniform(low, high)

    @asynccontextmanager
    async def slot(self, platform: object) -> AsyncIterator[None]:
        """획득 → 작업 → 랜덤 지연 → 반납 (예외가 나도 정확히 한 번 반납)"""
        await self.acquire(platform)
        try:
            yield
        finally:
            try:
                delay = self.pacing_delay(platform)
                if delay > 0:
                    await self._sleep(delay)
            finally:
                self.release(platform)
