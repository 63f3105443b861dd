"""Engine Layer - 결과 형식, 동시성 제어, 재시도/점수화, 섀도우밴 판정

- ExtractionResult: 표준 결과 형식
- ConcurrencyGovernor: 플랫폼별 슬롯 + 반납 전 랜덤 지연
- RetryController: 최고 점수 결과를 돌려주는 재시도 루프
- ShadowbanMonitor: 조회수 0 게시물 재확인

ScrapeOrchestrator 는 crawlers 를 import 하므로 여기서 export 하지 않습니다
(sns_scraper.engine.orchestrator 또는 sns_scraper 패키지에서 import).
"""

from .governor import ConcurrencyGovernor, SlotPool
from .result import ExtractionResult, Platform
from .retry import AttemptRecord, RetryController, RetryOutcome, RetryPolicy
from .shadowban import ShadowbanMonitor, ShadowbanVerdict

__all__ = [
    "ExtractionResult",
    "Platform",
    "ConcurrencyGovernor",
    "SlotPool",
    "RetryController",
    "RetryPolicy",
    "RetryOutcome",
    "AttemptRecord",
    "ShadowbanMonitor",
    "ShadowbanVerdict",
]
