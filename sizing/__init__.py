# sizing/__init__.py
"""
sizing - 클라우드 리소스 사이징 코어

리소스 타입 카탈로그를 스코프(AWS 리전 / Azure 구독) 전체에 대해 병렬로
카운팅하고, 하나의 SizingResult로 집계하는 최상위 패키지입니다.
백엔드 인증과 스코프 탐색은 providers 패키지가 담당합니다.

아키텍처:
    sizing/
    ├── parallel/       # 병렬 처리 (executor, limiter, cancel, 에러 수집)
    ├── catalog.py      # 리소스 타입 카탈로그
    ├── models.py       # 데이터 모델
    ├── counter.py      # 타입별 카운터 (Direct / Batched)
    ├── aggregator.py   # 결과 집계
    ├── orchestrator.py # Fan-Out 실행 (count_all)
    ├── config.py       # 중앙 설정 관리
    ├── log.py          # 주입 로거
    └── exceptions.py   # 통합 예외 계층

Usage:
    from sizing import count_all, list_resource_types

    result = count_all(
        list_resource_types("azure"),
        scopes=subscription_ids,
        query=provider.query_count,
        accounts=provider.accounts,
        provider="Azure",
    )
"""

from sizing import exceptions, parallel
from sizing.aggregator import ResultAggregator
from sizing.catalog import (
    AWS_RESOURCE_TYPES,
    AZURE_RESOURCE_TYPES,
    filter_resource_types,
    get_categories,
    list_resource_types,
)
from sizing.config import ProviderConfig, SizingConfig, load_config_file
from sizing.counter import ResourceCounter
from sizing.models import (
    AccountInfo,
    AccountRollup,
    QueryPage,
    QueryRow,
    QueryStrategy,
    ResourceCount,
    ResourceTypeDefinition,
    SizingResult,
)
from sizing.orchestrator import SizingOrchestrator, count_all

__version__ = "0.1.0"

__all__: list[str] = [
    # 서브패키지/모듈
    "parallel",
    "exceptions",
    # 실행
    "count_all",
    "SizingOrchestrator",
    "ResourceCounter",
    "ResultAggregator",
    # 카탈로그
    "AWS_RESOURCE_TYPES",
    "AZURE_RESOURCE_TYPES",
    "list_resource_types",
    "filter_resource_types",
    "get_categories",
    # 설정
    "SizingConfig",
    "ProviderConfig",
    "load_config_file",
    # 모델
    "AccountInfo",
    "AccountRollup",
    "QueryPage",
    "QueryRow",
    "QueryStrategy",
    "ResourceCount",
    "ResourceTypeDefinition",
    "SizingResult",
]
