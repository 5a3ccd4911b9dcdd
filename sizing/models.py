"""
sizing/models.py - 사이징 데이터 모델

리소스 타입 정의, 백엔드 조회 결과(QueryPage), 타입별 카운트(ResourceCount),
최종 리포트(SizingResult)를 정의합니다.

불변식:
    - ResourceCount.total_count == sum(by_location.values())  (location 축이 채워진 경우)
    - ResourceCount.total_count == sum(by_account.values())   (account 축이 채워진 경우)
    - SizingResult.total_resources == sum(rc.total_count for rc in resource_counts)
    - SizingResult.total_accounts == len(account_counts)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

Scope = str

# 위치 정보가 없는 행이 집계되는 location 키
UNKNOWN_LOCATION = "unknown"

COUNTING_POLICY = "best-effort"


class QueryStrategy(Enum):
    """조회 전략

    DIRECT: 스코프마다 한 번씩 조회 (AWS 리전별 Tagging API)
    BATCHED: 모든 스코프를 한 번에 조회, 서버 측 집계 + continuation token (Azure Resource Graph)
    """

    DIRECT = "direct"
    BATCHED = "batched"


@dataclass(frozen=True)
class ResourceTypeDefinition:
    """리소스 타입 정의 (카탈로그 항목)"""

    type_key: str
    display_name: str
    category: str
    query_strategy: QueryStrategy = QueryStrategy.DIRECT


@dataclass(frozen=True)
class AccountInfo:
    """계정/구독 정보

    connect 시점에 한 번 탐색되고 이후에는 읽기 전용입니다.
    """

    id: str
    name: str
    status: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "status": self.status}


@dataclass(frozen=True)
class QueryRow:
    """백엔드 조회 결과의 한 행

    Attributes:
        scope: 위치 (리전/location). None이면 조회한 스코프 또는 "unknown"으로 귀속
        account_id: 계정/구독 ID (None이면 account 축 미지원)
        count: 리소스 수
    """

    scope: str | None
    account_id: str | None
    count: int


@dataclass(frozen=True)
class QueryPage:
    """백엔드 조회 한 페이지"""

    rows: tuple[QueryRow, ...] = ()
    next_token: str | None = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_token)


# query(type_key, scopes, continuation_token) -> QueryPage
QueryFunc = Callable[[str, tuple[Scope, ...], str | None], QueryPage]


def dedupe_scopes(scopes: Iterable[Scope]) -> tuple[Scope, ...]:
    """첫 등장 순서를 유지하며 중복/빈 스코프 제거"""
    seen: set[str] = set()
    ordered: list[str] = []
    for scope in scopes:
        if scope and scope not in seen:
            seen.add(scope)
            ordered.append(scope)
    return tuple(ordered)


@dataclass
class ResourceCount:
    """리소스 타입 하나의 카운트 결과

    Attributes:
        type_key: 리소스 타입 키
        display_name: 표시 이름
        category: 카테고리
        total_count: 전체 개수
        by_location: 위치별 개수 (0은 저장하지 않음)
        by_account: 계정/구독별 개수 (0은 저장하지 않음)
        failed_scopes: best-effort 정책으로 건너뛴 스코프
        truncated: 페이지 상한에 도달해 잘렸는지 여부
        pages: 조회한 페이지 수
    """

    type_key: str
    display_name: str
    category: str = ""
    total_count: int = 0
    by_location: dict[str, int] = field(default_factory=dict)
    by_account: dict[str, int] = field(default_factory=dict)
    failed_scopes: list[str] = field(default_factory=list)
    truncated: bool = False
    pages: int = 0

    @classmethod
    def for_definition(cls, definition: ResourceTypeDefinition) -> ResourceCount:
        return cls(
            type_key=definition.type_key,
            display_name=definition.display_name,
            category=definition.category,
        )

    @property
    def is_partial(self) -> bool:
        """일부 스코프가 실패해 과소 집계되었을 수 있는지"""
        return bool(self.failed_scopes)

    def is_consistent(self) -> bool:
        """채워진 축의 합계가 total_count와 일치하는지 확인"""
        if self.total_count < 0:
            return False
        if self.by_location and sum(self.by_location.values()) != self.total_count:
            return False
        if self.by_account and sum(self.by_account.values()) != self.total_count:
            return False
        if self.total_count > 0 and not (self.by_location or self.by_account):
            return False
        return True

    def top_locations(self, limit: int = 3) -> list[tuple[str, int]]:
        """개수 내림차순, 이름 오름차순으로 상위 위치 반환"""
        return sorted(self.by_location.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_key,
            "display_name": self.display_name,
            "category": self.category,
            "total_resources": self.total_count,
            "by_location": dict(sorted(self.by_location.items())),
            "by_account": dict(sorted(self.by_account.items())),
            "failed_scopes": list(self.failed_scopes),
            "truncated": self.truncated,
        }


@dataclass
class AccountRollup:
    """계정/구독별 리소스 집계"""

    id: str
    name: str
    status: str = ""
    resource_count: int = 0
    resources_by_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "resource_count": self.resource_count,
            "resources_by_type": dict(self.resources_by_type),
        }


@dataclass
class SizingResult:
    """최종 사이징 리포트

    Aggregator가 실행 중 단독으로 소유하며, build 이후에는 읽기 전용입니다.
    resource_counts는 카탈로그 순서이고 실패한 타입은 0으로 채우지 않고 제외합니다.
    """

    provider: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resource_counts: list[ResourceCount] = field(default_factory=list)
    account_counts: list[AccountInfo] = field(default_factory=list)
    total_resources: int = 0
    total_accounts: int = 0

    # 파생 집계
    account_rollups: list[AccountRollup] = field(default_factory=list)
    resources_by_region: dict[str, int] = field(default_factory=dict)
    resources_by_category: dict[str, int] = field(default_factory=dict)

    # 실행 메타데이터
    complete: bool = True
    failed_types: list[str] = field(default_factory=list)
    partial_types: list[str] = field(default_factory=list)
    truncated_types: list[str] = field(default_factory=list)
    counting_policy: str = COUNTING_POLICY
    duration_ms: float = 0.0

    def get(self, type_key: str) -> ResourceCount | None:
        """타입 키로 ResourceCount 조회 (실패/제외된 타입은 None)"""
        for rc in self.resource_counts:
            if rc.type_key == type_key:
                return rc
        return None

    def is_consistent(self) -> bool:
        return (
            self.total_resources == sum(rc.total_count for rc in self.resource_counts)
            and self.total_accounts == len(self.account_counts)
            and all(rc.is_consistent() for rc in self.resource_counts)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "timestamp": self.timestamp.isoformat(),
            "total_resources": self.total_resources,
            "total_accounts": self.total_accounts,
            "resource_counts": [rc.to_dict() for rc in self.resource_counts],
            "account_counts": [a.to_dict() for a in self.account_counts],
            "accounts": [r.to_dict() for r in self.account_rollups],
            "resources_by_region": dict(sorted(self.resources_by_region.items())),
            "resources_by_category": dict(self.resources_by_category),
            "complete": self.complete,
            "counting_policy": self.counting_policy,
            "failed_types": list(self.failed_types),
            "partial_types": list(self.partial_types),
            "truncated_types": list(self.truncated_types),
        }
