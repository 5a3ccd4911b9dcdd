"""
sizing/aggregator.py - 결과 집계기

워커 스레드가 완료한 ResourceCount를 단일 lock 아래에서 모으고,
모든 작업이 끝난 뒤 카탈로그 순서로 정렬된 SizingResult를 만듭니다.

- merge(): 완료된 카운트 추가 (단일 critical section)
- build(): 집계기를 닫고 합계를 처음부터 다시 계산 (점진 합산 없음)
  닫힌 뒤 도착한 merge는 무시됩니다 (취소 후 늦게 끝난 작업)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from datetime import datetime, timezone

from .log import resolve_logger
from .models import AccountInfo, AccountRollup, ResourceCount, ResourceTypeDefinition, SizingResult


class ResultAggregator:
    """SizingResult 빌더 (단일 writer 규칙)"""

    def __init__(
        self,
        catalog: Sequence[ResourceTypeDefinition],
        logger: logging.Logger | None = None,
    ):
        self._catalog = tuple(catalog)
        self._order = {d.type_key: i for i, d in enumerate(self._catalog)}
        self._log = resolve_logger(logger)
        self._lock = threading.Lock()
        self._counts: dict[str, ResourceCount] = {}
        self._failed: set[str] = set()
        self._closed = False

    def merge(self, count: ResourceCount) -> bool:
        """완료된 ResourceCount 추가

        Returns:
            반영되었으면 True (닫힌 뒤에는 False)

        Raises:
            ValueError: 카탈로그에 없는 타입이거나 이미 병합된 타입
        """
        if count.type_key not in self._order:
            raise ValueError(f"카탈로그에 없는 타입: {count.type_key}")

        with self._lock:
            if self._closed:
                self._log.debug(f"집계 종료 후 도착한 결과 무시: {count.type_key}")
                return False
            if count.type_key in self._counts:
                raise ValueError(f"이미 병합된 타입: {count.type_key}")
            self._counts[count.type_key] = count
            return True

    def record_failure(self, type_key: str) -> None:
        """카운팅 실패 타입 기록 (리포트에서 제외, failed_types에 표시)"""
        with self._lock:
            if not self._closed:
                self._failed.add(type_key)

    def build(
        self,
        provider: str,
        accounts: Sequence[AccountInfo],
        complete: bool = True,
        timestamp: datetime | None = None,
        duration_ms: float = 0.0,
    ) -> SizingResult:
        """집계기를 닫고 최종 SizingResult 생성

        Args:
            provider: 프로바이더 표시 이름 ("AWS", "Azure")
            accounts: 계정/구독 목록 (connect 시 탐색된 순서)
            complete: 모든 작업이 종료 상태에 도달했는지 여부
            timestamp: 리포트 시각 (None이면 현재 UTC)
            duration_ms: 실행 시간

        Returns:
            SizingResult
        """
        with self._lock:
            self._closed = True
            counts = sorted(self._counts.values(), key=lambda rc: self._order[rc.type_key])
            failed = set(self._failed)

        result = SizingResult(
            provider=provider,
            timestamp=timestamp or datetime.now(timezone.utc),
            resource_counts=counts,
            account_counts=list(accounts),
            complete=complete,
            duration_ms=duration_ms,
        )

        # 합계는 모든 작업 종료 후 처음부터 계산
        result.total_resources = sum(rc.total_count for rc in counts)
        result.total_accounts = len(result.account_counts)

        result.resources_by_region = self._by_region(counts)
        result.resources_by_category = self._by_category(counts)
        result.account_rollups = self._account_rollups(counts, result.account_counts)

        result.failed_types = [d.type_key for d in self._catalog if d.type_key in failed]
        result.partial_types = [rc.type_key for rc in counts if rc.is_partial]
        result.truncated_types = [rc.type_key for rc in counts if rc.truncated]

        return result

    @staticmethod
    def _by_region(counts: Sequence[ResourceCount]) -> dict[str, int]:
        totals: dict[str, int] = {}
        for rc in counts:
            for location, count in rc.by_location.items():
                totals[location] = totals.get(location, 0) + count
        return dict(sorted(totals.items()))

    def _by_category(self, counts: Sequence[ResourceCount]) -> dict[str, int]:
        totals: dict[str, int] = {}
        for definition in self._catalog:
            totals.setdefault(definition.category, 0)
        for rc in counts:
            totals[rc.category] = totals.get(rc.category, 0) + rc.total_count
        return {k: v for k, v in totals.items() if v > 0}

    @staticmethod
    def _account_rollups(
        counts: Sequence[ResourceCount],
        accounts: Sequence[AccountInfo],
    ) -> list[AccountRollup]:
        """계정/구독별 집계 (accounts 순서, 목록에 없는 계정은 ID 순으로 뒤에 추가)"""
        rollups: dict[str, AccountRollup] = {
            a.id: AccountRollup(id=a.id, name=a.name, status=a.status) for a in accounts
        }
        extra: dict[str, AccountRollup] = {}

        for rc in counts:
            for account_id, count in rc.by_account.items():
                rollup = rollups.get(account_id)
                if rollup is None:
                    rollup = extra.setdefault(account_id, AccountRollup(id=account_id, name=account_id))
                rollup.resource_count += count
                rollup.resources_by_type[rc.type_key] = rollup.resources_by_type.get(rc.type_key, 0) + count

        return list(rollups.values()) + [extra[k] for k in sorted(extra)]
