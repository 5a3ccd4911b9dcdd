"""
sizing/counter.py - 리소스 타입별 카운터

리소스 타입 하나를 주어진 스코프 전체에 대해 카운팅합니다.

조회 전략:
- DIRECT: 스코프(리전)마다 조회. 실패한 스코프는 건너뛰고 기록 (best-effort)
- BATCHED: 모든 스코프(구독)를 한 번에 조회하고 continuation token으로 페이지 순회.
  페이지 상한(max_pagination_pages)에 도달하면 경고와 함께 잘라냄

집계 규칙:
- by_location / by_account는 0을 저장하지 않는 희소 맵
- 위치가 없는 행은 "unknown" 위치로 집계
- 계정 ID가 없는 행이 하나라도 있으면 해당 타입의 account 축은 비움
  (total_count와 모순되는 축을 만들지 않기 위함)

Example:
    counter = ResourceCounter(SizingConfig(), errors=ErrorCollector(log), logger=log)
    count = counter.count(definition, ("us-east-1", "eu-west-1"), provider.query_count)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from .config import SizingConfig
from .exceptions import CountCancelledError, ScopeQueryError, TypeCountError
from .log import resolve_logger
from .models import (
    UNKNOWN_LOCATION,
    QueryFunc,
    QueryPage,
    QueryStrategy,
    ResourceCount,
    ResourceTypeDefinition,
    Scope,
)
from .parallel.cancel import CancelToken
from .parallel.errors import ErrorCollector, ErrorSeverity

# 배치 조회 실패 시 에러 수집기에 기록되는 스코프 표기
BATCH_SCOPE = "*"


class _Tally:
    """위치/계정 축 누적기"""

    def __init__(self) -> None:
        self.total = 0
        self.by_location: dict[str, int] = {}
        self.by_account: dict[str, int] = {}
        self.account_axis = True

    def add(self, location: str, account_id: str | None, count: int) -> None:
        if count < 0:
            raise ValueError(f"음수 카운트: {location}={count}")
        if count == 0:
            return
        self.total += count
        self.by_location[location] = self.by_location.get(location, 0) + count
        if account_id:
            self.by_account[account_id] = self.by_account.get(account_id, 0) + count
        else:
            self.account_axis = False

    def merge(self, other: _Tally) -> None:
        self.total += other.total
        for location, count in other.by_location.items():
            self.by_location[location] = self.by_location.get(location, 0) + count
        for account_id, count in other.by_account.items():
            self.by_account[account_id] = self.by_account.get(account_id, 0) + count
        self.account_axis = self.account_axis and other.account_axis

    def apply(self, result: ResourceCount) -> None:
        result.total_count = self.total
        result.by_location = dict(sorted(self.by_location.items()))
        result.by_account = dict(sorted(self.by_account.items())) if self.account_axis else {}


class ResourceCounter:
    """리소스 타입 카운터

    스레드 간 공유 가능한 상태는 에러 수집기(내부 lock)뿐이며,
    count() 호출마다 별도의 ResourceCount를 만들어 반환합니다.
    """

    def __init__(
        self,
        config: SizingConfig | None = None,
        errors: ErrorCollector | None = None,
        cancel: CancelToken | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config or SizingConfig()
        self._log = resolve_logger(logger)
        self.errors = errors or ErrorCollector(logger)
        self.cancel = cancel or CancelToken()

    def count(
        self,
        definition: ResourceTypeDefinition,
        scopes: Sequence[Scope],
        query: QueryFunc,
    ) -> ResourceCount:
        """리소스 타입 하나를 카운팅

        Args:
            definition: 리소스 타입 정의
            scopes: 조회할 스코프 (리전 또는 구독 ID)
            query: 백엔드 조회 함수 (type_key, scopes, token) -> QueryPage

        Returns:
            ResourceCount

        Raises:
            TypeCountError: 성공한 스코프가 없거나 배치 조회 실패
            CountCancelledError: 실행이 취소됨
        """
        scope_tuple = tuple(scopes)
        if not scope_tuple:
            raise ValueError("scopes must not be empty")

        if definition.query_strategy is QueryStrategy.DIRECT:
            result = self._count_direct(definition, scope_tuple, query)
        else:
            result = self._count_batched(definition, scope_tuple, query)

        self._log.debug(
            f"카운팅 완료: {definition.type_key} total={result.total_count}, "
            f"locations={len(result.by_location)}, pages={result.pages}"
        )
        return result

    def _count_direct(
        self,
        definition: ResourceTypeDefinition,
        scopes: tuple[Scope, ...],
        query: QueryFunc,
    ) -> ResourceCount:
        """스코프별 조회 (best-effort: 실패한 스코프만 제외)"""
        result = ResourceCount.for_definition(definition)
        tally = _Tally()
        last_error: ScopeQueryError | None = None

        for scope in scopes:
            scope_tally = _Tally()
            try:
                for page in self._paginate(definition, (scope,), query, self.config.max_direct_pages, result):
                    for row in page.rows:
                        scope_tally.add(scope, row.account_id, row.count)
            except CountCancelledError:
                raise
            except Exception as e:
                last_error = ScopeQueryError(definition.type_key, scope, cause=e)
                self.errors.collect(last_error, definition.type_key, scope, "query_count")
                result.failed_scopes.append(scope)
                continue

            tally.merge(scope_tally)

        if len(result.failed_scopes) == len(scopes):
            raise TypeCountError(
                definition.type_key,
                f"모든 스코프 조회 실패 ({len(scopes)}개)",
                cause=last_error,
            )

        if result.failed_scopes:
            self._log.warning(
                f"{definition.type_key}: {len(result.failed_scopes)}/{len(scopes)}개 스코프 제외 후 집계 "
                f"(best-effort, 과소 집계 가능)"
            )

        tally.apply(result)
        return result

    def _count_batched(
        self,
        definition: ResourceTypeDefinition,
        scopes: tuple[Scope, ...],
        query: QueryFunc,
    ) -> ResourceCount:
        """전체 스코프 일괄 조회 (실패 시 타입 전체 제외)"""
        result = ResourceCount.for_definition(definition)
        tally = _Tally()

        try:
            for page in self._paginate(definition, scopes, query, self.config.max_pagination_pages, result):
                for row in page.rows:
                    tally.add(row.scope or UNKNOWN_LOCATION, row.account_id, row.count)
        except CountCancelledError:
            raise
        except Exception as e:
            scope_error = ScopeQueryError(definition.type_key, BATCH_SCOPE, cause=e)
            self.errors.collect(scope_error, definition.type_key, BATCH_SCOPE, "query_count", ErrorSeverity.CRITICAL)
            raise TypeCountError(
                definition.type_key,
                f"배치 조회 실패 (page {result.pages + 1})",
                cause=scope_error,
            ) from e

        if not tally.account_axis:
            self._log.debug(f"{definition.type_key}: 계정 ID 없는 행이 있어 account 축 생략")

        tally.apply(result)
        return result

    def _paginate(
        self,
        definition: ResourceTypeDefinition,
        scopes: tuple[Scope, ...],
        query: QueryFunc,
        max_pages: int,
        result: ResourceCount,
    ) -> Iterator[QueryPage]:
        """continuation token이 빌 때까지 페이지 순회

        max_pages에 도달하면 경고 후 중단하고 result.truncated를 설정합니다.
        같은 토큰이 반복되면 경고만 남기고 페이지 상한에서 멈춥니다.
        """
        token: str | None = None
        pages = 0
        stale_warned = False

        while True:
            self._check_cancel(definition)

            page = query(definition.type_key, scopes, token)
            pages += 1
            result.pages += 1
            yield page

            if not page.has_more:
                return

            if page.next_token == token and not stale_warned:
                self._log.warning(f"{definition.type_key}: continuation token이 진행하지 않음 (page {pages})")
                stale_warned = True

            if pages >= max_pages:
                self._log.warning(
                    f"{definition.type_key}: 최대 페이지({max_pages}) 도달, 이후 결과 생략 (scopes={len(scopes)})"
                )
                result.truncated = True
                return

            token = page.next_token
            self._log.debug(f"다음 페이지 조회: {definition.type_key} page {pages + 1}")

    def _check_cancel(self, definition: ResourceTypeDefinition) -> None:
        if self.cancel.cancelled:
            raise CountCancelledError(definition.type_key)
