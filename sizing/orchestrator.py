"""
sizing/orchestrator.py - 리소스 타입 Fan-Out 실행

카탈로그의 리소스 타입마다 작업 하나를 만들어 제한된 동시성으로 실행하고,
완료된 결과를 ResultAggregator로 모아 SizingResult를 반환합니다.

실행 흐름:
    1. 입력 검증 (계정 없음 → NoAccountsAvailableError, 스코프 없음 → ValueError)
    2. 카탈로그 순서대로 작업 제출 (ConcurrencyLimiter가 동시 실행 수 제한)
    3. 모든 작업이 종료될 때까지 대기 (첫 실패에서 중단하지 않음, 재시도 없음)
    4. 성공 타입이 하나도 없으면 NoDataCollectedError
    5. 카탈로그 순서로 정렬된 SizingResult 생성

Example:
    from sizing import count_all, list_resource_types

    result = count_all(
        list_resource_types("aws"),
        scopes=("us-east-1", "ap-northeast-2"),
        query=provider.query_count,
        accounts=provider.accounts,
        provider="AWS",
        logger=logging.getLogger("cloud_sizing"),
    )
    print(result.total_resources)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from .aggregator import ResultAggregator
from .config import SizingConfig
from .counter import ResourceCounter
from .exceptions import NoAccountsAvailableError, NoDataCollectedError
from .log import resolve_logger
from .models import AccountInfo, QueryFunc, ResourceCount, ResourceTypeDefinition, Scope, SizingResult, dedupe_scopes
from .parallel import (
    BoundedExecutor,
    CancelToken,
    ConcurrencyLimiter,
    ErrorCategory,
    ErrorCollector,
    ParallelConfig,
    TaskResult,
)


class SizingOrchestrator:
    """리소스 타입 Fan-Out 오케스트레이터

    실행마다 새 ErrorCollector / ConcurrencyLimiter / ResultAggregator를 만듭니다.
    마지막 실행의 limiter와 에러 수집기는 `last_limiter`, `last_errors`로 확인할 수 있습니다.
    """

    def __init__(
        self,
        config: SizingConfig | None = None,
        logger: logging.Logger | None = None,
        cancel: CancelToken | None = None,
    ):
        self.config = config or SizingConfig()
        self._log = resolve_logger(logger)
        self._logger = logger
        self.cancel = cancel
        self.last_limiter: ConcurrencyLimiter | None = None
        self.last_errors: ErrorCollector | None = None

    def run(
        self,
        catalog: Sequence[ResourceTypeDefinition],
        scopes: Sequence[Scope],
        query: QueryFunc,
        accounts: Sequence[AccountInfo],
        provider: str,
    ) -> SizingResult:
        """카탈로그 전체 카운팅

        Args:
            catalog: 카운팅할 리소스 타입 (순서가 리포트 순서)
            scopes: 스코프 목록 (중복은 첫 등장 순서로 제거)
            query: 백엔드 조회 함수
            accounts: 계정/구독 목록
            provider: 프로바이더 표시 이름

        Returns:
            SizingResult

        Raises:
            NoAccountsAvailableError: accounts가 비어 있음
            ValueError: scopes가 비어 있음
            NoDataCollectedError: 성공한 리소스 타입이 없음
        """
        if not accounts:
            raise NoAccountsAvailableError(provider)

        scope_tuple = dedupe_scopes(scopes)
        if not scope_tuple:
            raise ValueError("scopes must not be empty")

        start_time = time.monotonic()
        cancel = CancelToken.with_timeout(self.config.timeout, parent=self.cancel)

        errors = ErrorCollector(self._logger)
        limiter = ConcurrencyLimiter(self.config.concurrency_limit)
        counter = ResourceCounter(self.config, errors=errors, cancel=cancel, logger=self._logger)
        aggregator = ResultAggregator(catalog, logger=self._logger)
        executor = BoundedExecutor(
            ParallelConfig(max_workers=self.config.concurrency_limit),
            limiter=limiter,
            cancel=cancel,
            logger=self._logger,
        )
        self.last_limiter = limiter
        self.last_errors = errors

        self._log.info(
            f"[{provider}] 카운팅 시작: {len(catalog)}개 타입, {len(scope_tuple)}개 스코프, "
            f"{len(accounts)}개 계정, concurrency={self.config.concurrency_limit}"
        )

        def on_result(result: TaskResult[ResourceCount]) -> None:
            if result.success and result.data is not None:
                aggregator.merge(result.data)
            elif result.error is not None and result.error.category is not ErrorCategory.CANCELLED:
                aggregator.record_failure(result.identifier)

        tasks = [
            (definition.type_key, _bind(counter, definition, scope_tuple, query))
            for definition in catalog
        ]
        exec_result = executor.execute(tasks, on_result=on_result)

        for failed in exec_result.failed:
            if failed.error is None or failed.error.category is ErrorCategory.CANCELLED:
                continue
            self._log.warning(f"[{provider}] 타입 제외: {failed.error}")

        if errors.has_errors:
            self._log.warning(f"[{provider}] {errors.get_summary()}")
            for collected in errors.errors:
                self._log.debug(f"[{provider}]   {collected}")

        duration_ms = (time.monotonic() - start_time) * 1000
        result = aggregator.build(
            provider,
            accounts,
            complete=not exec_result.cancelled,
            duration_ms=duration_ms,
        )

        if not result.resource_counts:
            raise NoDataCollectedError(provider, result.failed_types or [d.type_key for d in catalog])

        if not result.complete:
            self._log.warning(
                f"[{provider}] 실행이 취소되어 일부 타입만 집계됨 "
                f"({len(result.resource_counts)}/{len(catalog)}개)"
            )

        self._log.info(
            f"[{provider}] 카운팅 완료: 리소스 {result.total_resources}개, "
            f"타입 {len(result.resource_counts)}/{len(catalog)}개, peak={limiter.peak}, {duration_ms:.0f}ms"
        )
        return result


def _bind(
    counter: ResourceCounter,
    definition: ResourceTypeDefinition,
    scopes: tuple[Scope, ...],
    query: QueryFunc,
):
    return lambda: counter.count(definition, scopes, query)


def count_all(
    catalog: Sequence[ResourceTypeDefinition],
    scopes: Sequence[Scope],
    query: QueryFunc,
    accounts: Sequence[AccountInfo],
    *,
    provider: str,
    config: SizingConfig | None = None,
    logger: logging.Logger | None = None,
    cancel: CancelToken | None = None,
) -> SizingResult:
    """카탈로그 전체를 스코프에 대해 카운팅하고 SizingResult 반환

    SizingOrchestrator(config, logger, cancel).run(...)의 단축 함수입니다.
    """
    return SizingOrchestrator(config, logger=logger, cancel=cancel).run(
        catalog, scopes, query, accounts, provider
    )
