"""
sizing/parallel/executor.py - 동시 실행 제한 병렬 실행기

Map-Reduce 패턴으로 독립된 작업(리소스 타입별 카운팅)을 병렬 처리합니다.
ThreadPoolExecutor 기반이며, ConcurrencyLimiter로 동시 실행 수를 제한하고
CancelToken으로 취소/deadline을 전파합니다.

주요 구성 요소:
- ParallelConfig: 병렬 실행 설정 (워커 수, join 폴링 간격)
- BoundedExecutor: 제한된 동시성 병렬 실행기

특징:
- 첫 실패에서 중단하지 않음 (모든 작업이 종료 상태에 도달할 때까지 대기)
- 작업 예외는 TaskResult(success=False)로 변환 (재시도 없음)
- 취소 시 대기 중 작업은 취소, 실행 중 작업은 다음 페이지 전에 중단

Example:
    executor = BoundedExecutor(ParallelConfig(max_workers=5), cancel=cancel)
    result = executor.execute([("ec2:instance", lambda: count_ec2())])

    for r in result.failed:
        print(r.error)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Generic, TypeVar

from sizing.config import DEFAULT_CONCURRENCY_LIMIT, MAX_CONCURRENCY_LIMIT
from sizing.exceptions import CountCancelledError, get_error_code
from sizing.log import resolve_logger

from .cancel import CancelToken
from .errors import categorize_error
from .limiter import ConcurrencyLimiter
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

T = TypeVar("T")

# limiter 대기 중 취소 확인 주기 (초)
_ACQUIRE_POLL_SECONDS = 0.05


def _clear_exception_chain(e: BaseException) -> None:
    """traceback + chained exception 메모리 누수 방지"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


def _is_cancelled(result: TaskResult) -> bool:
    return result.error is not None and result.error.category is ErrorCategory.CANCELLED


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 작업 수 (1~100, limiter permit 수와 동일)
        poll_interval: join 대기 중 취소 확인 주기 (초)
    """

    max_workers: int = DEFAULT_CONCURRENCY_LIMIT
    poll_interval: float = 0.1

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > MAX_CONCURRENCY_LIMIT:
            self.max_workers = MAX_CONCURRENCY_LIMIT
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")


@dataclass
class _TaskSpec(Generic[T]):
    """내부 작업 명세

    Attributes:
        identifier: 작업 식별자 (리소스 타입 키)
        func: 인자 없는 작업 함수
    """

    identifier: str
    func: Callable[[], T]


class BoundedExecutor:
    """제한된 동시성 병렬 실행기

    Example:
        limiter = ConcurrencyLimiter(5)
        executor = BoundedExecutor(ParallelConfig(max_workers=5), limiter=limiter)
        result = executor.execute(tasks, on_result=aggregator_callback)

        print(f"성공: {result.success_count}, 실패: {result.error_count}, peak: {limiter.peak}")
    """

    def __init__(
        self,
        config: ParallelConfig | None = None,
        limiter: ConcurrencyLimiter | None = None,
        cancel: CancelToken | None = None,
        logger: logging.Logger | None = None,
    ):
        """초기화

        Args:
            config: 병렬 실행 설정 (None이면 기본값)
            limiter: 동시 실행 제한기 (None이면 max_workers 크기로 생성)
            cancel: 취소 토큰 (None이면 취소 없음)
            logger: 주입 로거 (None이면 no-op)
        """
        self.config = config or ParallelConfig()
        self.limiter = limiter or ConcurrencyLimiter(self.config.max_workers)
        self.cancel = cancel or CancelToken()
        self._log = resolve_logger(logger)

    def execute(
        self,
        tasks: Sequence[tuple[str, Callable[[], T]]],
        on_result: Callable[[TaskResult[T]], None] | None = None,
    ) -> ParallelExecutionResult[T]:
        """작업 목록을 병렬 실행하고 모든 작업이 종료될 때까지 대기

        Args:
            tasks: (identifier, func) 목록. 제출 순서는 목록 순서
            on_result: 작업이 종료 상태에 도달할 때 워커 스레드에서 호출되는 콜백

        Returns:
            ParallelExecutionResult[T]: 종료된 작업 결과 (취소 시 cancelled=True)
        """
        specs = [_TaskSpec(identifier=identifier, func=func) for identifier, func in tasks]

        if not specs:
            self._log.warning("실행할 작업이 없습니다")
            return ParallelExecutionResult()

        self._log.info(f"병렬 실행 시작: {len(specs)}개 작업, max_workers={self.config.max_workers}")

        results: list[TaskResult[T]] = []
        start_time = time.monotonic()
        cancelled = False

        pool = ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="sizing")
        futures: dict[Future[TaskResult[T]], _TaskSpec[T]] = {}
        try:
            for spec in specs:
                futures[pool.submit(self._execute_single, spec, on_result)] = spec

            pending = set(futures)
            while pending:
                if self.cancel.cancelled:
                    cancelled = True
                    break
                done, pending = wait(pending, timeout=self._poll_timeout(), return_when=FIRST_COMPLETED)
                for future in done:
                    results.append(self._collect(future, futures[future]))
        except BaseException:
            # KeyboardInterrupt 등: 실행 중 작업은 다음 페이지 전에 중단
            self.cancel.cancel()
            cancelled = True
            raise
        finally:
            # 취소 시 대기 중 작업은 실행하지 않고, 실행 중 작업은 기다리지 않음
            pool.shutdown(wait=not cancelled, cancel_futures=cancelled)

        # 마지막 작업이 취소로 끝나면 루프는 취소를 보지 못하고 정상 종료됨
        if not cancelled and any(_is_cancelled(r) for r in results):
            cancelled = True

        finished = {r.identifier for r in results}
        pending_ids = tuple(spec.identifier for spec in specs if spec.identifier not in finished)
        if cancelled:
            self._log.warning(f"병렬 실행 취소: {len(results)}개 종료, {len(pending_ids)}개 미완료")

        total_time = (time.monotonic() - start_time) * 1000
        exec_result = ParallelExecutionResult(results=tuple(results), cancelled=cancelled, pending=pending_ids)

        self._log.info(
            f"병렬 실행 완료: 성공 {exec_result.success_count}, 실패 {exec_result.error_count}, "
            f"peak {self.limiter.peak}, 총 {total_time:.0f}ms"
        )
        return exec_result

    def _poll_timeout(self) -> float:
        """join 폴링 간격 (deadline이 더 가까우면 deadline까지)"""
        remaining = self.cancel.remaining()
        if remaining is None:
            return self.config.poll_interval
        return max(0.0, min(self.config.poll_interval, remaining))

    def _collect(self, future: Future[TaskResult[T]], spec: _TaskSpec[T]) -> TaskResult[T]:
        """종료된 future에서 결과 추출 (예상치 못한 executor 에러 포함)"""
        try:
            return future.result()
        except Exception as e:
            self._log.error(f"작업 실행 중 예외 [{spec.identifier}]: {e}")
            _clear_exception_chain(e)
            return TaskResult(
                identifier=spec.identifier,
                success=False,
                error=TaskError(
                    identifier=spec.identifier,
                    category=ErrorCategory.UNKNOWN,
                    error_code="ExecutorError",
                    message=str(e),
                    original_exception=e,
                ),
            )

    def _acquire(self) -> bool:
        """취소를 확인하면서 limiter permit 획득"""
        while not self.limiter.acquire(timeout=_ACQUIRE_POLL_SECONDS):
            if self.cancel.cancelled:
                return False
        if self.cancel.cancelled:
            self.limiter.release()
            return False
        return True

    def _execute_single(
        self,
        spec: _TaskSpec[T],
        on_result: Callable[[TaskResult[T]], None] | None,
    ) -> TaskResult[T]:
        """단일 작업 실행 (워커 스레드 내에서 호출)

        permit 획득 → 작업 실행 → permit 반환 순서를 지키며,
        예외는 TaskResult(success=False)로 변환합니다.
        """
        if not self._acquire():
            result: TaskResult[T] = self._failure(spec, CountCancelledError(spec.identifier), 0.0)
        else:
            start_time = time.monotonic()
            try:
                data = spec.func()
                result = TaskResult(
                    identifier=spec.identifier,
                    success=True,
                    data=data,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )
            except Exception as e:
                result = self._failure(spec, e, (time.monotonic() - start_time) * 1000)
            finally:
                self.limiter.release()

        if on_result is not None:
            on_result(result)
        return result

    def _failure(self, spec: _TaskSpec[T], error: Exception, duration_ms: float) -> TaskResult[T]:
        if isinstance(error, CountCancelledError):
            category = ErrorCategory.CANCELLED
        else:
            category = categorize_error(error)
        _clear_exception_chain(error)
        return TaskResult(
            identifier=spec.identifier,
            success=False,
            error=TaskError(
                identifier=spec.identifier,
                category=category,
                error_code=get_error_code(error),
                message=str(error),
                original_exception=error,
            ),
            duration_ms=duration_ms,
        )
