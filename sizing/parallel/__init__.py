"""
sizing/parallel - 병렬 처리 모듈

리소스 타입별 카운팅 작업을 제한된 동시성으로 안전하게 처리합니다.

주요 구성 요소:
- BoundedExecutor: ThreadPoolExecutor + ConcurrencyLimiter 기반 실행기
- ConcurrencyLimiter: 세마포어 기반 동시 실행 제한 (peak 기록)
- CancelToken: 취소/deadline 전파
- ErrorCollector: 스코프 단위 에러 수집

Example:
    from sizing.parallel import BoundedExecutor, ParallelConfig

    executor = BoundedExecutor(ParallelConfig(max_workers=5))
    result = executor.execute([(key, func) for key, func in jobs])

    print(f"성공: {result.success_count}, 실패: {result.error_count}")
    if result.error_count > 0:
        print(result.get_error_summary())
"""

from .cancel import CancelToken
from .errors import CollectedError, ErrorCollector, ErrorSeverity, categorize_error
from .executor import BoundedExecutor, ParallelConfig
from .limiter import DEFAULT_CONCURRENCY_LIMIT, ConcurrencyLimiter
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

__all__: list[str] = [
    # Executor
    "BoundedExecutor",
    "ParallelConfig",
    # Limiter / Cancel
    "ConcurrencyLimiter",
    "DEFAULT_CONCURRENCY_LIMIT",
    "CancelToken",
    # Error handling
    "ErrorCollector",
    "ErrorSeverity",
    "CollectedError",
    "categorize_error",
    # Types
    "ErrorCategory",
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]
