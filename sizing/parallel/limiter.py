"""
sizing/parallel/limiter.py - 동시 실행 제한기

카운팅 세마포어로 동시에 백엔드를 조회하는 작업 수를 제한합니다.
백엔드 rate limit에 대한 유일한 throttle이며,
in-flight 수와 최고치(peak)를 기록해 테스트/로그에서 확인할 수 있습니다.

Example:
    limiter = ConcurrencyLimiter(5)

    with limiter:
        count = counter.count(definition, scopes, query)

    print(limiter.peak)  # <= 5
"""

from __future__ import annotations

import threading

from sizing.config import DEFAULT_CONCURRENCY_LIMIT


class ConcurrencyLimiter:
    """세마포어 기반 동시 실행 제한기

    acquire-before-work, release-after-work 규칙으로 작업 하나당
    정확히 하나의 permit을 사용합니다.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY_LIMIT):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak = 0

    def acquire(self, timeout: float | None = None) -> bool:
        """permit 획득 (timeout 초과 시 False)"""
        if not self._semaphore.acquire(timeout=timeout):
            return False
        with self._lock:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)
        return True

    def release(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._semaphore.release()

    def __enter__(self) -> ConcurrencyLimiter:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    @property
    def in_flight(self) -> int:
        """현재 permit을 보유한 작업 수"""
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        """관측된 최대 동시 실행 수"""
        with self._lock:
            return self._peak
