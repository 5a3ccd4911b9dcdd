"""
sizing/parallel/cancel.py - 실행 취소 토큰

호출자가 넘긴 취소 신호/deadline을 워커 스레드와 join 대기에 전파합니다.
워커는 페이지 조회 전마다 `cancelled`를 확인하고,
executor는 join 폴링마다 `cancelled`를 확인하며 `remaining()`으로 폴링 간격을
deadline에 맞춥니다.

Example:
    cancel = CancelToken.with_timeout(120)
    result = count_all(..., cancel=cancel)

    # 다른 스레드에서
    cancel.cancel()
"""

from __future__ import annotations

import threading
import time


class CancelToken:
    """스레드 세이프 취소 토큰 (threading.Event + 선택적 monotonic deadline)"""

    def __init__(self, deadline: float | None = None, parent: CancelToken | None = None):
        """초기화

        Args:
            deadline: time.monotonic() 기준 마감 시각 (None이면 무제한)
            parent: 상위 토큰. 상위가 취소되면 이 토큰도 취소된 것으로 봄
        """
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def with_timeout(cls, seconds: float | None, parent: CancelToken | None = None) -> CancelToken:
        """지금부터 seconds 후 만료되는 토큰 생성 (None이면 무제한)"""
        if seconds is None:
            return cls(parent=parent)
        if seconds <= 0:
            raise ValueError(f"timeout must be > 0, got {seconds}")
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        if self._parent is not None and self._parent.cancelled:
            self._event.set()
            return True
        return False

    def remaining(self) -> float | None:
        """deadline까지 남은 시간 (초, deadline 없으면 None)"""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())
