"""
sizing/parallel/types.py - 병렬 실행 결과 타입

작업 단위(리소스 타입 하나)의 성공/실패 결과와
전체 실행 결과를 표현하는 데이터 클래스입니다.

주요 구성 요소:
- ErrorCategory: 에러 분류
- TaskError: 작업 실패 상세 정보
- TaskResult: 개별 작업 결과 (성공 데이터 또는 에러)
- ParallelExecutionResult: 전체 실행 결과 (Map-Reduce의 Reduce 입력)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCategory(Enum):
    """에러 분류"""

    THROTTLING = "throttling"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EXPIRED_TOKEN = "expired_token"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@dataclass
class TaskError:
    """작업 실패 상세 정보

    Attributes:
        identifier: 작업 식별자 (리소스 타입 키)
        category: 에러 카테고리
        error_code: 에러 코드 (예: "AccessDenied", "TypeCountError")
        message: 에러 메시지
        original_exception: 원본 예외 (traceback은 제거된 상태)
        timestamp: 발생 시각
    """

    identifier: str
    category: ErrorCategory
    error_code: str
    message: str
    original_exception: BaseException | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.identifier}] {self.error_code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "category": self.category.value,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TaskResult(Generic[T]):
    """개별 작업 결과

    Attributes:
        identifier: 작업 식별자 (리소스 타입 키)
        success: 성공 여부
        data: 성공 시 결과 데이터
        error: 실패 시 에러 정보
        duration_ms: 실행 시간 (밀리초, limiter 대기 제외)
    """

    identifier: str
    success: bool
    data: T | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0

    def __str__(self) -> str:
        status = "OK" if self.success else "FAIL"
        return f"[{self.identifier}] {status} ({self.duration_ms:.0f}ms)"


@dataclass(frozen=True)
class ParallelExecutionResult(Generic[T]):
    """병렬 실행 전체 결과

    Attributes:
        results: 종료 상태에 도달한 작업 결과 (완료 순서)
        cancelled: 취소/deadline으로 join이 중단되었는지 여부
        pending: join 중단 시 종료되지 않은 작업 식별자
    """

    results: tuple[TaskResult[T], ...] = ()
    cancelled: bool = False
    pending: tuple[str, ...] = ()

    @property
    def successful(self) -> list[TaskResult[T]]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[TaskResult[T]]:
        return [r for r in self.results if not r.success]

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_duration_ms(self) -> float:
        return sum(r.duration_ms for r in self.results)

    def has_any_success(self) -> bool:
        return self.success_count > 0

    def has_failures_only(self) -> bool:
        return self.total_count > 0 and self.success_count == 0

    def get_data(self) -> list[T]:
        """성공한 작업의 데이터 목록 (None 제외)"""
        return [r.data for r in self.results if r.success and r.data is not None]

    def get_errors(self) -> list[TaskError]:
        return [r.error for r in self.results if r.error is not None]

    def get_errors_by_category(self) -> dict[ErrorCategory, list[TaskError]]:
        """카테고리별 에러 그룹화"""
        grouped: dict[ErrorCategory, list[TaskError]] = {}
        for error in self.get_errors():
            grouped.setdefault(error.category, []).append(error)
        return grouped

    def get_error_summary(self) -> str:
        """에러 요약 문자열

        Returns:
            카테고리별 실패 작업 목록 (예: "총 2개 작업 실패\\n  [throttling] 1건: ec2:instance")
        """
        errors = self.get_errors()
        if not errors:
            return "실패한 작업 없음"

        lines = [f"총 {len(errors)}개 작업 실패"]
        for category, items in sorted(self.get_errors_by_category().items(), key=lambda kv: kv[0].value):
            identifiers = ", ".join(e.identifier for e in items)
            lines.append(f"  [{category.value}] {len(items)}건: {identifiers}")
        return "\n".join(lines)
