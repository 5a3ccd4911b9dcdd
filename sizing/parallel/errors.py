"""
sizing/parallel/errors.py - 에러 수집 및 관리

병렬 카운팅 중 스코프 단위로 발생하는 에러를 일관되게 수집하고 관리합니다.
Best-effort 정책에서 건너뛴 스코프는 모두 여기에 기록되어
리포트의 partial 표시와 요약의 근거가 됩니다.

주요 구성 요소:
- ErrorSeverity: 에러 심각도 분류
- CollectedError: 수집된 에러 상세 정보
- categorize_error: 예외를 ErrorCategory로 분류
- ErrorCollector: 스레드 세이프 에러 수집기

Example:
    collector = ErrorCollector(logger=log)

    try:
        page = query(type_key, (region,), None)
    except Exception as e:
        collector.collect(e, type_key, region, "query_count")

    if collector.has_errors:
        log.warning(collector.get_summary())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from botocore.exceptions import (
    ConnectionError as BotocoreConnectionError,
)
from botocore.exceptions import (
    ConnectTimeoutError,
    ReadTimeoutError,
)

from sizing.exceptions import get_error_code, is_access_denied, is_not_found, is_throttling
from sizing.log import resolve_logger

from .types import ErrorCategory


class ErrorSeverity(Enum):
    """에러 심각도 분류"""

    CRITICAL = "critical"  # 타입 전체 실패
    WARNING = "warning"  # 스코프 단위 부분 실패 - 보고하되 계속 진행
    INFO = "info"  # 권한 없음 등
    DEBUG = "debug"


@dataclass
class CollectedError:
    """수집된 에러 상세 정보

    Attributes:
        type_key: 리소스 타입 키
        scope: 스코프 (리전/구독). 배치 조회 실패는 "*"
        operation: 작업 이름 (예: "query_count")
        error_code: 에러 코드
        error_message: 에러 메시지
        severity: 에러 심각도
        category: 에러 카테고리
        timestamp: 에러 발생 시각
    """

    type_key: str
    scope: str
    operation: str
    error_code: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.type_key} @ {self.scope} - {self.operation}: {self.error_code}"

    def to_dict(self) -> dict[str, str]:
        """딕셔너리로 변환 (로깅/직렬화용)"""
        return {
            "timestamp": self.timestamp.isoformat(),
            "type_key": self.type_key,
            "scope": self.scope,
            "operation": self.operation,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "severity": self.severity.value,
            "category": self.category.value,
        }


def categorize_error(error: BaseException) -> ErrorCategory:
    """예외 객체를 분석하여 ErrorCategory로 분류

    Args:
        error: 분류할 예외 (SizingError는 cause 기준으로 분류)

    Returns:
        에러 카테고리
    """
    cause = getattr(error, "cause", None)
    if isinstance(cause, BaseException):
        return categorize_error(cause)

    if is_throttling(error):
        return ErrorCategory.THROTTLING
    if is_access_denied(error):
        return ErrorCategory.ACCESS_DENIED
    if is_not_found(error):
        return ErrorCategory.NOT_FOUND

    error_code = get_error_code(error)
    if error_code in ("ExpiredToken", "ExpiredTokenException", "InvalidAuthenticationTokenTenant"):
        return ErrorCategory.EXPIRED_TOKEN

    if isinstance(error, (ConnectTimeoutError, ReadTimeoutError, TimeoutError)) or "Timeout" in error_code:
        return ErrorCategory.TIMEOUT

    if isinstance(error, (BotocoreConnectionError, ConnectionError, OSError)):
        return ErrorCategory.NETWORK

    return ErrorCategory.UNKNOWN


class ErrorCollector:
    """스레드 세이프 에러 수집기

    여러 워커 스레드에서 발생하는 스코프 단위 에러를 안전하게 수집하고
    심각도별로 분류하여 요약 보고를 제공합니다.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._log = resolve_logger(logger)
        self._errors: list[CollectedError] = []
        self._lock = threading.Lock()

    def collect(
        self,
        error: BaseException,
        type_key: str,
        scope: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
    ) -> CollectedError:
        """예외를 수집하고 로깅

        ACCESS_DENIED는 심각도를 INFO로 다운그레이드합니다.

        Args:
            error: 발생한 예외
            type_key: 리소스 타입 키
            scope: 스코프 (리전/구독, 배치는 "*")
            operation: 작업 이름
            severity: 에러 심각도 (기본: WARNING)

        Returns:
            수집된 CollectedError
        """
        category = categorize_error(error)
        if category == ErrorCategory.ACCESS_DENIED and severity == ErrorSeverity.WARNING:
            severity = ErrorSeverity.INFO

        cause = getattr(error, "cause", None) or error
        collected = CollectedError(
            type_key=type_key,
            scope=scope,
            operation=operation,
            error_code=get_error_code(error),
            error_message=str(cause),
            severity=severity,
            category=category,
        )

        with self._lock:
            self._errors.append(collected)

        log_msg = f"{collected} - {collected.error_message}"
        if severity == ErrorSeverity.CRITICAL:
            self._log.error(log_msg)
        elif severity == ErrorSeverity.WARNING:
            self._log.warning(log_msg)
        elif severity == ErrorSeverity.INFO:
            self._log.info(log_msg)
        else:
            self._log.debug(log_msg)

        return collected

    @property
    def errors(self) -> list[CollectedError]:
        """수집된 모든 에러의 복사본 반환"""
        with self._lock:
            return list(self._errors)

    @property
    def has_errors(self) -> bool:
        with self._lock:
            return len(self._errors) > 0

    def get_summary(self) -> str:
        """심각도별 에러 건수를 포함한 요약 문자열 반환

        Returns:
            포맷팅된 요약 문자열 (예: "에러 3건 (critical: 1건, warning: 2건)")
        """
        with self._lock:
            if not self._errors:
                return "에러 없음"

            by_severity: dict[str, int] = {}
            for e in self._errors:
                by_severity[e.severity.value] = by_severity.get(e.severity.value, 0) + 1

            parts = [f"{k}: {v}건" for k, v in sorted(by_severity.items())]
            return f"에러 {len(self._errors)}건 ({', '.join(parts)})"
