"""
sizing/exceptions.py - 통합 예외 계층 구조

사이징 실행 전체에서 사용되는 예외 클래스들을 정의합니다.

예외 계층 구조:
    SizingError (베이스)
    ├── ScopeQueryError (단일 스코프/타입 조회 실패 - 로컬 복구)
    ├── TypeCountError (리소스 타입 전체 실패 - 리포트에서 제외)
    ├── CountCancelledError (실행 취소로 중단된 타입)
    ├── NoAccountsAvailableError (치명적)
    ├── NoDataCollectedError (치명적)
    ├── ProviderError (연결/인증/탐색 실패)
    └── ConfigError (설정 관련)

Usage:
    from sizing.exceptions import ScopeQueryError, TypeCountError

    try:
        page = query(type_key, (region,), None)
    except Exception as e:
        raise ScopeQueryError(type_key, region, cause=e) from e
"""

from typing import Any, Dict, List, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class SizingError(Exception):
    """사이징 에이전트 기본 예외 클래스

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 카운팅 관련 예외
# =============================================================================


class ScopeQueryError(SizingError):
    """단일 스코프(리전/구독)에서 한 리소스 타입 조회 실패

    Direct 전략에서는 해당 스코프만 건너뛰고 계속 진행합니다.
    """

    def __init__(
        self,
        type_key: str,
        scope: str,
        cause: Optional[Exception] = None,
    ):
        super().__init__(f"스코프 조회 실패 [{type_key} @ {scope}]", cause)
        self.type_key = type_key
        self.scope = scope
        self.details.update({"type_key": type_key, "scope": scope})


class TypeCountError(SizingError):
    """리소스 타입 카운팅 실패

    성공한 스코프가 하나도 없거나 배치 조회가 실패한 경우 발생합니다.
    해당 타입은 0으로 채우지 않고 리포트에서 제외됩니다.
    """

    def __init__(
        self,
        type_key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        super().__init__(f"타입 카운팅 실패 [{type_key}]: {message}", cause)
        self.type_key = type_key
        self.details["type_key"] = type_key


class CountCancelledError(SizingError):
    """실행 취소(또는 deadline 초과)로 카운팅이 중단된 경우"""

    def __init__(self, type_key: str):
        super().__init__(f"카운팅 취소됨 [{type_key}]")
        self.type_key = type_key
        self.details["type_key"] = type_key


class NoAccountsAvailableError(SizingError):
    """스캔할 계정/구독이 없는 경우 (치명적)"""

    def __init__(self, provider: str):
        super().__init__(f"[{provider}] 스캔할 계정/구독이 없습니다")
        self.provider = provider
        self.details["provider"] = provider


class NoDataCollectedError(SizingError):
    """성공한 리소스 타입이 하나도 없는 경우 (치명적)"""

    def __init__(self, provider: str, failed_types: Optional[List[str]] = None):
        failed_types = failed_types or []
        super().__init__(f"[{provider}] 수집된 데이터가 없습니다 (실패한 타입: {len(failed_types)}개)")
        self.provider = provider
        self.failed_types = failed_types
        self.details.update({"provider": provider, "failed_types": failed_types})


# =============================================================================
# 프로바이더/설정 관련 예외
# =============================================================================


class ProviderError(SizingError):
    """클라우드 프로바이더 연결/인증/탐색 실패"""

    def __init__(
        self,
        provider: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        super().__init__(f"프로바이더 오류 [{provider}]: {message}", cause)
        self.provider = provider
        self.details["provider"] = provider


class ConfigError(SizingError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        super().__init__(f"설정 오류 [{key}]: {message}", cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================

_ACCESS_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedAccess",
    "AuthorizationFailed",
    "Forbidden",
}

_THROTTLING_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
    "RateLimiting",
}

_NOT_FOUND_CODES = {
    "ResourceNotFoundException",
    "NotFoundException",
    "NoSuchEntity",
    "SubscriptionNotFound",
}


def get_error_code(error: BaseException) -> str:
    """예외 객체에서 에러 코드 문자열 추출

    botocore ClientError는 response에서, Azure HttpResponseError는
    error.code에서 추출합니다. 그 외에는 예외 클래스 이름을 반환합니다.
    """
    if isinstance(error, SizingError) and error.cause is not None:
        return get_error_code(error.cause)

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code = response.get("Error", {}).get("Code")
        if code:
            return str(code)

    azure_error = getattr(error, "error", None)
    code = getattr(azure_error, "code", None)
    if code:
        return str(code)

    return type(error).__name__


def is_access_denied(error: BaseException) -> bool:
    """액세스 거부 오류인지 확인"""
    if getattr(error, "status_code", None) == 403:
        return True
    return get_error_code(error) in _ACCESS_DENIED_CODES


def is_throttling(error: BaseException) -> bool:
    """스로틀링 오류인지 확인"""
    if getattr(error, "status_code", None) == 429:
        return True
    return get_error_code(error) in _THROTTLING_CODES


def is_not_found(error: BaseException) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인"""
    return get_error_code(error) in _NOT_FOUND_CODES


def format_error_for_user(error: Exception) -> str:
    """사용자에게 표시할 에러 메시지 포맷팅

    Args:
        error: 포맷팅할 예외

    Returns:
        사용자 친화적 메시지
    """
    if is_access_denied(error):
        return f"권한이 없습니다: {error}"
    if is_throttling(error):
        return f"API 요청 한도를 초과했습니다. 잠시 후 다시 시도하세요: {error}"
    if isinstance(error, SizingError):
        return str(error)
    return f"예기치 않은 오류: {error}"
