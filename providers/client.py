"""
providers/client.py - boto3 client 생성 헬퍼

Retry(adaptive 모드) + 타임아웃 + 연결 풀이 설정된 boto3 client를 생성합니다.
코어는 실패한 조회를 재시도하지 않으므로 throttling 재시도는 SDK 레벨에서만 일어납니다.

Example:
    from providers.client import get_client, get_regional_clients

    sts = get_client(session, "sts")
    tagging = get_regional_clients(session, "resourcegroupstaggingapi", ["us-east-1", "eu-west-1"])
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Literal, cast

from botocore.config import Config

if TYPE_CHECKING:
    import boto3

# Retry mode 타입 (botocore TypedDict와 호환)
RetryMode = Literal["legacy", "standard", "adaptive"]

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_MODE: RetryMode = "adaptive"
DEFAULT_CONNECT_TIMEOUT = 10  # 초
DEFAULT_READ_TIMEOUT = 30  # 초
DEFAULT_MAX_POOL_CONNECTIONS = 10  # 동시 카운팅 작업 수(기본 5) 이상


def build_config(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: int = DEFAULT_READ_TIMEOUT,
    max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
) -> Config:
    """retry/timeout이 설정된 botocore Config 생성"""
    return Config(
        retries={"max_attempts": max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=max_pool_connections,
    )


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    config: Config | None = None,
) -> Any:
    """Retry가 적용된 boto3 client 생성

    Args:
        session: boto3 Session
        service_name: AWS 서비스 이름 (sts, organizations, ec2 등)
        region_name: 리전 (None이면 세션 기본값)
        config: 추가 botocore Config (기본 retry 설정에 병합)

    Returns:
        boto3 client
    """
    client_config = build_config()
    if config is not None:
        client_config = client_config.merge(config)

    return session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name,
        config=client_config,
    )


def get_regional_clients(
    session: boto3.Session,
    service_name: str,
    regions: Iterable[str],
    config: Config | None = None,
) -> dict[str, Any]:
    """리전별 client 맵 생성

    병렬 카운팅 시작 전에 모두 만들어 두고, 이후에는 읽기만 합니다.
    """
    return {region: get_client(session, service_name, region_name=region, config=config) for region in regions}
