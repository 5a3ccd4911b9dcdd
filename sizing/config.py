"""
sizing/config.py - 중앙 설정 관리

코어 실행 설정(SizingConfig)과 프로바이더 설정(ProviderConfig)을 정의합니다.
설정 파일(YAML)과 환경 변수, CLI 옵션 순서로 덮어씁니다.

Usage:
    from sizing.config import SizingConfig, load_config_file

    sizing_config, provider_config = load_config_file("sizing.yaml")
    sizing_config = sizing_config.with_env()

설정 파일 예시:
    provider: aws
    profile: my-profile
    regions: [ap-northeast-2, us-east-1]
    resources: [ec2:instance, s3:bucket]
    concurrency_limit: 5
    max_pagination_pages: 10
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError

DEFAULT_CONCURRENCY_LIMIT = 5
MAX_CONCURRENCY_LIMIT = 100
DEFAULT_MAX_PAGINATION_PAGES = 10
DEFAULT_MAX_DIRECT_PAGES = 1000
DEFAULT_PAGE_SIZE = 100  # Tagging API ResourcesPerPage 최대값
DEFAULT_REGION = "us-east-1"

SUPPORTED_PROVIDERS = ("aws", "azure")

# 환경 변수 이름
ENV_CONCURRENCY = "CLOUD_SIZING_CONCURRENCY"
ENV_MAX_PAGES = "CLOUD_SIZING_MAX_PAGES"
ENV_TIMEOUT = "CLOUD_SIZING_TIMEOUT"


@dataclass(frozen=True)
class SizingConfig:
    """코어 실행 설정

    Attributes:
        concurrency_limit: 동시에 조회하는 리소스 타입 수 (1~100, 기본: 5)
        max_pagination_pages: Batched 조회 페이지 상한 (기본: 10)
        max_direct_pages: Direct 조회 스코프당 페이지 상한 (기본: 1000)
        page_size: 페이지당 요청 리소스 수 (기본: 100)
        timeout: 전체 실행 제한 시간 (초, None이면 무제한)
    """

    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    max_pagination_pages: int = DEFAULT_MAX_PAGINATION_PAGES
    max_direct_pages: int = DEFAULT_MAX_DIRECT_PAGES
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.concurrency_limit < 1:
            raise ConfigError("concurrency_limit", f"1 이상이어야 합니다: {self.concurrency_limit}")
        if self.concurrency_limit > MAX_CONCURRENCY_LIMIT:
            raise ConfigError(
                "concurrency_limit", f"{MAX_CONCURRENCY_LIMIT} 이하여야 합니다: {self.concurrency_limit}"
            )
        if self.max_pagination_pages < 1:
            raise ConfigError("max_pagination_pages", f"1 이상이어야 합니다: {self.max_pagination_pages}")
        if self.max_direct_pages < 1:
            raise ConfigError("max_direct_pages", f"1 이상이어야 합니다: {self.max_direct_pages}")
        if not 1 <= self.page_size <= 100:
            raise ConfigError("page_size", f"1~100 사이여야 합니다: {self.page_size}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout", f"0보다 커야 합니다: {self.timeout}")

    def with_env(self, environ: dict[str, str] | None = None) -> SizingConfig:
        """환경 변수 값으로 덮어쓴 새 설정 반환"""
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        if env.get(ENV_CONCURRENCY):
            overrides["concurrency_limit"] = _parse_int(ENV_CONCURRENCY, env[ENV_CONCURRENCY])
        if env.get(ENV_MAX_PAGES):
            overrides["max_pagination_pages"] = _parse_int(ENV_MAX_PAGES, env[ENV_MAX_PAGES])
        if env.get(ENV_TIMEOUT):
            overrides["timeout"] = _parse_float(ENV_TIMEOUT, env[ENV_TIMEOUT])
        return replace(self, **overrides) if overrides else self

    def merge(self, **overrides: Any) -> SizingConfig:
        """None이 아닌 값만 덮어쓴 새 설정 반환 (CLI 옵션용)"""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self


@dataclass
class ProviderConfig:
    """프로바이더 설정

    Attributes:
        provider: "aws" 또는 "azure"
        profile: AWS 프로파일 이름
        region: AWS 기본 리전 (STS/Organizations/EC2 호출용)
        regions: 스캔할 리전 (비어 있으면 활성화된 전체 리전)
        resources: 카운팅할 리소스 타입 키 (비어 있으면 전체 카탈로그)
        subscription_id: 특정 Azure 구독만 스캔
    """

    provider: str = ""
    profile: str | None = None
    region: str = DEFAULT_REGION
    regions: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    subscription_id: str | None = None

    def __post_init__(self) -> None:
        self.provider = (self.provider or "").strip().lower()
        if self.provider and self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigError("provider", f"지원하지 않는 프로바이더입니다: {self.provider}")


def _parse_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"정수가 아닙니다: {value!r}", cause=e) from e


def _parse_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"숫자가 아닙니다: {value!r}", cause=e) from e


def _as_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    raise ConfigError(key, f"목록이어야 합니다: {value!r}")


def parse_config(data: dict[str, Any]) -> tuple[SizingConfig, ProviderConfig]:
    """딕셔너리에서 (SizingConfig, ProviderConfig) 생성

    알 수 없는 키는 ConfigError로 거부합니다.
    """
    sizing_keys = {f.name for f in fields(SizingConfig)}
    provider_keys = {f.name for f in fields(ProviderConfig)}
    unknown = sorted(set(data) - sizing_keys - provider_keys)
    if unknown:
        raise ConfigError("config", f"알 수 없는 설정 키: {', '.join(unknown)}")

    sizing_values: dict[str, Any] = {}
    for key in ("concurrency_limit", "max_pagination_pages", "max_direct_pages", "page_size"):
        if data.get(key) is not None:
            sizing_values[key] = _parse_int(key, data[key])
    if data.get("timeout") is not None:
        sizing_values["timeout"] = _parse_float("timeout", data["timeout"])

    provider_config = ProviderConfig(
        provider=str(data.get("provider") or ""),
        profile=data.get("profile"),
        region=str(data.get("region") or DEFAULT_REGION),
        regions=_as_list("regions", data.get("regions")),
        resources=_as_list("resources", data.get("resources")),
        subscription_id=data.get("subscription_id"),
    )
    return SizingConfig(**sizing_values), provider_config


def load_config_file(path: str | Path) -> tuple[SizingConfig, ProviderConfig]:
    """YAML(또는 JSON) 설정 파일 로드

    Raises:
        ConfigError: 파일이 없거나 형식이 잘못된 경우
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError("config", f"설정 파일이 없습니다: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError("config", f"설정 파일 파싱 실패: {config_path}", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigError("config", f"최상위는 매핑이어야 합니다: {config_path}")

    return parse_config(data)
