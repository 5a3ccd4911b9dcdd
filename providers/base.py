"""
providers/base.py - 클라우드 프로바이더 공통 인터페이스

각 프로바이더는 연결(인증 + 계정/스코프 탐색)과 조회 함수만 구현하고,
카운팅/집계는 sizing.count_all에 맡깁니다.

Usage:
    with get_provider("aws", provider_config, logger=log) as provider:
        provider.connect()
        result = provider.count_resources(sizing_config)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from sizing.catalog import filter_resource_types, list_resource_types
from sizing.config import ProviderConfig, SizingConfig
from sizing.exceptions import ProviderError
from sizing.models import AccountInfo, QueryPage, ResourceTypeDefinition, Scope, SizingResult
from sizing.orchestrator import count_all
from sizing.parallel import CancelToken


class CloudProvider(ABC):
    """클라우드 프로바이더 추상 클래스

    Attributes:
        name: 프로바이더 키 ("aws", "azure")
        display_name: 리포트 표시 이름 ("AWS", "Azure")
    """

    name: str = ""
    display_name: str = ""

    def __init__(self, config: ProviderConfig, logger: logging.Logger | None = None):
        self.config = config
        self._log = logger if logger is not None else logging.getLogger(type(self).__module__)
        self.page_size = SizingConfig().page_size
        self._connected = False
        self._scopes: tuple[Scope, ...] = ()
        self._accounts: list[AccountInfo] = []

    @abstractmethod
    def connect(self) -> None:
        """인증 및 계정/스코프 탐색

        Raises:
            ProviderError: 인증 또는 탐색 실패
        """

    @abstractmethod
    def query_count(self, type_key: str, scopes: tuple[Scope, ...], token: str | None) -> QueryPage:
        """리소스 타입 한 페이지 조회 (워커 스레드에서 동시 호출됨)"""

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def scopes(self) -> tuple[Scope, ...]:
        """스캔 대상 스코프 (connect 이후 유효)"""
        self._require_connected()
        return self._scopes

    @property
    def accounts(self) -> list[AccountInfo]:
        """계정/구독 목록 (connect 이후 유효)"""
        self._require_connected()
        return list(self._accounts)

    def resource_types(self) -> tuple[ResourceTypeDefinition, ...]:
        """카운팅할 리소스 타입 (config.resources로 필터링)"""
        return filter_resource_types(list_resource_types(self.name), self.config.resources)

    def count_resources(
        self,
        config: SizingConfig | None = None,
        cancel: CancelToken | None = None,
    ) -> SizingResult:
        """전체 리소스 카운팅

        Raises:
            NoAccountsAvailableError: 계정/구독 없음
            NoDataCollectedError: 성공한 타입 없음
        """
        self._require_connected()
        config = config or SizingConfig()
        self.page_size = config.page_size
        self._log.info(f"{self.display_name} 리소스 카운팅 시작")
        return count_all(
            self.resource_types(),
            self.scopes,
            self.query_count,
            self.accounts,
            provider=self.display_name,
            config=config,
            logger=self._log,
            cancel=cancel,
        )

    def close(self) -> None:
        """연결 종료 (SDK client는 별도 정리가 필요 없음)"""
        if self._connected:
            self._log.info(f"{self.display_name} 프로바이더 연결 종료")
        self._connected = False

    def _require_connected(self) -> None:
        if not self._connected:
            raise ProviderError(self.name, "connect()를 먼저 호출해야 합니다")

    def __enter__(self) -> CloudProvider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
