"""
providers/azure.py - Azure 프로바이더

Azure Resource Graph로 모든 구독을 한 번에 조회합니다 (서버 측 집계 + skip_token).

인증 순서:
    1. Service Principal (AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET)
    2. Managed Identity (AZURE_USE_MANAGED_IDENTITY=true)
    3. Azure CLI (az login)
    4. DefaultAzureCredential

Usage:
    provider = AzureProvider(ProviderConfig(provider="azure", subscription_id="..."))
    provider.connect()
    result = provider.count_resources()
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from azure.core.exceptions import AzureError
from azure.identity import (
    AzureCliCredential,
    ClientSecretCredential,
    DefaultAzureCredential,
    ManagedIdentityCredential,
)
from azure.mgmt.resourcegraph import ResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions
from azure.mgmt.subscription import SubscriptionClient

from sizing.config import ProviderConfig
from sizing.exceptions import NoAccountsAvailableError, ProviderError
from sizing.models import AccountInfo, QueryPage, QueryRow, Scope

from .base import CloudProvider

# 스캔 대상 구독 상태
ACTIVE_SUBSCRIPTION_STATES = ("Enabled", "Warned")

COUNT_QUERY_TEMPLATE = """
Resources
| where type =~ "{type_key}"
| summarize count() by location, subscriptionId
| project location, subscriptionId, count = count_
"""


def build_count_query(type_key: str) -> str:
    """리소스 타입별 위치/구독 집계 KQL"""
    return COUNT_QUERY_TEMPLATE.format(type_key=type_key.replace('"', ""))


def _enum_value(value: Any) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value))


class AzureProvider(CloudProvider):
    """Azure 프로바이더 (구독 전체 Batched 조회)"""

    name = "azure"
    display_name = "Azure"

    def __init__(
        self,
        config: ProviderConfig,
        logger: logging.Logger | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        super().__init__(config, logger)
        self._env = os.environ if environ is None else environ
        self.credential: Any = None
        self.tenant_id: str = ""
        self._subscription_client: Any = None
        self._graph_client: Any = None

    def connect(self) -> None:
        self._log.info("Azure 연결 중...")
        self.credential = self._build_credential()

        try:
            self._subscription_client = SubscriptionClient(self.credential)
            self._graph_client = ResourceGraphClient(self.credential)
        except (AzureError, ValueError) as e:
            raise ProviderError(self.name, "Azure client 생성 실패", cause=e) from e

        self._verify_credentials()
        self._accounts = self._discover_subscriptions()
        if not self._accounts:
            raise NoAccountsAvailableError(self.display_name)

        self._scopes = tuple(a.id for a in self._accounts)
        self._connected = True

        self._log.info(f"Azure 연결 완료: tenant={self.tenant_id or '-'}, 구독 {len(self._accounts)}개")

    def _build_credential(self) -> Any:
        """환경에 맞는 credential 선택"""
        tenant_id = self._env.get("AZURE_TENANT_ID", "")
        client_id = self._env.get("AZURE_CLIENT_ID", "")
        client_secret = self._env.get("AZURE_CLIENT_SECRET", "")

        if tenant_id and client_id and client_secret:
            self._log.debug("Service Principal 인증 사용")
            try:
                credential = ClientSecretCredential(tenant_id, client_id, client_secret)
                self.tenant_id = tenant_id
                return credential
            except ValueError as e:
                self._log.debug(f"Service Principal 인증 실패: {e}")

        if self._env.get("AZURE_USE_MANAGED_IDENTITY", "").lower() == "true":
            self._log.debug("Managed Identity 인증 시도")
            try:
                return ManagedIdentityCredential()
            except ValueError as e:
                self._log.debug(f"Managed Identity 인증 실패: {e}")

        self._log.debug("Azure CLI 인증 시도")
        try:
            return AzureCliCredential()
        except ValueError as e:
            self._log.debug(f"Azure CLI 인증 실패: {e}")

        self._log.debug("DefaultAzureCredential 인증 시도")
        try:
            return DefaultAzureCredential()
        except ValueError as e:
            raise ProviderError(
                self.name,
                "Azure 인증 실패. Service Principal 환경 변수, 'az login', "
                "또는 AZURE_USE_MANAGED_IDENTITY=true 중 하나를 설정하세요",
                cause=e,
            ) from e

    def _verify_credentials(self) -> None:
        """테넌트 조회로 자격 증명 확인 (일부 credential은 실패할 수 있어 치명적이지 않음)"""
        try:
            for tenant in self._subscription_client.tenants.list():
                if tenant.tenant_id and not self.tenant_id:
                    self.tenant_id = tenant.tenant_id
                    self._log.debug(f"테넌트: {self.tenant_id}")
                    break
        except AzureError as e:
            self._log.debug(f"테넌트 목록 조회 불가 (무시): {e}")

    def _discover_subscriptions(self) -> list[AccountInfo]:
        """활성 구독 탐색 (특정 구독 지정 시 해당 구독만)"""
        wanted = self.config.subscription_id or self._env.get("AZURE_SUBSCRIPTION_ID") or None

        subscriptions: list[AccountInfo] = []
        try:
            for sub in self._subscription_client.subscriptions.list():
                if wanted and sub.subscription_id != wanted:
                    continue
                state = _enum_value(sub.state)
                if state not in ACTIVE_SUBSCRIPTION_STATES:
                    self._log.debug(f"비활성 구독 제외: {sub.subscription_id} ({state})")
                    continue
                subscriptions.append(
                    AccountInfo(id=sub.subscription_id or "", name=sub.display_name or "", status=state)
                )
                self._log.debug(f"구독 발견: {sub.subscription_id} ({sub.display_name}, {state})")
        except AzureError as e:
            raise ProviderError(self.name, "구독 목록 조회 실패", cause=e) from e

        if not subscriptions:
            raise ProviderError(self.name, "활성 Azure 구독이 없습니다")
        return subscriptions

    def query_count(self, type_key: str, scopes: tuple[Scope, ...], token: str | None) -> QueryPage:
        """Resource Graph 한 페이지 조회 (모든 구독 일괄)"""
        request = QueryRequest(
            subscriptions=list(scopes),
            query=build_count_query(type_key),
            options=QueryRequestOptions(result_format="objectArray", skip_token=token),
        )
        response = self._graph_client.resources(request)

        rows: list[QueryRow] = []
        for item in response.data or []:
            if not isinstance(item, Mapping):
                continue
            rows.append(
                QueryRow(
                    scope=item.get("location") or None,
                    account_id=item.get("subscriptionId") or None,
                    count=int(item.get("count") or 0),
                )
            )
        return QueryPage(rows=tuple(rows), next_token=response.skip_token or None)

    def close(self) -> None:
        super().close()
        for client in (self._graph_client, self._subscription_client):
            if client is not None:
                client.close()
        self._graph_client = None
        self._subscription_client = None
