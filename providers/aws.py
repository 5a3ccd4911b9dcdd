"""
providers/aws.py - AWS 프로바이더

Resource Groups Tagging API로 리전별 리소스 수를 조회합니다.

연결 단계:
    1. boto3 Session 생성 (프로파일 또는 기본 credential chain)
    2. STS get_caller_identity로 자격 증명 확인
    3. Organizations 계정 탐색 (관리 계정이 아니면 현재 계정만 사용)
    4. EC2 describe_regions로 활성화된 리전 탐색 (설정된 리전과 교집합)
    5. 리전별 Tagging API client 생성 (병렬 카운팅 전에 모두 준비)

Usage:
    provider = AWSProvider(ProviderConfig(provider="aws", profile="prod"))
    provider.connect()
    result = provider.count_resources()
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sizing.config import ProviderConfig
from sizing.exceptions import NoAccountsAvailableError, ProviderError, is_access_denied
from sizing.models import AccountInfo, QueryPage, QueryRow, Scope

from .base import CloudProvider
from .client import get_client, get_regional_clients

# describe_regions 옵트인 필터 (활성화된 리전만)
OPTED_IN_STATUSES = ["opt-in-not-required", "opted-in"]

TAGGING_SERVICE = "resourcegroupstaggingapi"


def parse_arn_account(arn: str) -> str | None:
    """ARN에서 계정 ID 추출

    arn:partition:service:region:account-id:resource 형식이며,
    S3 버킷처럼 계정 필드가 비어 있으면 None을 반환합니다.
    """
    parts = arn.split(":", 5)
    if len(parts) < 6 or parts[0] != "arn":
        return None
    return parts[4] or None


class AWSProvider(CloudProvider):
    """AWS 프로바이더 (리전 단위 Direct 조회)"""

    name = "aws"
    display_name = "AWS"

    def __init__(self, config: ProviderConfig, logger: logging.Logger | None = None):
        super().__init__(config, logger)
        self.session: boto3.Session | None = None
        self.account_id: str = ""
        self.caller_arn: str = ""
        self.organization_id: str | None = None
        self._tagging_clients: dict[str, Any] = {}

    def connect(self) -> None:
        self._log.info("AWS 연결 중...")
        try:
            self.session = boto3.Session(profile_name=self.config.profile, region_name=self.config.region)
        except BotoCoreError as e:
            raise ProviderError(self.name, f"세션 생성 실패 (profile={self.config.profile})", cause=e) from e

        self._verify_credentials()
        self._accounts = self._discover_accounts()
        if not self._accounts:
            raise NoAccountsAvailableError(self.display_name)

        self._scopes = tuple(self._discover_regions())
        if not self._scopes:
            raise ProviderError(self.name, "스캔할 리전이 없습니다")

        self._tagging_clients = get_regional_clients(self.session, TAGGING_SERVICE, self._scopes)
        self._connected = True

        self._log.info(f"AWS 연결 완료: account={self.account_id}, 리전 {len(self._scopes)}개")
        if len(self._accounts) > 1:
            self._log.info(f"Organization 계정 {len(self._accounts)}개 발견")

    def _verify_credentials(self) -> None:
        sts = get_client(self.session, "sts")
        try:
            identity = sts.get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(self.name, "자격 증명 확인 실패", cause=e) from e

        self.account_id = identity["Account"]
        self.caller_arn = identity.get("Arn", "")
        self._log.debug(f"인증 주체: {self.caller_arn}")

    def _discover_accounts(self) -> list[AccountInfo]:
        """Organizations 계정 탐색 (실패해도 치명적이지 않음)"""
        current = AccountInfo(id=self.account_id, name="Current Account")
        org = get_client(self.session, "organizations")

        try:
            self.organization_id = org.describe_organization()["Organization"]["Id"]
        except (ClientError, BotoCoreError) as e:
            self._log.debug(f"Organization 미사용 또는 조회 불가, 단일 계정 사용: {e}")
            return [current]

        self._log.info(f"Organization ID: {self.organization_id}")

        accounts: list[AccountInfo] = []
        try:
            paginator = org.get_paginator("list_accounts")
            for page in paginator.paginate():
                for account in page.get("Accounts", []):
                    accounts.append(
                        AccountInfo(
                            id=account["Id"],
                            name=account.get("Name", ""),
                            status=account.get("Status", ""),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            if is_access_denied(e):
                self._log.warning("Organization 계정 목록 조회 권한 없음 (관리 계정 권한 필요), 현재 계정만 사용")
            else:
                self._log.warning(f"Organization 계정 목록 조회 실패, 현재 계정만 사용: {e}")
            accounts = []

        if not accounts:
            return [AccountInfo(id=self.account_id, name="Current Account (Organization Member)")]
        return accounts

    def _discover_regions(self) -> list[str]:
        """활성화된 리전 탐색 후 설정된 리전과 교집합"""
        ec2 = get_client(self.session, "ec2", region_name=self.config.region)
        try:
            response = ec2.describe_regions(
                AllRegions=False,
                Filters=[{"Name": "opt-in-status", "Values": OPTED_IN_STATUSES}],
            )
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(self.name, "리전 목록 조회 실패", cause=e) from e

        available = sorted(r["RegionName"] for r in response.get("Regions", []) if r.get("RegionName"))
        self._log.debug(f"활성화된 리전: {', '.join(available)}")

        if not self.config.regions:
            return available

        enabled = set(available)
        selected = [r for r in self.config.regions if r in enabled]
        skipped = [r for r in self.config.regions if r not in enabled]
        if skipped:
            self._log.warning(f"비활성화되었거나 존재하지 않는 리전 제외: {', '.join(skipped)}")
        return selected

    def query_count(self, type_key: str, scopes: tuple[Scope, ...], token: str | None) -> QueryPage:
        """리전 하나에서 리소스 타입 한 페이지 조회

        Tagging API는 호출 계정의 리소스만 반환하므로
        ARN에 계정 필드가 없으면 현재 계정으로 귀속합니다.
        """
        if len(scopes) != 1:
            raise ValueError(f"AWS 조회는 리전 하나씩만 가능합니다: {scopes}")
        region = scopes[0]

        client = self._tagging_clients.get(region)
        if client is None:
            raise ProviderError(self.name, f"리전 client 없음: {region}")

        response = client.get_resources(
            ResourceTypeFilters=[type_key],
            ResourcesPerPage=self.page_size,
            PaginationToken=token or "",
        )

        by_account: dict[str, int] = {}
        for mapping in response.get("ResourceTagMappingList", []):
            account_id = parse_arn_account(mapping.get("ResourceARN", "")) or self.account_id
            by_account[account_id] = by_account.get(account_id, 0) + 1

        rows = tuple(QueryRow(scope=region, account_id=a, count=c) for a, c in sorted(by_account.items()))
        return QueryPage(rows=rows, next_token=response.get("PaginationToken") or None)

    def close(self) -> None:
        super().close()
        self._tagging_clients = {}
