"""
providers - 클라우드 프로바이더 구현

프로바이더는 시작 시 한 번 선택되며, 이후 코어는 조회 함수와
스코프/계정 목록만 사용합니다.

Usage:
    from providers import get_provider

    provider = get_provider("azure", provider_config, logger=log)
"""

from __future__ import annotations

import logging

from sizing.config import ProviderConfig
from sizing.exceptions import ProviderError

from .base import CloudProvider


def get_provider(
    name: str,
    provider_config: ProviderConfig | None = None,
    logger: logging.Logger | None = None,
) -> CloudProvider:
    """프로바이더 이름으로 구현체 생성

    SDK import 비용을 줄이기 위해 선택된 프로바이더 모듈만 import합니다.

    Raises:
        ProviderError: 지원하지 않는 프로바이더
    """
    key = (name or "").strip().lower()
    config = provider_config or ProviderConfig(provider=key if key in ("aws", "azure") else "")

    if key == "aws":
        from .aws import AWSProvider

        return AWSProvider(config, logger)
    if key == "azure":
        from .azure import AzureProvider

        return AzureProvider(config, logger)

    raise ProviderError(key or name, f"지원하지 않는 프로바이더입니다: {name}")


__all__: list[str] = ["CloudProvider", "get_provider"]
