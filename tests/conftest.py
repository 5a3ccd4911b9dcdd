"""
tests/conftest.py - pytest 공통 픽스처

스크립트 기반 가짜 백엔드와 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(fake_backend):
        fake_backend.script[("typeA", "r1")] = make_pages([QueryRow("r1", "acc-1", 3)])
        page = fake_backend.query("typeA", ("r1",), None)
"""

import logging
import random
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from sizing.models import (  # noqa: E402
    AccountInfo,
    QueryPage,
    QueryRow,
    QueryStrategy,
    ResourceTypeDefinition,
)

# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """테스트 환경 설정 (실제 자격 증명/설정이 새지 않도록)"""
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    for name in (
        "AWS_PROFILE",
        "CLOUD_SIZING_CONCURRENCY",
        "CLOUD_SIZING_MAX_PAGES",
        "CLOUD_SIZING_TIMEOUT",
        "AZURE_SUBSCRIPTION_ID",
    ):
        monkeypatch.delenv(name, raising=False)

    yield


# =============================================================================
# 가짜 백엔드
# =============================================================================

# 배치 조회 스크립트 키
BATCH = "*"

ScriptEntry = Union[List[Union[QueryPage, Exception]], Callable[[Optional[str]], QueryPage]]


def make_pages(*rows_per_page: List[QueryRow]) -> List[QueryPage]:
    """페이지별 행 목록으로 토큰이 연결된 페이지 목록 생성

    토큰은 다음 페이지 인덱스 문자열입니다 ("1", "2", ...).
    """
    pages = []
    total = len(rows_per_page)
    for index, rows in enumerate(rows_per_page):
        next_token = str(index + 1) if index + 1 < total else None
        pages.append(QueryPage(rows=tuple(rows), next_token=next_token))
    return pages


class FakeBackend:
    """스크립트 기반 가짜 조회 백엔드

    script 키는 (type_key, scope)이며, 스코프가 하나인 조회(DIRECT)는 해당 스코프로,
    그 외(BATCHED)는 (type_key, "*")로 찾습니다. 값은 페이지 목록(토큰 = 인덱스)
    또는 token을 받아 QueryPage를 반환하는 함수입니다. 목록 항목이 예외면 raise합니다.
    스크립트에 없는 조회는 빈 페이지를 반환합니다.
    """

    def __init__(
        self,
        script: Optional[Dict[Tuple[str, str], ScriptEntry]] = None,
        delay: Union[float, Tuple[float, float], None] = None,
    ):
        self.script: Dict[Tuple[str, str], ScriptEntry] = dict(script or {})
        self.delay = delay
        self.calls: List[Tuple[str, Tuple[str, ...], Optional[str]]] = []
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def _entry(self, type_key: str, scopes: Tuple[str, ...]) -> Optional[ScriptEntry]:
        if len(scopes) == 1 and (type_key, scopes[0]) in self.script:
            return self.script[(type_key, scopes[0])]
        return self.script.get((type_key, BATCH))

    def _sleep(self) -> None:
        if self.delay is None:
            return
        if isinstance(self.delay, tuple):
            time.sleep(random.uniform(*self.delay))
        else:
            time.sleep(self.delay)

    def query(self, type_key: str, scopes: Tuple[str, ...], token: Optional[str]) -> QueryPage:
        with self._lock:
            self.calls.append((type_key, tuple(scopes), token))
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            self._sleep()
            entry = self._entry(type_key, tuple(scopes))
            if entry is None:
                return QueryPage()
            if callable(entry):
                return entry(token)
            item = entry[int(token) if token else 0]
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            with self._lock:
                self.in_flight -= 1

    def calls_for(self, type_key: str) -> List[Tuple[str, Tuple[str, ...], Optional[str]]]:
        with self._lock:
            return [c for c in self.calls if c[0] == type_key]


def endless_pages(rows: Optional[List[QueryRow]] = None) -> Callable[[Optional[str]], QueryPage]:
    """항상 다음 토큰을 반환하는 페이지 함수 (페이지 상한 테스트용)"""

    def page(token: Optional[str]) -> QueryPage:
        index = int(token) if token else 0
        return QueryPage(rows=tuple(rows or ()), next_token=str(index + 1))

    return page


@pytest.fixture
def fake_backend():
    return FakeBackend()


# =============================================================================
# 모델 픽스처
# =============================================================================


def direct_type(type_key: str, category: str = "Compute") -> ResourceTypeDefinition:
    return ResourceTypeDefinition(type_key, f"{type_key} display", category, QueryStrategy.DIRECT)


def batched_type(type_key: str, category: str = "Compute") -> ResourceTypeDefinition:
    return ResourceTypeDefinition(type_key, f"{type_key} display", category, QueryStrategy.BATCHED)


@pytest.fixture
def accounts():
    return [
        AccountInfo(id="acc-1", name="Production", status="ACTIVE"),
        AccountInfo(id="acc-2", name="Staging", status="ACTIVE"),
    ]


@pytest.fixture
def capture_logger():
    """레코드를 수집하는 로거 (propagate 없음)"""

    class _ListHandler(logging.Handler):
        def __init__(self):
            super().__init__(level=logging.DEBUG)
            self.records: List[logging.LogRecord] = []

        def emit(self, record: logging.LogRecord) -> None:
            self.records.append(record)

    logger = logging.getLogger(f"tests.capture.{id(object())}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = _ListHandler()
    logger.addHandler(handler)
    logger.records = handler.records  # type: ignore[attr-defined]

    yield logger

    logger.removeHandler(handler)


def messages(logger: Any, level: int = logging.WARNING) -> List[str]:
    """capture_logger에서 level 이상 메시지 목록"""
    return [r.getMessage() for r in logger.records if r.levelno >= level]
