"""
sizing/log.py - 주입 가능한 로거

코어 컴포넌트(orchestrator, counter, aggregator)는 전역 로거 대신
호출자가 넘겨준 logging.Logger를 사용합니다. 넘기지 않으면 아무것도
출력하지 않는 로거가 쓰입니다.

no-op 로거는 CLI 로거(`cloud_sizing`) 계층 밖에 두고 비활성화하므로
setup_logging() 호출 여부나 레벨과 무관하게 레코드를 만들지 않습니다.

Example:
    from sizing.log import resolve_logger

    class ResourceCounter:
        def __init__(self, logger: logging.Logger | None = None):
            self._log = resolve_logger(logger)
"""

from __future__ import annotations

import logging

NULL_LOGGER_NAME = "sizing_null"


def _build_null_logger() -> logging.Logger:
    null_logger = logging.getLogger(NULL_LOGGER_NAME)
    if not null_logger.handlers:
        null_logger.addHandler(logging.NullHandler())
    null_logger.setLevel(logging.CRITICAL + 1)
    null_logger.propagate = False
    null_logger.disabled = True
    return null_logger


NULL_LOGGER = _build_null_logger()


def resolve_logger(logger: logging.Logger | None) -> logging.Logger:
    """주입된 로거 반환 (None이면 no-op 로거)"""
    return logger if logger is not None else NULL_LOGGER
