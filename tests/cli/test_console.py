"""
tests/cli/test_console.py - 콘솔/로깅 설정 테스트
"""

import logging

from conftest import FakeBackend, direct_type
from rich.logging import RichHandler

from cli.console import LOGGER_NAME, NOISY_LOGGERS, get_logger, setup_logging
from sizing.log import NULL_LOGGER
from sizing.orchestrator import count_all


class TestSetupLogging:
    def test_level_by_verbose(self):
        assert setup_logging(verbose=True).level == logging.INFO
        assert setup_logging(verbose=False).level == logging.WARNING

    def test_single_rich_handler(self):
        setup_logging()
        logger = setup_logging()

        assert logger.name == LOGGER_NAME
        assert logger.propagate is False
        assert len([h for h in logger.handlers if isinstance(h, RichHandler)]) == 1

    def test_quiets_sdk_loggers(self):
        setup_logging(verbose=True)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestGetLogger:
    def test_child_of_cloud_sizing(self):
        logger = get_logger("aws")

        assert logger.name == "cloud_sizing.aws"
        assert logger.parent is logging.getLogger(LOGGER_NAME)


class TestNullLogger:
    """로거를 넘기지 않은 코어 컴포넌트는 CLI 로깅 설정과 무관하게 조용함"""

    def test_outside_cli_hierarchy(self):
        setup_logging(verbose=True)

        assert not NULL_LOGGER.name.startswith(LOGGER_NAME)
        assert NULL_LOGGER.isEnabledFor(logging.CRITICAL) is False

    def test_core_silent_after_verbose_setup(self, accounts, caplog):
        cli_logger = setup_logging(verbose=True)
        records = []
        handler = logging.Handler(level=logging.DEBUG)
        handler.emit = records.append
        cli_logger.addHandler(handler)
        backend = FakeBackend({("TypeA", "r1"): [RuntimeError("boom")]})

        try:
            with caplog.at_level(logging.DEBUG):
                count_all(
                    [direct_type("TypeA"), direct_type("TypeB")],
                    ["r1", "r2"],
                    backend.query,
                    accounts,
                    provider="Test",
                )
        finally:
            cli_logger.removeHandler(handler)

        assert records == []
        assert caplog.records == []
