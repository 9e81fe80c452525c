"""
Tests for logging utilities.
"""

import logging
from collections.abc import Iterator

import pytest
import structlog

from dispatch_core.common.logging_utils import (
    EnvironmentTaggingFilter,
    LogFormat,
    configure_logging,
    get_logger,
)
from dispatch_core.config.app_config import LoggingConfig


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)
        structlog.reset_defaults()


class TestEnvironmentTaggingFilter:
    def test_tags_records_as_test_under_pytest(self) -> None:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        assert EnvironmentTaggingFilter().filter(record) is True
        assert record.env_tag == "test"


@pytest.mark.usefixtures("restore_root_logger")
class TestConfigureLogging:
    def test_json_format_uses_structlog_formatter(self) -> None:
        handler = configure_logging(LoggingConfig(level="debug", format=LogFormat.JSON))

        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
        assert logging.getLogger().level == logging.DEBUG
        assert handler in logging.getLogger().handlers

    def test_plain_format_uses_stdlib_formatter(self) -> None:
        handler = configure_logging(LoggingConfig(format=LogFormat.PLAIN))

        assert type(handler.formatter) is logging.Formatter
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(LoggingConfig(level="chatty"))

        assert logging.getLogger().level == logging.INFO

    def test_file_handler(self, tmp_path) -> None:
        target = tmp_path / "dispatch.log"

        handler = configure_logging(
            LoggingConfig(format=LogFormat.PLAIN, file=str(target))
        )
        logging.getLogger("dispatch_core.test").warning("written to file")
        handler.flush()

        assert isinstance(handler, logging.FileHandler)
        assert "written to file" in target.read_text(encoding="utf-8")


def test_get_logger_returns_structlog_logger() -> None:
    logger = get_logger("dispatch_core.test")

    assert hasattr(logger, "info")
    assert hasattr(logger, "bind")
