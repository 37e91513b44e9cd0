"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from rulebridge.config.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    package = logging.getLogger("rulebridge")
    package_level = package.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    package.setLevel(package_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("rulebridge").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("rulebridge").level == logging.WARNING

    def test_sqlalchemy_kept_quiet(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        log = structlog.get_logger("rulebridge.test")
        log.warning("json test", answer=42)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "json test"
        assert parsed["answer"] == 42
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "rulebridge.test"
        assert "timestamp" in parsed

    def test_stdlib_module_logger_gets_structured_fields(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("rulebridge.domain.reconcile").debug("Reconciled 2 rules")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Reconciled 2 rules"
        assert parsed["level"] == "debug"
        assert parsed["logger"] == "rulebridge.domain.reconcile"
