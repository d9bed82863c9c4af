"""
Tests for structured logging configuration.

Validates:
  1. configure_logging() is idempotent (safe to call twice)
  2. The renderer can be switched to JSON on a later call
  3. stdlib loggers also route through the structlog pipeline
  4. Bound context (channel_id) flows through log calls
  5. Third-party loggers are suppressed
"""

from __future__ import annotations

import json
import logging

import structlog

from wisemonk.core.logging import _structlog_handler, configure_logging


class TestConfigureLogging:
    """configure_logging() sets up structlog + stdlib correctly."""

    def setup_method(self) -> None:
        """Reset logging state between tests."""
        root = logging.getLogger()
        root.handlers.clear()
        structlog.reset_defaults()

    def test_idempotent_double_call(self) -> None:
        """Calling configure_logging() twice doesn't duplicate handlers."""
        configure_logging(level="DEBUG")
        handler_count_1 = len(logging.getLogger().handlers)

        configure_logging(level="DEBUG")
        handler_count_2 = len(logging.getLogger().handlers)

        assert handler_count_1 == handler_count_2
        assert handler_count_1 >= 1

    def test_sets_root_log_level(self) -> None:
        configure_logging(level="WARNING")
        assert logging.getLogger().level == logging.WARNING

        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_suppresses_noisy_third_party(self) -> None:
        """Third-party loggers (httpx, slack_sdk, websockets) are set to WARNING."""
        configure_logging(level="DEBUG")

        for name in ("httpx", "httpcore", "slack_sdk", "websockets"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_switch_to_json_output(self) -> None:
        """A second call with json_output=True swaps the renderer in place."""
        configure_logging(level="INFO")
        handler = _structlog_handler(logging.getLogger())
        assert handler is not None

        configure_logging(level="INFO", json_output=True)
        assert _structlog_handler(logging.getLogger()) is handler

        record = logging.LogRecord(
            "wisemonk.test", logging.INFO, __file__, 1, "hello %s", ("monk",), None
        )
        parsed = json.loads(handler.format(record))
        assert parsed["event"] == "hello monk"
        assert parsed["level"] == "info"
        assert parsed["logger"] == "wisemonk.test"

    def test_structlog_bound_context_preserved(self) -> None:
        configure_logging(level="DEBUG")

        log = structlog.get_logger("test.bound")
        bound = log.bind(channel_id="C0GENERAL")
        assert hasattr(bound, "bind")
        double_bound = bound.bind(query="golang")
        assert hasattr(double_bound, "info")

    def test_stdlib_loggers_still_work(self) -> None:
        """stdlib loggers are bridged through structlog."""
        configure_logging(level="DEBUG")

        stdlib_logger = logging.getLogger("wisemonk.test.stdlib")
        stdlib_logger.info("stdlib message: %s", "test")


class TestStructlogIntegration:
    """Verify that structlog is actually used in core modules."""

    def test_actor_uses_structlog(self) -> None:
        import wisemonk.monitor.actor as actor_mod

        assert hasattr(actor_mod.logger, "bind")

    def test_supervisor_uses_structlog(self) -> None:
        import wisemonk.monitor.supervisor as supervisor_mod

        assert hasattr(supervisor_mod.logger, "bind")
