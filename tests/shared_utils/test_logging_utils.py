"""
Tests for shared_utils.logging_utils.

Covers get_scoped_logger(), LogLevel enum, configure_logging(),
log_execution() for sync and async callables, and ContextualLogger.
"""

import asyncio
import logging

import pytest

from shared_utils.logging_utils import (
    ContextualLogger,
    LogLevel,
    configure_logging,
    get_scoped_logger,
    log_execution,
)
from shared_utils.constants import LogScope


# ---------------------------------------------------------------------------
# get_scoped_logger
# ---------------------------------------------------------------------------


class TestGetScopedLogger:
    def test_returns_bound_logger(self) -> None:
        logger = get_scoped_logger(LogScope.API)
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "error", None))

    def test_different_scopes(self) -> None:
        for scope in (LogScope.API, LogScope.PARSER, LogScope.SPEECH, LogScope.WORKER):
            assert get_scoped_logger(scope) is not None


class TestConfigureLogging:
    def test_sets_root_level(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG
        configure_logging(LogLevel.INFO.value)
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_defaults_to_info(self) -> None:
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO


# ---------------------------------------------------------------------------
# LogLevel enum
# ---------------------------------------------------------------------------


class TestLogLevel:
    def test_values(self) -> None:
        assert LogLevel.DEBUG == "DEBUG"
        assert LogLevel.CRITICAL == "CRITICAL"

    def test_membership(self) -> None:
        assert len(LogLevel) == 5


# ---------------------------------------------------------------------------
# log_execution decorator
# ---------------------------------------------------------------------------


class TestLogExecution:
    def test_passes_through_return_value(self) -> None:
        @log_execution(scope=LogScope.API)
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5

    def test_propagates_exception(self) -> None:
        @log_execution(scope=LogScope.API)
        def boom() -> None:
            raise ValueError("oops")

        with pytest.raises(ValueError, match="oops"):
            boom()

    def test_preserves_function_name(self) -> None:
        @log_execution(scope=LogScope.API)
        def my_func() -> None:
            pass

        assert my_func.__name__ == "my_func"

    def test_async_function(self) -> None:
        @log_execution(scope=LogScope.SPEECH)
        async def double(x: int) -> int:
            return x * 2

        assert asyncio.iscoroutinefunction(double)
        assert asyncio.run(double(4)) == 8

    def test_async_exception(self) -> None:
        @log_execution(scope=LogScope.SPEECH)
        async def fail() -> None:
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError, match="fail"):
            asyncio.run(fail())


# ---------------------------------------------------------------------------
# ContextualLogger
# ---------------------------------------------------------------------------


class TestContextualLogger:
    def test_all_levels_callable(self) -> None:
        cl = ContextualLogger(scope=LogScope.PLANNING)
        for method_name in ("info", "debug", "warning", "error", "critical"):
            assert callable(getattr(cl, method_name))

    def test_info_does_not_raise(self) -> None:
        ContextualLogger(scope=LogScope.PLANNING, meeting_id="m-1").info("test_event", key="value")

    def test_scope_and_context_stored(self) -> None:
        cl = ContextualLogger(LogScope.WORKER, meeting_id="m-1")
        assert cl.scope == LogScope.WORKER
        assert cl.context == {"meeting_id": "m-1"}

    def test_bind_merges_context(self) -> None:
        cl = ContextualLogger(LogScope.PLANNING, meeting_id="m-1").bind(generation_id="g-1")
        assert cl.context == {"meeting_id": "m-1", "generation_id": "g-1"}
