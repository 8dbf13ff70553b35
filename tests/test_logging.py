"""Tests for structured logging configuration."""

import logging

from pythonjsonlogger import jsonlogger

from civic_requests.core.logging import RequestContextFilter, request_id_ctx, setup_logging


def test_request_context_filter_injects_request_id():
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="hello",
        args=(),
        exc_info=None,
    )

    token = request_id_ctx.set("req-123")
    try:
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "req-123"
    finally:
        request_id_ctx.reset(token)


def test_setup_logging_attaches_json_handler():
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    try:
        setup_logging("debug")

        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        handler = root_logger.handlers[0]
        assert isinstance(handler.formatter, jsonlogger.JsonFormatter)
        assert any(isinstance(f, RequestContextFilter) for f in handler.filters)
    finally:
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)
