"""
Unit Tests for StructuredLogger and the logger cache
====================================================

Guards against handler duplication: every get_logger(name) call for the
same name must reuse one logger with one set of handlers.
"""

import json
import logging
import sys

from travochat.core.logger import JsonFormatter, StructuredLogger, get_logger
from travochat.domain.models.channel import ChannelStatus
from travochat.infrastructure.config.settings import LoggingSettings


def test_get_logger_is_cached_per_name():
    first = get_logger("travochat.tests.cache")
    handler_count = len(first.logger.handlers)

    for _ in range(5):
        again = get_logger("travochat.tests.cache")

    assert again is first
    assert len(first.logger.handlers) == handler_count


def test_repeated_construction_does_not_duplicate_handlers():
    config = LoggingSettings(console_enabled=True)

    StructuredLogger("travochat.tests.dup", config)
    logger = StructuredLogger("travochat.tests.dup", config)

    assert len(logger.logger.handlers) == 1


def test_file_handler_writes_json_lines(tmp_path):
    config = LoggingSettings(console_enabled=False, file_enabled=True, log_dir=str(tmp_path))
    logger = StructuredLogger("travochat.tests.file", config)

    logger.info("realtime_channel.connected", {"status": ChannelStatus.CONNECTED, "subscription": "sub-0"})
    for handler in logger.logger.handlers:
        handler.flush()

    line = (tmp_path / "travochat.tests.file.jsonl").read_text(encoding="utf-8").strip()
    record = json.loads(line)
    assert record["event_type"] == "realtime_channel.connected"
    assert record["data"] == {"status": "connected", "subscription": "sub-0"}
    assert record["level"] == "INFO"

    for handler in list(logger.logger.handlers):
        handler.close()
        logger.logger.removeHandler(handler)


def test_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, {"event_type": "e", "data": {}}, None, sys.exc_info())

    formatted = json.loads(JsonFormatter().format(record))

    assert formatted["event_type"] == "e"
    assert "RuntimeError: boom" in formatted["exception"]
