import json
import logging

from dynobot.logging import (
    CorrelationFilter,
    StructuredFormatter,
    build_handlers,
    correlation_context,
    get_correlation_id,
)


def _record(msg="hello"):
    return logging.LogRecord("dynobot.test", logging.INFO, __file__, 1, msg, (), None)


def test_correlation_context_sets_and_restores():
    assert get_correlation_id() == ""
    with correlation_context("abc123") as cid:
        assert cid == "abc123"
        assert get_correlation_id() == "abc123"
        with correlation_context() as inner:
            assert inner != "abc123"
        assert get_correlation_id() == "abc123"
    assert get_correlation_id() == ""


def test_filter_tags_records():
    record = _record()
    CorrelationFilter().filter(record)
    assert record.correlation_id == "-"

    with correlation_context("xyz"):
        record = _record()
        CorrelationFilter().filter(record)
    assert record.correlation_id == "xyz"


def test_structured_formatter_emits_json():
    record = _record("Running command ping")
    record.correlation_id = "cid1"
    entry = json.loads(StructuredFormatter().format(record))
    assert entry["message"] == "Running command ping"
    assert entry["correlation_id"] == "cid1"
    assert entry["level"] == "INFO"


def test_build_handlers_share_format_and_filter(tmp_path):
    log_path = tmp_path / "logs" / "bot.log"
    handlers = build_handlers(log_path, use_json=True)
    try:
        assert log_path.parent.is_dir()
        assert len(handlers) == 2
        for handler in handlers:
            assert isinstance(handler.formatter, StructuredFormatter)
            assert any(isinstance(f, CorrelationFilter) for f in handler.filters)
    finally:
        for handler in handlers:
            handler.close()
