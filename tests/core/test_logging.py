"""Tests for voltmap.core.logging module."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from voltmap.core.logging import (
    JSONFormatter,
    RequestIdFilter,
    StandardFormatter,
    configure_logging,
    current_request_id,
    new_request_id,
    request_scope,
)


@pytest.fixture
def restore_root_logger():
    """Remove the handlers configure_logging installs on the root logger."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, (JSONFormatter, StandardFormatter)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _record(msg="hello %s", args=("world",), level=logging.INFO, exc_info=None):
    return logging.LogRecord("voltmap.test", level, __file__, 42, msg, args, exc_info)


def _filtered(**kwargs):
    record = _record(**kwargs)
    RequestIdFilter().filter(record)
    return record


# ============================================================================
# Request ID Tests
# ============================================================================


class TestRequestId:
    def test_none_outside_a_request(self):
        assert current_request_id() is None

    def test_new_id_is_short_hex(self):
        first, second = new_request_id(), new_request_id()
        assert first != second
        assert len(first) == 12
        int(first, 16)

    def test_scope_generates_and_resets(self):
        with request_scope() as rid:
            assert current_request_id() == rid
            assert len(rid) == 12
        assert current_request_id() is None

    def test_scope_uses_given_id(self):
        with request_scope("req-abc") as rid:
            assert rid == "req-abc"
            assert current_request_id() == "req-abc"

    def test_nested_scopes(self):
        with request_scope("outer"):
            with request_scope("inner"):
                assert current_request_id() == "inner"
            assert current_request_id() == "outer"

    def test_filter_stamps_record(self):
        with request_scope("req-123"):
            record = _filtered()
        assert record.request_id == "req-123"

    def test_filter_uses_dash_outside_a_request(self):
        assert _filtered().request_id == "-"


# ============================================================================
# Formatter Tests
# ============================================================================


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_filtered()))
        assert data["level"] == "INFO"
        assert data["logger"] == "voltmap.test"
        assert data["message"] == "hello world"
        assert "timestamp" in data
        assert "source" not in data
        assert "request_id" not in data

    def test_includes_request_id(self):
        with request_scope("req-123"):
            data = json.loads(JSONFormatter().format(_filtered()))
        assert data["request_id"] == "req-123"

    def test_unfiltered_record_has_no_request_id(self):
        with request_scope("req-123"):
            data = json.loads(JSONFormatter().format(_record()))
        assert "request_id" not in data

    def test_warning_includes_source(self):
        data = json.loads(JSONFormatter().format(_record(level=logging.WARNING)))
        assert data["source"].endswith(":42")

    def test_exception_included(self):
        try:
            raise ValueError("bad vote")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad vote" in data["exception"]


class TestStandardFormatter:
    def test_includes_request_id(self):
        formatter = StandardFormatter(use_colors=False)
        with request_scope("abcdef123456"):
            line = formatter.format(_filtered())
        assert "INFO voltmap.test [abcdef123456] hello world" in line

    def test_dash_without_filter(self):
        line = StandardFormatter(use_colors=False).format(_record())
        assert "[-] hello world" in line

    def test_does_not_mutate_message(self):
        record = _filtered()
        StandardFormatter(use_colors=False).format(record)
        assert record.msg == "hello %s"


# ============================================================================
# configure_logging
# ============================================================================


class TestConfigureLogging:
    def test_json_format(self, restore_root_logger, clean_env):
        configure_logging(level="DEBUG", json_format=True)

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert any(isinstance(f, RequestIdFilter) for f in root.handlers[0].filters)

    def test_text_from_env(self, restore_root_logger, clean_env, monkeypatch):
        monkeypatch.setenv("VOLTMAP_LOG_FORMAT", "text")
        monkeypatch.setenv("VOLTMAP_LOG_LEVEL", "warning")

        configure_logging()

        root = restore_root_logger
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StandardFormatter)

    def test_log_file(self, restore_root_logger, clean_env, tmp_path):
        path = tmp_path / "voltmap.log"
        configure_logging(level="INFO", json_format=False, log_file=str(path))

        root = restore_root_logger
        assert len(root.handlers) == 2
        with request_scope("req-file"):
            logging.getLogger("voltmap.test").info("written")
        for handler in root.handlers:
            handler.flush()
        root.handlers[1].close()

        line = json.loads(path.read_text().splitlines()[-1])
        assert line["message"] == "written"
        assert line["request_id"] == "req-file"
