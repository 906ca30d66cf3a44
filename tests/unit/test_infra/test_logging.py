"""Tests for the logging infrastructure."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import QueueHandler

import pytest

from pathtree.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    configure_logging,
    get_lazy_logger,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
    setup_logging,
    shutdown,
)
from pathtree.infra.logging import config as logging_config


def make_record(message="Descendant paths rewritten", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="pathtree.core.database.hierarchy.engine",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


# ============================================================================
# JSONFormatter
# ============================================================================


@pytest.mark.unit
class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_basic_fields(self):
        payload = json.loads(JSONFormatter().format(make_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "pathtree.core.database.hierarchy.engine"
        assert payload["message"] == "Descendant paths rewritten"
        assert payload["timestamp"].endswith("Z")

    def test_extras_and_static_fields(self):
        formatter = JSONFormatter(static={"service": "pathtree"})

        payload = json.loads(formatter.format(make_record(rewritten=42, node_id="B")))

        assert payload["service"] == "pathtree"
        assert payload["rewritten"] == 42
        assert payload["node_id"] == "B"
        assert "msg" not in payload
        assert "args" not in payload

    def test_exception_kept_on_one_line(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        line = JSONFormatter().format(record)

        assert "\n" not in line
        assert "ValueError: boom" in json.loads(line)["exception"]

    def test_non_serializable_values_stringified(self):
        payload = json.loads(JSONFormatter().format(make_record(policy=object())))

        assert payload["policy"].startswith("<object object")


# ============================================================================
# Context
# ============================================================================


@pytest.mark.unit
class TestLogContext:
    """Test suite for context propagation."""

    def test_set_get_remove(self):
        set_log_context(tree_operation="reparent", node_id="B")
        assert get_log_context() == {"tree_operation": "reparent", "node_id": "B"}

        remove_from_log_context("node_id")
        assert get_log_context() == {"tree_operation": "reparent"}

    def test_scoped_context_restored_on_error(self):
        set_log_context(request_id="r1")

        with pytest.raises(RuntimeError), log_context(tree_operation="reparent", request_id="r2"):
            assert get_log_context() == {"request_id": "r2", "tree_operation": "reparent"}
            raise RuntimeError("boom")

        assert get_log_context() == {"request_id": "r1"}

    def test_filter_injects_context(self):
        set_log_context(tree_operation="reparent_on_delete")
        record = make_record()

        assert ContextInjectingFilter().filter(record) is True
        assert record.tree_operation == "reparent_on_delete"

    def test_filter_does_not_overwrite_record_attributes(self):
        set_log_context(node_id="from-context")
        record = make_record(node_id="explicit")

        ContextInjectingFilter().filter(record)

        assert record.node_id == "explicit"


# ============================================================================
# Lazy logger
# ============================================================================


@pytest.mark.unit
class TestLazyLogger:
    """Test suite for the lazy logger adapter."""

    def test_callable_not_evaluated_when_disabled(self):
        logger = get_lazy_logger("pathtree.test.lazy.disabled")
        logger.logger.setLevel(logging.INFO)
        calls = []

        logger.debug(lambda: calls.append("built") or "expensive")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog):
        logger = get_lazy_logger("pathtree.test.lazy.enabled")

        with caplog.at_level(logging.DEBUG, logger="pathtree.test.lazy.enabled"):
            logger.debug(lambda: "moved 3 rows")
            logger.info("status: %s", lambda: "ok")

        assert [r.getMessage() for r in caplog.records] == ["moved 3 rows", "status: ok"]


# ============================================================================
# Configuration
# ============================================================================


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging / setup_logging."""

    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level, filters = root.handlers[:], root.level, root.filters[:]
        yield
        shutdown()
        root.handlers[:] = handlers
        root.filters[:] = filters
        root.setLevel(level)

    def test_file_handler_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "tree.jsonl"
        configure_logging(console_enabled=False, file_path=log_file, log_level="INFO")

        set_log_context(tree_operation="reparent")
        logging.getLogger("pathtree.test").info("Subtree removed", extra={"removed": 2})
        shutdown()

        payload = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert payload["message"] == "Subtree removed"
        assert payload["removed"] == 2
        assert payload["tree_operation"] == "reparent"
        assert payload["service"] == "pathtree"

    def test_root_gets_queue_handler(self):
        configure_logging(log_level="WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        queue_handlers = [h for h in root.handlers if isinstance(h, QueueHandler)]
        assert len(queue_handlers) == 1
        assert any(isinstance(f, ContextInjectingFilter) for f in queue_handlers[0].filters)

    def test_setup_logging_runs_once(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging_config, "configure_logging", lambda **kw: calls.append(kw))
        monkeypatch.setattr(logging_config, "_LOGGING_INITIALIZED", False)

        setup_logging(json_logs=True)
        setup_logging()

        assert len(calls) == 1
        assert calls[0]["json_logs"] is True
        assert calls[0]["service_name"] == "pathtree"
