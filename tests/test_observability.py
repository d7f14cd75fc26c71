"""Tests for the observability module.

Tests for metrics collection, logging configuration, and error sanitization.
"""
import json
import logging
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from draftsmith.observability import (
    MetricsCollector,
    _sanitize_error_message,
    configure_logging,
    is_logging_configured,
    timed_operation,
)


class TestErrorMessageSanitization:
    """Tests for error message sanitization."""

    def test_sanitize_none_returns_none(self):
        """Sanitizing None should return None."""
        assert _sanitize_error_message(None) is None

    def test_sanitize_simple_message(self):
        assert _sanitize_error_message("Simple error") == "Simple error"

    def test_sanitize_removes_home_directory(self):
        """Home directory paths should be replaced with ~."""
        home = str(Path.home())
        result = _sanitize_error_message(f"{home}/drafts/db.sqlite: locked")
        assert home not in result
        assert result.startswith("~")

    def test_sanitize_removes_newlines(self):
        result = _sanitize_error_message("Line 1\nLine 2\rLine 3")
        assert result == "Line 1 Line 2 Line 3"

    def test_sanitize_truncates_long_messages(self):
        """Long messages should be truncated with ellipsis."""
        result = _sanitize_error_message("a" * 300)
        assert len(result) == 200
        assert result.endswith("...")

    def test_sanitize_custom_max_length(self):
        result = _sanitize_error_message("a" * 100, max_length=50)
        assert len(result) == 50


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    @pytest.fixture
    def metrics_file(self, tmp_path):
        return tmp_path / "metrics.json"

    @pytest.fixture
    def metrics_collector(self, metrics_file):
        return MetricsCollector(metrics_file=metrics_file)

    def test_record_successful_operation(self, metrics_collector):
        metrics_collector.record_operation("ds_get_tree", 100.0, True)

        metrics = metrics_collector.get_metrics()
        assert metrics["ds_get_tree"]["count"] == 1
        assert metrics["ds_get_tree"]["success_count"] == 1
        assert metrics["ds_get_tree"]["error_count"] == 0
        assert metrics["ds_get_tree"]["avg_duration_ms"] == 100.0

    def test_record_failed_operation(self, metrics_collector):
        metrics_collector.record_operation("ds_add_hierarchy_entry", 50.0, False, "cycle")

        op = metrics_collector.get_metrics()["ds_add_hierarchy_entry"]
        assert op["error_count"] == 1
        assert op["last_error"] == "cycle"
        assert op["last_error_time"] is not None

    def test_multiple_operations_aggregated(self, metrics_collector):
        metrics_collector.record_operation("op", 100.0, True)
        metrics_collector.record_operation("op", 200.0, True)
        metrics_collector.record_operation("op", 300.0, False, "Error")

        op = metrics_collector.get_metrics()["op"]
        assert op["count"] == 3
        assert op["avg_duration_ms"] == 200.0
        assert op["min_duration_ms"] == 100.0
        assert op["max_duration_ms"] == 300.0

    def test_get_summary(self, metrics_collector):
        metrics_collector.record_operation("op1", 100.0, True)
        metrics_collector.record_operation("op2", 200.0, False, "Error")

        summary = metrics_collector.get_summary()
        assert summary["total_operations"] == 2
        assert summary["total_errors"] == 1
        assert summary["overall_success_rate"] == 0.5
        assert set(summary["operations_tracked"]) == {"op1", "op2"}

    def test_empty_summary(self, metrics_collector):
        assert metrics_collector.get_summary()["overall_success_rate"] == 1.0

    def test_save_metrics(self, metrics_collector, metrics_file):
        metrics_collector.record_operation("op1", 10.0, True)
        assert metrics_collector.save_metrics() is True

        data = json.loads(metrics_file.read_text(encoding="utf-8"))
        assert data["operations"]["op1"]["count"] == 1
        assert not metrics_file.with_suffix(".tmp").exists()

    def test_save_metrics_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        collector = MetricsCollector(metrics_file=blocker / "metrics.json")
        assert collector.save_metrics() is False

    def test_reset_metrics(self, metrics_collector):
        metrics_collector.record_operation("op", 100.0, True)
        metrics_collector.reset()
        assert metrics_collector.get_metrics() == {}


class TestTimedOperation:
    """Tests for timed_operation context manager."""

    def test_records_success(self, tmp_path):
        collector = MetricsCollector(metrics_file=tmp_path / "m.json")
        with patch("draftsmith.observability.metrics", collector):
            with timed_operation("ds_get_tree", partition="notes") as op:
                time.sleep(0.01)
                op["root_count"] = 3

        op_metrics = collector.get_metrics()["ds_get_tree"]
        assert op_metrics["success_count"] == 1
        assert op_metrics["avg_duration_ms"] >= 10

    def test_records_raised_failure(self, tmp_path):
        collector = MetricsCollector(metrics_file=tmp_path / "m.json")
        with patch("draftsmith.observability.metrics", collector):
            with pytest.raises(ValueError):
                with timed_operation("op"):
                    raise ValueError("Test error")

        assert "Test error" in collector.get_metrics()["op"]["last_error"]

    def test_records_reported_failure(self, tmp_path):
        """A block that stores op['error'] counts as failed without raising."""
        collector = MetricsCollector(metrics_file=tmp_path / "m.json")
        with patch("draftsmith.observability.metrics", collector):
            with timed_operation("op") as op:
                op["error"] = RuntimeError("rejected")

        op_metrics = collector.get_metrics()["op"]
        assert op_metrics["error_count"] == 1
        assert op_metrics["last_error"] == "rejected"

    def test_correlation_id(self):
        with timed_operation("op") as op:
            assert len(op["correlation_id"]) == 8


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.fixture(autouse=True)
    def _restore_logger(self):
        logger = logging.getLogger("draftsmith")
        handlers, level = list(logger.handlers), logger.level
        yield
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)

    def test_creates_directory_and_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        result = configure_logging(log_dir=log_dir, console=False)

        assert result == log_dir
        assert (log_dir / "draftsmith.log").exists()
        assert is_logging_configured()

    def test_sets_level(self, tmp_path):
        configure_logging(log_dir=tmp_path, level=logging.DEBUG, console=False)
        assert logging.getLogger("draftsmith").level == logging.DEBUG

    def test_module_loggers_reach_file(self, tmp_path):
        configure_logging(log_dir=tmp_path, console=False)
        logging.getLogger("draftsmith.services.tree_builder").warning("dangling edge")
        for handler in logging.getLogger("draftsmith").handlers:
            handler.flush()
        assert "dangling edge" in (tmp_path / "draftsmith.log").read_text(encoding="utf-8")
