"""Unit tests for logging and observability utilities."""

import json
import logging

import pytest

from waveplan.plan_logging import (
    JsonFormatter,
    ObservabilityHooks,
    PerformanceMonitor,
    log_operation,
    log_performance,
    performance_monitor,
    setup_logging,
)


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_console_handler(self):
        setup_logging("DEBUG")

        logger = logging.getLogger("waveplan")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_json_file_handler(self, tmp_path):
        """Test that the optional log file receives JSON lines."""
        log_file = tmp_path / "waveplan.log"
        setup_logging("INFO", log_file)

        logging.getLogger("waveplan.test").info("hello")
        for handler in logging.getLogger("waveplan").handlers:
            handler.flush()

        entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert entries[-1]["message"] == "hello"
        assert entries[-1]["logger"] == "waveplan.test"


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_extra_fields(self):
        record = logging.LogRecord("waveplan", logging.INFO, __file__, 1, "msg", None, None)
        record.extra_fields = {"operation": "generate_plan"}

        data = json.loads(JsonFormatter().format(record))

        assert data["operation"] == "generate_plan"
        assert data["level"] == "INFO"


class TestPerformanceMonitor:
    """Test cases for PerformanceMonitor."""

    def test_record_and_clear(self):
        monitor = PerformanceMonitor()
        monitor.record_metric("x", 1.5, {"status": "success"})

        assert monitor.get_metrics("x")["x"][0]["value"] == 1.5
        monitor.clear()
        assert monitor.get_metrics() == {}

    def test_history_is_capped(self):
        """Test that only the most recent samples are kept per metric."""
        monitor = PerformanceMonitor(max_samples=3)
        for value in range(5):
            monitor.record_metric("plan_workflow_duration", value)

        samples = monitor.get_metrics("plan_workflow_duration")["plan_workflow_duration"]
        assert [sample["value"] for sample in samples] == [2, 3, 4]

    def test_decorator_records_failures(self):
        """Test that failures are timed and re-raised."""

        @log_performance("explode")
        def explode():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            explode()

        metric = performance_monitor.get_metrics("explode_duration")["explode_duration"][0]
        assert metric["tags"] == {"status": "error", "error_type": "RuntimeError"}


class TestLogOperation:
    """Test cases for log_operation."""

    def test_reraises(self, caplog):
        with caplog.at_level(logging.ERROR, logger="waveplan.operations"):
            with pytest.raises(ValueError):
                with log_operation("broken"):
                    raise ValueError("bad")

        assert "Failed operation: broken" in caplog.text


class TestObservabilityHooks:
    """Test cases for ObservabilityHooks."""

    def test_event_reaches_hook(self):
        hooks = ObservabilityHooks()
        received = []
        hooks.register_hook("plan_generated", lambda **data: received.append(data))

        hooks.log_workflow_event("plan_generated", feature_count=3)

        assert received[0]["feature_count"] == 3
        assert "timestamp" in received[0]
        assert "event_type" not in received[0]

    def test_failing_hook_is_contained(self):
        """Test that one failing hook does not stop the others."""
        hooks = ObservabilityHooks()
        received = []

        def failing(**data):
            raise RuntimeError("hook failure")

        hooks.register_hook("plan_saved", failing)
        hooks.register_hook("plan_saved", lambda **data: received.append(data))

        hooks.trigger_hooks("plan_saved", path="x")

        assert received == [{"path": "x"}]

    def test_unregister(self):
        hooks = ObservabilityHooks()
        hooks.register_hook("e", lambda **data: None)
        hooks.unregister_hooks("e")

        assert "e" not in hooks.hooks
