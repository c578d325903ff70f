"""Unit tests for spec workflow logging.

This module tests the JSON formatter, the logger setup and the structured
operation and event helpers.
"""

import json
import logging
import pytest
from unittest.mock import patch, MagicMock

from spec_workflow.workflow_logging import (
    LOGGER_NAME,
    JsonFormatter,
    log_approval_event,
    log_error_with_context,
    log_operation,
    log_task_update,
    setup_logging,
)


@pytest.fixture
def reset_logger():
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(level)


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_json_formatter_basic(self):
        """Test basic JSON formatting."""
        formatter = JsonFormatter()
        record = logging.getLogger("test").makeRecord("test", logging.INFO, "mod.py", 1, "Test message", (), None)

        data = json.loads(formatter.format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "line" in data

    def test_json_formatter_with_exception(self):
        """Test JSON formatting with exception info."""
        formatter = JsonFormatter()
        try:
            raise ValueError("Test exception")
        except ValueError as e:
            record = logging.getLogger("test").makeRecord(
                "test", logging.ERROR, "mod.py", 1, "Test message", (), (type(e), e, e.__traceback__)
            )

        data = json.loads(formatter.format(record))

        assert data["level"] == "ERROR"
        assert "ValueError" in data["exception"]

    def test_json_formatter_with_extra_fields(self):
        """Test extra fields are merged into the JSON object."""
        formatter = JsonFormatter()
        record = logging.getLogger("test").makeRecord("test", logging.INFO, "mod.py", 1, "Test message", (), None)
        record.extra_fields = {"spec_name": "alpha", "path": object()}

        data = json.loads(formatter.format(record))

        assert data["spec_name"] == "alpha"
        assert isinstance(data["path"], str)


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_console_handler_uses_stderr(self, reset_logger):
        """Test the console handler never writes to stdout."""
        import sys

        setup_logging("DEBUG")

        assert reset_logger.level == logging.DEBUG
        assert len(reset_logger.handlers) == 1
        assert reset_logger.handlers[0].stream is sys.stderr

    def test_file_handler_writes_json(self, reset_logger, tmp_path):
        """Test the optional log file receives JSON lines."""
        log_file = tmp_path / "workflow.log"

        setup_logging(logging.INFO, log_file)
        logging.getLogger(f"{LOGGER_NAME}.tasks").info("Task updated")
        for handler in reset_logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        assert any(json.loads(line)["message"] == "Task updated" for line in lines)

    def test_unknown_level_falls_back_to_info(self, reset_logger):
        """Test an unrecognised level name."""
        setup_logging("LOUD")

        assert reset_logger.level == logging.INFO

    def test_repeated_setup_does_not_duplicate_handlers(self, reset_logger):
        """Test calling setup twice keeps one console handler."""
        setup_logging("INFO")
        setup_logging("INFO")

        assert len(reset_logger.handlers) == 1


class TestLogOperation:
    """Test cases for log_operation context manager."""

    def test_log_operation_success(self):
        """Test successful operation logging."""
        with patch("spec_workflow.workflow_logging.std_logging.getLogger") as mock_logger:
            mock_logger_instance = MagicMock()
            mock_logger.return_value = mock_logger_instance

            with log_operation("manage_tasks", spec_name="alpha"):
                pass

            assert mock_logger_instance.info.called
            extra = mock_logger_instance.info.call_args[1]["extra"]["extra_fields"]
            assert extra["status"] == "completed"
            assert extra["spec_name"] == "alpha"
            assert mock_logger_instance.warning.called is False

    def test_log_operation_with_exception(self):
        """Test failures are logged and re-raised."""
        with patch("spec_workflow.workflow_logging.std_logging.getLogger") as mock_logger:
            mock_logger_instance = MagicMock()
            mock_logger.return_value = mock_logger_instance

            with pytest.raises(ValueError):
                with log_operation("manage_tasks"):
                    raise ValueError("Test error")

            assert mock_logger_instance.warning.called
            assert "Test error" in str(mock_logger_instance.warning.call_args)


class TestEventHelpers:
    """Test cases for structured event helpers."""

    def test_log_task_update(self, caplog):
        """Test task updates carry both statuses."""
        with caplog.at_level(logging.INFO, logger=f"{LOGGER_NAME}.events"):
            log_task_update("alpha", "1.1", "pending", "completed")

        record = caplog.records[-1]
        assert record.extra_fields["event_type"] == "task_status_updated"
        assert record.extra_fields["previous_status"] == "pending"
        assert record.extra_fields["new_status"] == "completed"

    def test_log_approval_event(self, caplog):
        """Test approval events are prefixed."""
        with caplog.at_level(logging.INFO, logger=f"{LOGGER_NAME}.events"):
            log_approval_event("created", "alpha", "approval_1", document_type="design")

        record = caplog.records[-1]
        assert record.extra_fields["event_type"] == "approval_created"
        assert record.extra_fields["approval_id"] == "approval_1"

    def test_log_error_with_context(self):
        """Test log_error_with_context function."""
        with patch("spec_workflow.workflow_logging.std_logging.getLogger") as mock_logger:
            error = ValueError("Test error")
            context = {"operation": "respond_to_approval", "root": "/tmp/project"}

            log_error_with_context(error, context, approval_id="approval_1")

            assert mock_logger.return_value.error.called
            call_args = mock_logger.return_value.error.call_args
            assert "Test error" in str(call_args)
            extra = call_args[1]["extra"]["extra_fields"]
            assert extra["context"]["operation"] == "respond_to_approval"
            assert extra["approval_id"] == "approval_1"
            assert extra["error_type"] == "ValueError"
