"""Logging utilities for the spec workflow engine.

This module provides structured logging: a console/JSON handler setup,
operation timing, and helpers that record workflow events with their
context as ``extra_fields``.
"""

from __future__ import annotations

import json
import logging as std_logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


LOGGER_NAME = "spec_workflow"


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Configure the ``spec_workflow`` logger hierarchy.

    Console output goes to stderr so the MCP stdio transport on stdout is left
    untouched. The optional file handler writes one JSON object per line.
    """
    if isinstance(log_level, str):
        log_level = std_logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = std_logging.INFO

    logger = std_logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    detailed_formatter = std_logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = std_logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(detailed_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = std_logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(std_logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    logger.debug("Spec workflow logging initialized")


class JsonFormatter(std_logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: std_logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_entry.update(extra_fields)

        return json.dumps(log_entry, default=str)


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Log start, completion or failure of an operation with its duration.

    Usable inside coroutines; the timing covers any awaits in the block.
    """
    logger = std_logging.getLogger(f"{LOGGER_NAME}.operations")
    start_time = time.perf_counter()

    logger.debug(f"Starting operation: {operation_name}", extra={"extra_fields": {
        "operation": operation_name,
        "status": "started",
        **extra_fields,
    }})

    try:
        yield
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.warning(f"Failed operation: {operation_name} after {duration:.3f}s - {e}", extra={"extra_fields": {
            "operation": operation_name,
            "status": "failed",
            "duration": duration,
            "error_type": type(e).__name__,
            "error_message": str(e),
            **extra_fields,
        }})
        raise

    duration = time.perf_counter() - start_time
    logger.info(f"Completed operation: {operation_name} in {duration:.3f}s", extra={"extra_fields": {
        "operation": operation_name,
        "status": "completed",
        "duration": duration,
        **extra_fields,
    }})


def log_workflow_event(event_type: str, spec_name: Optional[str] = None, **data) -> None:
    """Log a workflow event as a structured record."""
    logger = std_logging.getLogger(f"{LOGGER_NAME}.events")
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "spec_name": spec_name,
        **data,
    }
    logger.info(f"Workflow event: {event_type}", extra={"extra_fields": event_data})


def log_task_update(spec_name: str, task_id: str, previous_status: str, new_status: str, **extra_fields) -> None:
    log_workflow_event(
        "task_status_updated",
        spec_name=spec_name,
        task_id=task_id,
        previous_status=previous_status,
        new_status=new_status,
        **extra_fields,
    )


def log_approval_event(event_type: str, spec_name: str, approval_id: str, **extra_fields) -> None:
    log_workflow_event(
        f"approval_{event_type}",
        spec_name=spec_name,
        approval_id=approval_id,
        **extra_fields,
    )


def log_error_with_context(error: BaseException, context: Dict[str, Any], **extra_fields) -> None:
    """Log an error with rich context information."""
    logger = std_logging.getLogger(f"{LOGGER_NAME}.errors")

    error_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **extra_fields,
    }

    logger.error(
        f"Error in {context.get('operation', 'unknown operation')}: {error}",
        extra={"extra_fields": error_data},
        exc_info=error,
    )
