from __future__ import annotations

import io
import json
import logging

import pytest

from taskboard.core.config import Settings
from taskboard.core.context import bind_request_id, operation_scope, reset_request_id
from taskboard.core.logging import JsonLogFormatter, configure_logging


@pytest.fixture()
def json_stream():
    settings = Settings(environment="test")
    settings.log_level = "INFO"
    configure_logging(settings)

    root_logger = logging.getLogger()
    handler = next(
        (h for h in root_logger.handlers if isinstance(h, logging.StreamHandler)),
        None,
    )
    assert handler is not None, "Expected JSON stream handler to be configured"

    buffer = io.StringIO()
    previous_stream = handler.setStream(buffer)
    try:
        yield settings, handler, buffer
    finally:
        handler.setStream(previous_stream)


def _last_payload(handler: logging.Handler, buffer: io.StringIO) -> dict:
    handler.flush()
    log_lines = buffer.getvalue().strip().splitlines()
    assert log_lines, "Expected structured log line to be captured"
    return json.loads(log_lines[-1])


def test_configure_logging_outputs_json_with_request_id(json_stream) -> None:
    settings, handler, buffer = json_stream

    token = bind_request_id("req-json-1")
    try:
        logging.getLogger("taskboard.tests.logging").info(
            "structured log event",
            extra={"component": "unit-test"},
        )
    finally:
        reset_request_id(token)

    payload = _last_payload(handler, buffer)
    assert payload["message"] == "structured log event"
    assert payload["request_id"] == "req-json-1"
    assert payload["operation"] == "-"
    assert payload["environment"] == settings.environment
    assert payload["level"] == "INFO"
    assert payload["component"] == "unit-test"
    assert payload["service"] == settings.project_name


def test_operation_scope_tags_log_records(json_stream) -> None:
    _, handler, buffer = json_stream

    with operation_scope("task.update"):
        logging.getLogger("taskboard.services.tasks").info("Task updated", extra={"task_id": "t1"})

    payload = _last_payload(handler, buffer)
    assert payload["operation"] == "task.update"
    assert payload["task_id"] == "t1"


def test_formatter_stringifies_unserialisable_extras() -> None:
    formatter = JsonLogFormatter(defaults={"service": "Taskboard"})
    record = logging.LogRecord("taskboard", logging.INFO, __file__, 1, "hello", None, None)
    record.payload = object()

    payload = json.loads(formatter.format(record))

    assert payload["service"] == "Taskboard"
    assert payload["request_id"] == "-"
    assert isinstance(payload["payload"], str)
