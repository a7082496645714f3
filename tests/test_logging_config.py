"""
Tests for the JSON log formatter.
"""

import json
import logging
import sys

from society.logging_config import JSONFormatter


def make_record(**extra):
    record = logging.LogRecord(
        name="society.services.payment_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Payment %s completed",
        args=("p-1",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_with_context_fields():
    line = JSONFormatter().format(make_record(payment_id="p-1", order_id="order_1"))

    data = json.loads(line)
    assert data["message"] == "Payment p-1 completed"
    assert data["level"] == "INFO"
    assert data["payment_id"] == "p-1"
    assert data["order_id"] == "order_1"
    assert "user_id" not in data


def test_exception_is_included():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = make_record()
        record.exc_info = sys.exc_info()

    data = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in data["exception"]
