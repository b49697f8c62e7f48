"""
Tests for rental_kernel.logging_config.

Structured JSON output, LogContext binding, and typed-error payloads.
"""

import json
import logging
import sys
from datetime import date
from decimal import Decimal
from uuid import uuid4

from rental_kernel.exceptions import PriceOutOfRangeError, VendorNotFoundError
from rental_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record_kwargs: dict, exc_info=None) -> dict:
    record = logging.LogRecord(
        name="rental_kernel.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="event_name",
        args=(),
        exc_info=exc_info,
    )
    for k, v in record_kwargs.items():
        setattr(record, k, v)
    return json.loads(StructuredFormatter().format(record))


class TestGetLogger:
    def test_namespaced_under_kernel(self):
        assert get_logger("modules.revenue.service").name == "rental_kernel.modules.revenue.service"


class TestStructuredFormatter:
    def test_base_fields(self):
        payload = _format({})
        assert payload["message"] == "event_name"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "rental_kernel.test"
        assert "ts" in payload

    def test_extra_fields_serialized(self):
        uid = uuid4()
        payload = _format({"amount": Decimal("70.97"), "month": date(2025, 1, 1), "unit": uid})
        assert payload["amount"] == "70.97"
        assert payload["month"] == "2025-01-01"
        assert payload["unit"] == str(uid)

    def test_typed_error_payload(self):
        try:
            raise VendorNotFoundError("v-1")
        except VendorNotFoundError:
            payload = _format({}, exc_info=sys.exc_info())

        assert payload["exc_type"] == "VendorNotFoundError"
        assert payload["exc_code"] == "VENDOR_NOT_FOUND"
        assert payload["exc_vendor_id"] == "v-1"
        assert "traceback" in payload

    def test_numeric_error_attributes(self):
        try:
            raise PriceOutOfRangeError(1500, 0, 1000)
        except PriceOutOfRangeError:
            payload = _format({}, exc_info=sys.exc_info())
        assert payload["exc_price"] == 1500
        assert payload["exc_field"] == "price"


class TestLogContext:
    def test_bind_adds_and_restores_fields(self, captured_logs):
        logger = get_logger("test.context")
        with LogContext.bind(vendor_id="v-1", job_id="j-1"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = [r for r in captured_logs() if r["message"] in ("inside", "outside")]
        assert inside["vendor_id"] == "v-1"
        assert inside["job_id"] == "j-1"
        assert "vendor_id" not in outside

    def test_nested_bind_restores_outer_value(self):
        with LogContext.bind(unit_id="outer"):
            with LogContext.bind(unit_id="inner"):
                assert LogContext.get_all()["unit_id"] == "inner"
            assert LogContext.get_all()["unit_id"] == "outer"
        assert "unit_id" not in LogContext.get_all()
