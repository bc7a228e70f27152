"""Tests for logging filters."""

import logging

import pytest

from seatbook.app_logging import PIIFilter


@pytest.mark.unit
class TestPIIFilter:
    """Tests for PIIFilter."""

    @pytest.fixture
    def pii_filter(self):
        return PIIFilter()

    @pytest.fixture
    def make_record(self):
        """Factory for creating log records with specific messages."""

        def _make_record(msg: str, args: tuple = ()) -> logging.LogRecord:
            return logging.LogRecord(
                name="test.logger",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg=msg,
                args=args,
                exc_info=None,
            )

        return _make_record

    def test_masks_email(self, pii_filter, make_record):
        record = make_record("contact: rider@example.com")
        pii_filter.filter(record)

        assert "[EMAIL]" in record.msg
        assert "rider@example.com" not in record.msg

    def test_masks_phone(self, pii_filter, make_record):
        record = make_record("call 555-123-4567")
        pii_filter.filter(record)

        assert "[PHONE]" in record.msg
        assert "555-123-4567" not in record.msg

    def test_masks_phone_in_args(self, pii_filter, make_record):
        """Phone numbers passed as %-style args are masked before formatting."""
        record = make_record("Failed login attempt for %s", ("+923001234567",))
        pii_filter.filter(record)

        assert "+923001234567" not in record.getMessage()
        assert "[PHONE]" in record.getMessage()

    def test_leaves_identifiers_alone(self, pii_filter, make_record):
        """UUIDs and seat counts are not mistaken for phone numbers."""
        message = "Reserved 3 seat(s) on ride 0b7c2f7e-2a61-4a8e-9d55-1a2b3c4d5e6f"
        record = make_record(message)
        pii_filter.filter(record)

        assert record.msg == message

    def test_non_string_args_unchanged(self, pii_filter, make_record):
        record = make_record("Booking %s holds %d seat(s)", ("b-1", 4))
        pii_filter.filter(record)

        assert record.getMessage() == "Booking b-1 holds 4 seat(s)"

    def test_always_returns_true(self, pii_filter, make_record):
        assert pii_filter.filter(make_record("plain message")) is True
