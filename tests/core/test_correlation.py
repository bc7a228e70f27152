"""Tests for correlation ID propagation."""

import logging

import pytest

from seatbook.core.correlation import CorrelationFilter, get_correlation_id, with_correlation


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, "test.py", 1, "message", (), None)


@pytest.mark.unit
class TestCorrelation:
    def test_no_correlation_by_default(self):
        assert get_correlation_id() is None

    def test_with_correlation_sets_and_resets(self):
        with with_correlation("req-123"):
            assert get_correlation_id() == "req-123"
        assert get_correlation_id() is None

    def test_filter_adds_current_id(self):
        record = _record()
        with with_correlation("req-456"):
            CorrelationFilter().filter(record)
        assert record.correlation_id == "req-456"

    def test_filter_uses_dash_outside_requests(self):
        record = _record()
        CorrelationFilter().filter(record)
        assert record.correlation_id == "-"
