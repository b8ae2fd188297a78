"""Tests for structured logging helpers."""

from unittest.mock import Mock

import pytest

from taxfiler.utils.logging import (
    LogPerformance,
    add_app_context,
    add_correlation_id,
    clear_correlation_id,
    filter_sensitive_data,
    get_correlation_id,
    log_attachment_created,
    set_correlation_id,
)

pytestmark = pytest.mark.unit


class TestCorrelationId:
    def teardown_method(self):
        clear_correlation_id()

    def test_generated_when_missing(self):
        correlation_id = set_correlation_id()

        assert correlation_id
        assert get_correlation_id() == correlation_id

    def test_added_to_event(self):
        set_correlation_id("run-42")

        event = add_correlation_id(None, "info", {"event": "auto_assign_started"})

        assert event["correlation_id"] == "run-42"

    def test_explicit_value_not_overwritten(self):
        set_correlation_id("run-42")

        event = add_correlation_id(None, "info", {"correlation_id": "other"})

        assert event["correlation_id"] == "other"


class TestProcessors:
    def test_sensitive_data_redacted(self):
        event = filter_sensitive_data(
            None, "info", {"iban": "DE89370400440532013000", "transaction_id": 3}
        )

        assert event["iban"] == "***REDACTED***"
        assert event["transaction_id"] == 3

    def test_app_context(self):
        event = add_app_context(None, "info", {})

        assert event["app"] == "taxfiler"
        assert "version" in event


class TestLogPerformance:
    def test_completed(self):
        logger = Mock()

        with LogPerformance("auto_assign", logger, transaction_count=3):
            pass

        logger.debug.assert_called_once_with("auto_assign_started", transaction_count=3)
        event, = logger.info.call_args.args
        assert event == "auto_assign_completed"
        assert logger.info.call_args.kwargs["transaction_count"] == 3

    def test_failed_logs_and_propagates(self):
        logger = Mock()

        with pytest.raises(ValueError):
            with LogPerformance("auto_assign", logger):
                raise ValueError("boom")

        assert logger.error.call_args.args == ("auto_assign_failed",)
        assert logger.error.call_args.kwargs["error_type"] == "ValueError"


def test_attachment_audit_event():
    logger = Mock()

    log_attachment_created(logger, transaction_id=1, document_id=2, attached_by="me", is_automatic=False)

    logger.info.assert_called_once_with(
        "attachment_created",
        action="attach",
        resource="attachment",
        transaction_id=1,
        document_id=2,
        attached_by="me",
        is_automatic=False,
    )
