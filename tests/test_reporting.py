from __future__ import annotations

import io
import logging

import pytest

from sms_relay.models import DeliveryOutcome, FailureKind, InboundMessage
from sms_relay.reporting import ConsoleReporter, LogReporter, format_outcome


def test_format_failure_uses_title() -> None:
    outcome = DeliveryOutcome.failed(FailureKind.NETWORK_ERROR, "check network connectivity")

    text = format_outcome(outcome, InboundMessage(sender="555", body="hi"))

    assert text == "Message forwarding error (from 555): check network connectivity"


def test_log_reporter_levels(caplog: pytest.LogCaptureFixture) -> None:
    reporter = LogReporter()

    with caplog.at_level(logging.INFO, logger="sms_relay.reporting"):
        reporter.report(
            DeliveryOutcome.failed(FailureKind.CONFIG_ERROR, "check bot/channel settings")
        )
        reporter.report(DeliveryOutcome.sent())

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.WARNING, logging.INFO]
    assert "Message forwarding error" in caplog.records[0].getMessage()


def test_console_reporter_writes_to_stream() -> None:
    stream = io.StringIO()

    ConsoleReporter(stream).report(DeliveryOutcome.skipped("filter mismatch"))

    assert stream.getvalue() == "Message skipped: filter mismatch\n"
