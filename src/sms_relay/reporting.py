"""Outcome reporters that surface delivery results to the user."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from .models import DeliveryOutcome, InboundMessage

FAILURE_TITLE = "Message forwarding error"

logger = logging.getLogger(__name__)


class OutcomeReporter(Protocol):
    def report(
        self, outcome: DeliveryOutcome, *, message: InboundMessage | None = None
    ) -> None: ...


def format_outcome(outcome: DeliveryOutcome, message: InboundMessage | None = None) -> str:
    origin = f" (from {message.sender})" if message is not None else ""
    if outcome.is_failed:
        return f"{FAILURE_TITLE}{origin}: {outcome.detail}"
    return f"Message {outcome.describe()}{origin}"


class LogReporter:
    """Report outcomes through the logging system."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def report(
        self, outcome: DeliveryOutcome, *, message: InboundMessage | None = None
    ) -> None:
        if outcome.is_failed:
            self._log.warning("%s", format_outcome(outcome, message))
        else:
            self._log.info("%s", format_outcome(outcome, message))


class ConsoleReporter:
    """Print outcomes for interactive use."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def report(
        self, outcome: DeliveryOutcome, *, message: InboundMessage | None = None
    ) -> None:
        stream = self._stream or (sys.stderr if outcome.is_failed else sys.stdout)
        print(format_outcome(outcome, message), file=stream)
