"""Single-attempt delivery of relay requests and outcome classification."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass

import aiohttp

from .config_store import ConfigStore
from .formatting import build_diagnostic_request
from .models import DeliveryOutcome, DeliveryRequest, FailureKind, ForwardingConfiguration
from .telegram import TelegramAPIProtocol, TransportResponse

CONFIG_ERROR_DETAIL = "check bot/channel settings"
NETWORK_ERROR_DETAIL = "check network connectivity"

TEST_SUCCESS_MESSAGE = "Test message successfully sent!"
TEST_FAILURE_MESSAGE = "Test message failed: {detail}"

logger = logging.getLogger(__name__)


def classify_response(status: int, description: str | None = None) -> DeliveryOutcome:
    """Map a completed HTTP call onto a delivery outcome."""

    if 200 <= status < 300:
        return DeliveryOutcome.sent()
    if 400 <= status < 500:
        return DeliveryOutcome.failed(FailureKind.CONFIG_ERROR, CONFIG_ERROR_DETAIL)
    detail = f"HTTP {status}"
    if description:
        detail = f"{detail}: {description}"
    return DeliveryOutcome.failed(FailureKind.UNKNOWN_ERROR, detail)


def classify_exception(exc: BaseException) -> DeliveryOutcome:
    """Map a transport exception onto a delivery outcome.

    Name resolution, connection and timeout failures count as network
    errors; anything else is unknown and keeps the exception text.
    """

    if isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError, OSError)):
        return DeliveryOutcome.failed(FailureKind.NETWORK_ERROR, NETWORK_ERROR_DETAIL)
    detail = str(exc) or exc.__class__.__name__
    return DeliveryOutcome.failed(FailureKind.UNKNOWN_ERROR, detail)


class DeliveryExecutor:
    """Perform exactly one Telegram call per request, without retries."""

    def __init__(self, api: TelegramAPIProtocol):
        self._api = api

    async def execute(self, request: DeliveryRequest) -> DeliveryOutcome:
        try:
            response: TransportResponse = await self._api.send_message(request)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            outcome = classify_exception(exc)
            logger.debug("Delivery raised %r, classified as %s", exc, outcome.kind)
            return outcome
        return classify_response(response.status, response.description)


@dataclass(frozen=True, slots=True)
class CredentialTestResult:
    """Outcome of a credential test and whether it was persisted."""

    outcome: DeliveryOutcome
    recorded: bool

    @property
    def message(self) -> str:
        if self.outcome.is_sent:
            return TEST_SUCCESS_MESSAGE
        return TEST_FAILURE_MESSAGE.format(detail=self.outcome.detail)


class CredentialTester:
    """Send a diagnostic message with the current credentials.

    Relay rules are not applied. The result is recorded against the
    snapshot that was tested, so a credential change made while the test message
    was in flight keeps the verification flag cleared.
    """

    def __init__(self, executor: DeliveryExecutor, store: ConfigStore):
        self._executor = executor
        self._store = store

    async def test(self, config: ForwardingConfiguration | None = None) -> CredentialTestResult:
        snapshot = config if config is not None else self._store.read()
        outcome = await self._executor.execute(build_diagnostic_request(snapshot))
        try:
            recorded = self._store.record_credential_test(snapshot, verified=outcome.is_sent)
        except sqlite3.Error:
            logger.exception("Failed to store credential test result")
            recorded = False
        if outcome.is_sent:
            logger.info("Credential test succeeded")
        else:
            logger.warning("Credential test failed: %s", outcome.detail)
        return CredentialTestResult(outcome=outcome, recorded=recorded)
