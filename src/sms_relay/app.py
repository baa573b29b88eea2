"""Application bootstrap for the SMS relay."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections import Counter
from collections.abc import AsyncIterable
from pathlib import Path

import aiohttp

from .config_store import ConfigStore
from .decision import decide
from .delivery import CredentialTester, CredentialTestResult, DeliveryExecutor
from .formatting import build_delivery_request
from .models import (
    DeliveryOutcome,
    DeliveryStatus,
    FailureKind,
    InboundMessage,
    RuntimeOptions,
)
from .reporting import LogReporter, OutcomeReporter
from .telegram import TelegramAPI

logger = logging.getLogger(__name__)


class RelayPipeline:
    """Decide, build and deliver a single inbound message."""

    def __init__(
        self,
        store: ConfigStore,
        executor: DeliveryExecutor,
        reporter: OutcomeReporter,
    ):
        self._store = store
        self._executor = executor
        self._reporter = reporter

    async def relay(self, message: InboundMessage) -> DeliveryOutcome:
        try:
            snapshot = self._store.read()
        except sqlite3.Error as exc:
            logger.exception("Failed to read relay configuration")
            outcome = DeliveryOutcome.failed(FailureKind.UNKNOWN_ERROR, str(exc))
            self._reporter.report(outcome, message=message)
            return outcome

        decision = decide(snapshot, message)
        if not decision.proceed:
            logger.debug("Message from %s skipped: %s", message.sender, decision.reason)
            return DeliveryOutcome.skipped(decision.reason or "")

        outcome = await self._executor.execute(build_delivery_request(snapshot, message))
        if outcome.is_failed:
            self._reporter.report(outcome, message=message)
        else:
            logger.info("Message from %s relayed", message.sender)
        return outcome


class RelayDispatcher:
    """Queue inbound messages and relay them with a pool of workers.

    Each message is one independent attempt; completion order between
    messages is not guaranteed.
    """

    def __init__(
        self,
        pipeline: RelayPipeline,
        reporter: OutcomeReporter,
        *,
        workers: int = 4,
    ):
        self._pipeline = pipeline
        self._reporter = reporter
        self._worker_count = max(1, int(workers))
        self._queue: asyncio.Queue[InboundMessage] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []
        self.stats: Counter[DeliveryStatus] = Counter()

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(f"relay-worker-{index}"), name=f"relay-worker-{index}")
            for index in range(self._worker_count)
        ]

    def submit(self, message: InboundMessage) -> None:
        self._queue.put_nowait(message)

    async def drain(self) -> None:
        """Wait for queued messages, then stop the workers."""

        await self._queue.join()
        await self.stop()

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _worker(self, name: str) -> None:
        while True:
            message = await self._queue.get()
            try:
                outcome = await self._pipeline.relay(message)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception(
                    "Task %s failed while relaying message from %s", name, message.sender
                )
                outcome = DeliveryOutcome.failed(
                    FailureKind.UNKNOWN_ERROR, str(exc) or exc.__class__.__name__
                )
                self._report_safely(outcome, message)
            finally:
                self._queue.task_done()
            self.stats[outcome.status] += 1

    def _report_safely(self, outcome: DeliveryOutcome, message: InboundMessage) -> None:
        try:
            self._reporter.report(outcome, message=message)
        except Exception:
            logger.exception("Failed to report outcome for message from %s", message.sender)


class RelayApp:
    """High level coordinator tying together storage, Telegram and intake."""

    def __init__(
        self,
        *,
        db_path: Path,
        runtime: RuntimeOptions | None = None,
        reporter: OutcomeReporter | None = None,
    ):
        self._store = ConfigStore(db_path)
        self._runtime = runtime or RuntimeOptions()
        self._reporter = reporter or LogReporter()

    @property
    def store(self) -> ConfigStore:
        return self._store

    def _executor(self, session: aiohttp.ClientSession) -> DeliveryExecutor:
        return DeliveryExecutor(TelegramAPI(session, timeout=self._runtime.request_timeout))

    async def serve(self, messages: AsyncIterable[InboundMessage]) -> Counter[DeliveryStatus]:
        """Relay every message from ``messages`` until the source is exhausted.

        If the source raises, queued messages are still relayed before the
        error propagates.
        """

        async with aiohttp.ClientSession() as session:
            pipeline = RelayPipeline(self._store, self._executor(session), self._reporter)
            dispatcher = RelayDispatcher(
                pipeline, self._reporter, workers=self._runtime.workers
            )
            dispatcher.start()
            logger.info("Relay started with %d workers", self._runtime.workers)
            try:
                try:
                    async for message in messages:
                        dispatcher.submit(message)
                except Exception:
                    logger.exception("Message source failed; relaying messages already queued")
                    await dispatcher.drain()
                    raise
                await dispatcher.drain()
            finally:
                await dispatcher.stop()
        logger.info(
            "Relay finished: %d sent, %d skipped, %d failed",
            dispatcher.stats[DeliveryStatus.SENT],
            dispatcher.stats[DeliveryStatus.SKIPPED],
            dispatcher.stats[DeliveryStatus.FAILED],
        )
        return dispatcher.stats

    async def relay_once(self, message: InboundMessage) -> DeliveryOutcome:
        async with aiohttp.ClientSession() as session:
            pipeline = RelayPipeline(self._store, self._executor(session), self._reporter)
            return await pipeline.relay(message)

    async def test_credentials(self) -> CredentialTestResult:
        async with aiohttp.ClientSession() as session:
            tester = CredentialTester(self._executor(session), self._store)
            return await tester.test()

    def close(self) -> None:
        self._store.close()
