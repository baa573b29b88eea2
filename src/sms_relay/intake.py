"""JSON-lines intake of inbound messages."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, BinaryIO, Mapping

from .models import InboundMessage

logger = logging.getLogger(__name__)


class IntakeError(ValueError):
    """Raised when an inbound line cannot be turned into a message."""


def parse_inbound(payload: Mapping[str, Any]) -> InboundMessage:
    """Build a message from ``sender``/``from`` and ``body``/``text``/``parts``."""

    sender = payload.get("sender", payload.get("from"))
    if sender is not None and not isinstance(sender, (str, int)):
        raise IntakeError("sender must be a string")

    parts = payload.get("parts")
    if parts is not None:
        if not isinstance(parts, list) or not all(isinstance(part, str) for part in parts):
            raise IntakeError("parts must be a list of strings")
        return InboundMessage.from_parts(_sender_text(sender), parts)

    body = payload.get("body", payload.get("text"))
    if not isinstance(body, str):
        raise IntakeError("message body is missing")
    return InboundMessage.from_parts(_sender_text(sender), [body])


def parse_inbound_line(line: str) -> InboundMessage | None:
    """Parse one JSON line; blank lines yield ``None``."""

    stripped = line.strip()
    if not stripped:
        return None
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise IntakeError(f"invalid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise IntakeError("expected a JSON object")
    return parse_inbound(payload)


async def read_inbound_lines(stream: BinaryIO) -> AsyncIterator[InboundMessage]:
    """Yield messages from the byte ``stream`` until EOF, skipping malformed lines.

    Lines are decoded one at a time so an undecodable line only loses itself.
    """

    line_number = 0
    while True:
        raw = await asyncio.to_thread(stream.readline)
        if not raw:
            return
        line_number += 1
        try:
            message = parse_inbound_line(_decode_line(raw))
        except IntakeError as exc:
            logger.warning("Skipping inbound line %d: %s", line_number, exc)
            continue
        if message is not None:
            yield message


def _decode_line(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise IntakeError(f"invalid UTF-8 at byte {exc.start}") from exc


def _sender_text(sender: str | int | None) -> str | None:
    if sender is None:
        return None
    text = str(sender).strip()
    return text or None
