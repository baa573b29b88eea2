"""Telegram Bot API transport for relayed messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote, urlencode

import aiohttp
from yarl import URL

from .models import DeliveryRequest
from .utils import mask_token

_API_BASE = "https://api.telegram.org"
_DEFAULT_TIMEOUT = 15.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """HTTP status and Bot API description of a completed call."""

    status: int
    description: str | None = None


class TelegramAPIProtocol(Protocol):
    async def send_message(self, request: DeliveryRequest) -> TransportResponse: ...


def build_send_message_url(request: DeliveryRequest) -> str:
    """Encode ``request`` into a ``sendMessage`` URL.

    Token, chat id and text are percent-encoded so that ``&``, ``%``, spaces
    and non-ASCII characters survive the query string.
    """

    token = quote(request.bot_token, safe=":")
    query = urlencode(
        {"chat_id": request.recipient_id, "text": request.text},
        quote_via=quote,
        safe="",
    )
    return f"{_API_BASE}/bot{token}/sendMessage?{query}"


def _describe_url(request: DeliveryRequest) -> str:
    return f"{_API_BASE}/bot{mask_token(request.bot_token)}/sendMessage"


class TelegramAPI:
    """Lightweight Telegram Bot API wrapper."""

    def __init__(self, session: aiohttp.ClientSession, *, timeout: float = _DEFAULT_TIMEOUT):
        self._session = session
        self._timeout = timeout

    async def send_message(self, request: DeliveryRequest) -> TransportResponse:
        """Perform one ``sendMessage`` call.

        Transport errors propagate to the caller, which owns classification.
        """

        url = URL(build_send_message_url(request), encoded=True)
        timeout_cfg = aiohttp.ClientTimeout(total=self._timeout)
        logger.debug("GET %s (chat %s)", _describe_url(request), request.recipient_id)
        async with self._session.get(url, timeout=timeout_cfg) as resp:
            payload = await _read_payload(resp)
            status = resp.status
        description = _extract_description(payload)
        if status >= 400:
            logger.info("Telegram responded with status %s: %s", status, description)
        return TransportResponse(status=status, description=description)


async def _read_payload(resp: aiohttp.ClientResponse) -> Any:
    try:
        return await resp.json(content_type=None)
    except ValueError:
        return None


def _extract_description(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    description = payload.get("description")
    if description is None:
        return None
    return str(description)
