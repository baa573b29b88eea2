"""Relay rules applied before forwarding messages."""

from __future__ import annotations

from dataclasses import dataclass

from .models import ForwardingConfiguration, InboundMessage
from .utils import is_blank

REASON_DISABLED = "relay disabled"
REASON_MISSING_CREDENTIALS = "missing credentials"
REASON_SENDER_NOT_ALLOWED = "sender not allowed"
REASON_FILTER_MISMATCH = "filter mismatch"


@dataclass(frozen=True, slots=True)
class RelayDecision:
    """Result of evaluating the relay rules."""

    proceed: bool
    reason: str | None = None


_PROCEED = RelayDecision(True)


def decide(config: ForwardingConfiguration, message: InboundMessage) -> RelayDecision:
    """Return whether ``message`` should be relayed under ``config``.

    Rules are checked in order and the first one that rejects the message
    provides the reason.
    """

    if not config.active:
        return RelayDecision(False, REASON_DISABLED)

    if is_blank(config.recipient_id) or is_blank(config.bot_token):
        return RelayDecision(False, REASON_MISSING_CREDENTIALS)

    if not config.forward_all and message.sender not in config.sender_allow_list:
        return RelayDecision(False, REASON_SENDER_NOT_ALLOWED)

    if not is_blank(config.text_filter) and not _contains(message.body, config.text_filter):
        return RelayDecision(False, REASON_FILTER_MISMATCH)

    return _PROCEED


def _contains(text: str, needle: str) -> bool:
    return needle.casefold() in text.casefold()
