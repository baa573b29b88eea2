"""Build outgoing Telegram requests from inbound messages."""

from __future__ import annotations

from .models import DeliveryRequest, ForwardingConfiguration, InboundMessage
from .utils import is_blank

DIAGNOSTIC_TEXT = "test"


def compose_text(prefix: str, body: str) -> str:
    """Prepend ``prefix`` to ``body`` separated by a single space."""

    if is_blank(prefix):
        return body
    return f"{prefix} {body}"


def build_delivery_request(
    config: ForwardingConfiguration, message: InboundMessage
) -> DeliveryRequest:
    return DeliveryRequest(
        bot_token=config.bot_token,
        recipient_id=config.recipient_id,
        text=compose_text(config.prefix, message.body),
    )


def build_diagnostic_request(config: ForwardingConfiguration) -> DeliveryRequest:
    # Probes skip the prefix and filters.
    return DeliveryRequest(
        bot_token=config.bot_token,
        recipient_id=config.recipient_id,
        text=DIAGNOSTIC_TEXT,
    )
