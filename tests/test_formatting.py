from __future__ import annotations

from sms_relay.formatting import (
    DIAGNOSTIC_TEXT,
    build_delivery_request,
    build_diagnostic_request,
    compose_text,
)
from sms_relay.models import DeliveryRequest, ForwardingConfiguration, InboundMessage


def test_compose_text_inserts_single_space() -> None:
    assert compose_text("FW:", "hi") == "FW: hi"
    assert compose_text("", "hi") == "hi"
    assert compose_text("  ", "hi") == "hi"


def test_compose_text_keeps_body_verbatim() -> None:
    assert compose_text("[SMS]", "  spaced  & 100% ") == "[SMS]   spaced  & 100% "


def test_build_delivery_request_uses_configuration() -> None:
    config = ForwardingConfiguration(prefix="FW:", bot_token="T", recipient_id="C")

    request = build_delivery_request(config, InboundMessage(sender="555", body="hello"))

    assert request == DeliveryRequest(bot_token="T", recipient_id="C", text="FW: hello")


def test_diagnostic_request_ignores_prefix() -> None:
    config = ForwardingConfiguration(prefix="FW:", bot_token="T", recipient_id="C")

    request = build_diagnostic_request(config)

    assert request.text == DIAGNOSTIC_TEXT
    assert request.bot_token == "T"
    assert request.recipient_id == "C"
