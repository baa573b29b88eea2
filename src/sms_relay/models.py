"""Data models used across the relay service."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable

_MISSING_SENDER = "missing"


@dataclass(frozen=True, slots=True)
class ForwardingConfiguration:
    """Persisted relay rules and Telegram credentials."""

    active: bool = False
    forward_all: bool = False
    sender_allow_list: tuple[str, ...] = ()
    text_filter: str = ""
    prefix: str = "FW:"
    bot_token: str = ""
    recipient_id: str = ""
    credentials_verified: bool = False

    def with_updates(self, **changes: Any) -> "ForwardingConfiguration":
        if "sender_allow_list" in changes:
            changes["sender_allow_list"] = tuple(changes["sender_allow_list"])
        return replace(self, **changes)

    def same_credentials(self, other: "ForwardingConfiguration") -> bool:
        return self.bot_token == other.bot_token and self.recipient_id == other.recipient_id


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """Single text message received from the device."""

    sender: str
    body: str

    @classmethod
    def from_parts(cls, sender: str | None, parts: Iterable[str]) -> "InboundMessage":
        """Join a multi-part message into one body, keeping arrival order."""

        return cls(sender=sender or _MISSING_SENDER, body="".join(parts))


@dataclass(frozen=True, slots=True)
class DeliveryRequest:
    """Outgoing Telegram call before transport encoding."""

    bot_token: str
    recipient_id: str
    text: str


class DeliveryStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


class FailureKind(str, Enum):
    CONFIG_ERROR = "config_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of one relay attempt."""

    status: DeliveryStatus
    reason: str | None = None
    kind: FailureKind | None = None
    detail: str | None = None

    @classmethod
    def sent(cls) -> "DeliveryOutcome":
        return cls(DeliveryStatus.SENT)

    @classmethod
    def skipped(cls, reason: str) -> "DeliveryOutcome":
        return cls(DeliveryStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, kind: FailureKind, detail: str) -> "DeliveryOutcome":
        return cls(DeliveryStatus.FAILED, kind=kind, detail=detail)

    @property
    def is_sent(self) -> bool:
        return self.status is DeliveryStatus.SENT

    @property
    def is_failed(self) -> bool:
        return self.status is DeliveryStatus.FAILED

    def describe(self) -> str:
        if self.status is DeliveryStatus.SENT:
            return "sent"
        if self.status is DeliveryStatus.SKIPPED:
            return f"skipped: {self.reason}"
        kind = self.kind.value if self.kind is not None else FailureKind.UNKNOWN_ERROR.value
        return f"failed ({kind}): {self.detail}"


@dataclass(slots=True)
class RuntimeOptions:
    """Tunable behaviour of the relay service."""

    request_timeout: float = 15.0
    workers: int = 4
