"""Miscellaneous helpers."""

from __future__ import annotations


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse textual boolean configuration values.

    Supported truthy values: ``on``, ``true``, ``yes``, ``1`` (case-insensitive).
    Supported falsy values: ``off``, ``false``, ``no``, ``0``.
    Any other value returns ``default``.
    """

    if value is None:
        return default
    normalized = value.strip().lower()
    if not normalized:
        return default
    if normalized in {"on", "true", "yes", "1"}:
        return True
    if normalized in {"off", "false", "no", "0"}:
        return False
    return default


def parse_sender_list(value: str | None) -> tuple[str, ...]:
    """Split a whitespace separated list of senders, keeping the first occurrence."""

    if not value:
        return ()
    seen: set[str] = set()
    senders: list[str] = []
    for entry in value.split():
        if entry in seen:
            continue
        seen.add(entry)
        senders.append(entry)
    return tuple(senders)


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def mask_token(token: str | None) -> str:
    """Hide the secret part of a bot token for logs and output."""

    if not token:
        return "<not set>"
    bot_id, sep, secret = token.partition(":")
    if sep and secret:
        return f"{bot_id}:***"
    if len(token) <= 4:
        return "***"
    return f"{token[:2]}***{token[-2:]}"
