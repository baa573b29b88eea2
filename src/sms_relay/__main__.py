"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from .app import RelayApp
from .intake import read_inbound_lines
from .models import DeliveryStatus, ForwardingConfiguration, InboundMessage, RuntimeOptions
from .reporting import ConsoleReporter, LogReporter
from .utils import mask_token, parse_bool, parse_sender_list


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Relay inbound SMS messages to Telegram")
    parser.add_argument(
        "--db-path",
        default=os.getenv("SMS_RELAY_DB_PATH", "sms_relay.db"),
        help="Path to the settings database (env SMS_RELAY_DB_PATH)",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument(
        "--timeout", type=float, default=15.0, help="Telegram request timeout in seconds"
    )
    parser.add_argument("--workers", type=int, default=4, help="Concurrent relay workers")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("show", help="Print the current configuration")

    set_parser = commands.add_parser("set", help="Change relay settings")
    set_parser.add_argument("--active", help="on/off")
    set_parser.add_argument("--forward-all", help="on/off")
    set_parser.add_argument("--senders", help="Space separated list of allowed senders")
    set_parser.add_argument("--add-sender", action="append", default=[])
    set_parser.add_argument("--remove-sender", action="append", default=[])
    set_parser.add_argument("--filter", dest="text_filter", help="Required text, empty to disable")
    set_parser.add_argument("--prefix", help="Text prepended to relayed messages")
    set_parser.add_argument("--bot-token", help="Telegram bot token")
    set_parser.add_argument("--recipient-id", help="Telegram chat or channel id")

    commands.add_parser("test", help="Send a test message with the current credentials")

    relay_parser = commands.add_parser("relay", help="Relay a single message")
    relay_parser.add_argument("--sender", required=True)
    relay_parser.add_argument("--body", required=True)

    commands.add_parser("serve", help="Relay JSON lines read from stdin")
    return parser


def _collect_changes(
    args: argparse.Namespace, current: ForwardingConfiguration
) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    if args.active is not None:
        changes["active"] = parse_bool(args.active, current.active)
    if args.forward_all is not None:
        changes["forward_all"] = parse_bool(args.forward_all, current.forward_all)

    senders = list(current.sender_allow_list)
    if args.senders is not None:
        senders = list(parse_sender_list(args.senders))
    for sender in args.add_sender:
        senders.extend(parse_sender_list(sender))
    removed = {value for sender in args.remove_sender for value in parse_sender_list(sender)}
    if args.senders is not None or args.add_sender or removed:
        merged = parse_sender_list(" ".join(senders))
        changes["sender_allow_list"] = tuple(s for s in merged if s not in removed)

    if args.text_filter is not None:
        changes["text_filter"] = args.text_filter
    if args.prefix is not None:
        changes["prefix"] = args.prefix
    if args.bot_token is not None:
        changes["bot_token"] = args.bot_token.strip()
    if args.recipient_id is not None:
        changes["recipient_id"] = args.recipient_id.strip()
    return changes


def format_configuration(config: ForwardingConfiguration) -> str:
    senders = " ".join(config.sender_allow_list) or "-"
    lines = [
        f"active:        {'on' if config.active else 'off'}",
        f"forward all:   {'on' if config.forward_all else 'off'}",
        f"senders:       {senders}",
        f"filter:        {config.text_filter or '-'}",
        f"prefix:        {config.prefix or '-'}",
        f"bot token:     {mask_token(config.bot_token)}",
        f"recipient id:  {config.recipient_id or '<not set>'}",
        f"verified:      {'yes' if config.credentials_verified else 'no'}",
    ]
    return "\n".join(lines)


def run(args: argparse.Namespace) -> int:
    runtime = RuntimeOptions(request_timeout=args.timeout, workers=args.workers)
    reporter = LogReporter() if args.command == "serve" else ConsoleReporter()
    app = RelayApp(db_path=Path(args.db_path), runtime=runtime, reporter=reporter)
    try:
        if args.command == "show":
            print(format_configuration(app.store.read()))
            return 0

        if args.command == "set":
            changes = _collect_changes(args, app.store.read())
            stored = app.store.update(**changes)
            print(format_configuration(stored))
            return 0

        if args.command == "test":
            result = asyncio.run(app.test_credentials())
            print(result.message)
            return 0 if result.outcome.is_sent else 1

        if args.command == "relay":
            message = InboundMessage(sender=args.sender, body=args.body)
            outcome = asyncio.run(app.relay_once(message))
            if outcome.is_failed:
                # already printed by the console reporter
                return 1
            print(outcome.describe())
            return 0

        if args.command == "serve":
            stats = asyncio.run(app.serve(read_inbound_lines(sys.stdin.buffer)))
            return 1 if stats[DeliveryStatus.FAILED] else 0
    finally:
        app.close()
    return 2


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.timeout <= 0:
        parser.error("--timeout must be positive")

    try:
        code = run(args)
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Stopped by user request")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
