from __future__ import annotations

from pathlib import Path

import aiohttp
import pytest

from sms_relay.__main__ import main
from sms_relay.app import RelayApp
from sms_relay.config_store import ConfigStore
from sms_relay.delivery import CONFIG_ERROR_DETAIL, DeliveryExecutor
from sms_relay.models import DeliveryRequest
from sms_relay.telegram import TelegramAPIProtocol, TransportResponse


class RejectingTelegramAPI(TelegramAPIProtocol):
    async def send_message(self, request: DeliveryRequest) -> TransportResponse:
        return TransportResponse(status=400, description="Bad Request: chat not found")


def run_cli(db_path: Path, *args: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(["--db-path", str(db_path), *args])
    return int(excinfo.value.code or 0)


def test_set_and_show(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db_path = tmp_path / "cli.sqlite"

    code = run_cli(
        db_path,
        "set",
        "--active",
        "on",
        "--senders",
        "555  777 555",
        "--filter",
        "bank",
        "--bot-token",
        " 123456:SECRET ",
        "--recipient-id",
        "-100",
    )
    assert code == 0

    config = ConfigStore(db_path).read()
    assert config.active is True
    assert config.sender_allow_list == ("555", "777")
    assert config.text_filter == "bank"
    assert config.bot_token == "123456:SECRET"
    assert config.recipient_id == "-100"

    capsys.readouterr()
    assert run_cli(db_path, "show") == 0
    output = capsys.readouterr().out
    assert "123456:***" in output
    assert "SECRET" not in output
    assert "555 777" in output


def test_add_and_remove_senders(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.sqlite"
    run_cli(db_path, "set", "--senders", "555")

    run_cli(db_path, "set", "--add-sender", "777", "--add-sender", "888 555")
    assert ConfigStore(db_path).read().sender_allow_list == ("555", "777", "888")

    run_cli(db_path, "set", "--remove-sender", "555")
    assert ConfigStore(db_path).read().sender_allow_list == ("777", "888")


def test_relay_skipped_message_exits_cleanly(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "cli.sqlite"

    code = run_cli(db_path, "relay", "--sender", "555", "--body", "hello")

    assert code == 0
    assert capsys.readouterr().out.strip() == "skipped: relay disabled"


def test_invalid_worker_count_is_rejected(tmp_path: Path) -> None:
    code = run_cli(tmp_path / "cli.sqlite", "--workers", "0", "show")

    assert code == 2


def test_relay_failure_is_printed_once(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    db_path = tmp_path / "cli.sqlite"
    run_cli(db_path, "set", "--active", "on", "--forward-all", "on")
    run_cli(db_path, "set", "--bot-token", "1:A", "--recipient-id", "42")

    def fake_executor(self: RelayApp, session: aiohttp.ClientSession) -> DeliveryExecutor:
        return DeliveryExecutor(RejectingTelegramAPI())

    monkeypatch.setattr(RelayApp, "_executor", fake_executor)
    capsys.readouterr()

    code = run_cli(db_path, "relay", "--sender", "555", "--body", "hello")

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    assert captured.err.count(CONFIG_ERROR_DETAIL) == 1
