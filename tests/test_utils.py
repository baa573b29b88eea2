from __future__ import annotations

from sms_relay.utils import is_blank, mask_token, parse_bool, parse_sender_list


def test_parse_bool() -> None:
    assert parse_bool("on") is True
    assert parse_bool(" YES ") is True
    assert parse_bool("off", default=True) is False
    assert parse_bool("0", default=True) is False
    assert parse_bool("maybe", default=True) is True
    assert parse_bool(None) is False
    assert parse_bool("   ", default=True) is True


def test_parse_sender_list_drops_blanks_and_duplicates() -> None:
    assert parse_sender_list("  555   777\n555 +1999 ") == ("555", "777", "+1999")
    assert parse_sender_list("") == ()
    assert parse_sender_list(None) == ()


def test_is_blank() -> None:
    assert is_blank(None) is True
    assert is_blank(" \t") is True
    assert is_blank(" x ") is False


def test_mask_token() -> None:
    assert mask_token("123456:ABC-DEF") == "123456:***"
    assert mask_token("") == "<not set>"
    assert mask_token("abc") == "***"
    assert mask_token("abcdefgh") == "ab***gh"
