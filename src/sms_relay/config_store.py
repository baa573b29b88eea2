"""SQLite backed storage for the relay configuration."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Callable, Mapping

from .models import ForwardingConfiguration
from .utils import parse_bool

_DB_PRAGMA = "PRAGMA journal_mode=WAL;" "PRAGMA synchronous=NORMAL;"

_KEY_ACTIVE = "relay.active"
_KEY_FORWARD_ALL = "relay.forward_all"
_KEY_SENDERS = "relay.senders"
_KEY_FILTER = "relay.filter"
_KEY_PREFIX = "relay.prefix"
_KEY_BOT_TOKEN = "telegram.bot_token"
_KEY_RECIPIENT = "telegram.recipient_id"
_KEY_VERIFIED = "telegram.verified"

logger = logging.getLogger(__name__)


class ConfigStore:
    """Persisted relay settings.

    Every write goes through one transaction that compares the new
    credentials with the stored ones, so ``credentials_verified`` can never
    survive a change of bot token or recipient.
    """

    def __init__(self, path: Path):
        self._path = path
        self._conn = sqlite3.connect(self._path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._setup()

    # ------------------------------------------------------------------
    # Schema initialisation
    # ------------------------------------------------------------------
    def _setup(self) -> None:
        with closing(self._conn.cursor()) as cur:
            for statement in _DB_PRAGMA.split(";"):
                if statement.strip():
                    cur.execute(statement)
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    # ------------------------------------------------------------------
    # Forwarding configuration
    # ------------------------------------------------------------------
    def read(self) -> ForwardingConfiguration:
        """Return a snapshot of the stored configuration, defaults when absent."""

        with closing(self._conn.cursor()) as cur:
            values = _load_settings(cur)
        return _configuration_from_settings(values)

    def write(self, config: ForwardingConfiguration) -> ForwardingConfiguration:
        """Persist ``config`` and return what was actually stored.

        ``write`` can lower ``credentials_verified`` but never raise it; a
        change of bot token or recipient always stores ``False``.
        """

        return self._apply(lambda _current: config)

    def update(self, **changes: Any) -> ForwardingConfiguration:
        """Apply ``changes`` to the stored configuration."""

        return self._apply(lambda current: current.with_updates(**changes))

    def _apply(
        self,
        build: Callable[[ForwardingConfiguration], ForwardingConfiguration],
    ) -> ForwardingConfiguration:
        with closing(self._conn.cursor()) as cur:
            cur.execute("BEGIN IMMEDIATE")
            try:
                current = _configuration_from_settings(_load_settings(cur))
                requested = build(current)
                if current.same_credentials(requested):
                    verified = current.credentials_verified and requested.credentials_verified
                else:
                    verified = False
                    logger.info("Telegram credentials changed; verification reset")
                stored = requested.with_updates(credentials_verified=verified)
                _store_settings(cur, _configuration_to_settings(stored))
                cur.execute("COMMIT")
            except BaseException:
                cur.execute("ROLLBACK")
                raise
        return stored

    def record_credential_test(
        self, tested: ForwardingConfiguration, *, verified: bool
    ) -> bool:
        """Store a credential test result for the snapshot that was tested.

        The flag is only written while the stored credentials still match
        ``tested``. Returns ``True`` when the result was recorded.
        """

        with closing(self._conn.cursor()) as cur:
            cur.execute("BEGIN IMMEDIATE")
            try:
                current = _configuration_from_settings(_load_settings(cur))
                if not current.same_credentials(tested):
                    cur.execute("ROLLBACK")
                    logger.info("Credentials changed during test; result discarded")
                    return False
                _store_settings(cur, {_KEY_VERIFIED: _format_bool(verified)})
                cur.execute("COMMIT")
            except BaseException:
                cur.execute("ROLLBACK")
                raise
        return True

    def close(self) -> None:
        self._conn.close()


def _load_settings(cur: sqlite3.Cursor) -> dict[str, str]:
    cur.execute("SELECT key, value FROM settings")
    return {str(row["key"]): str(row["value"]) for row in cur.fetchall()}


def _store_settings(cur: sqlite3.Cursor, values: Mapping[str, str]) -> None:
    cur.executemany(
        "INSERT INTO settings(key, value) VALUES(?, ?)"
        " ON CONFLICT(key) DO UPDATE SET value=excluded.value",
        list(values.items()),
    )


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _parse_senders(payload: str | None) -> tuple[str, ...]:
    if not payload:
        return ()
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed sender list in settings")
        return ()
    if not isinstance(data, list):
        return ()
    return tuple(str(item) for item in data if str(item))


def _configuration_from_settings(values: Mapping[str, str]) -> ForwardingConfiguration:
    defaults = ForwardingConfiguration()
    return ForwardingConfiguration(
        active=parse_bool(values.get(_KEY_ACTIVE), defaults.active),
        forward_all=parse_bool(values.get(_KEY_FORWARD_ALL), defaults.forward_all),
        sender_allow_list=_parse_senders(values.get(_KEY_SENDERS)),
        text_filter=values.get(_KEY_FILTER, defaults.text_filter),
        prefix=values.get(_KEY_PREFIX, defaults.prefix),
        bot_token=values.get(_KEY_BOT_TOKEN, defaults.bot_token),
        recipient_id=values.get(_KEY_RECIPIENT, defaults.recipient_id),
        credentials_verified=parse_bool(
            values.get(_KEY_VERIFIED), defaults.credentials_verified
        ),
    )


def _configuration_to_settings(config: ForwardingConfiguration) -> dict[str, str]:
    return {
        _KEY_ACTIVE: _format_bool(config.active),
        _KEY_FORWARD_ALL: _format_bool(config.forward_all),
        _KEY_SENDERS: json.dumps(list(config.sender_allow_list)),
        _KEY_FILTER: config.text_filter,
        _KEY_PREFIX: config.prefix,
        _KEY_BOT_TOKEN: config.bot_token,
        _KEY_RECIPIENT: config.recipient_id,
        _KEY_VERIFIED: _format_bool(config.credentials_verified),
    }
