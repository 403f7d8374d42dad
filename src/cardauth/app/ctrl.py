"""Administration operations behind the command line tool."""

from __future__ import annotations

import logging

from cardauth.app.config import Config
from cardauth.app.context import card_session
from cardauth.app.conv import Conversation
from cardauth.app.display import format_card_info
from cardauth.app.keys import KeyStore
from cardauth.app.session import login
from cardauth.app.usersdb import UsersDB
from cardauth.core.scd import CardTerminal, LearnMessage, ReadKeyMessage, wait_for_card

lg = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Card operations
# ---------------------------------------------------------------------------


def dump(config: Config) -> str:
    """Card attributes and authentication key, formatted."""
    with CardTerminal(card_session(config)) as terminal:
        wait_for_card(terminal, config.wait_timeout)
        info = terminal.send(LearnMessage()).info
        key = terminal.send(ReadKeyMessage(key_id=config.key_id)).key
    return format_card_info(info, key)


def set_key(config: Config) -> tuple[str, str]:
    """Store the inserted card's key; returns (serialno, key file)."""
    with CardTerminal(card_session(config)) as terminal:
        serialno = wait_for_card(terminal, config.wait_timeout)
        key = terminal.send(ReadKeyMessage(key_id=config.key_id)).key
    return serialno, KeyStore(config.key_directory).store(serialno, key)


def show_key(config: Config, serialno: str | None = None) -> str:
    """Key file content for *serialno*, or for the inserted card."""
    if serialno is None:
        with CardTerminal(card_session(config)) as terminal:
            serialno = wait_for_card(terminal, config.wait_timeout)
    return KeyStore(config.key_directory).read(serialno).decode("utf-8", errors="replace")


def test(config: Config, conv: Conversation, account: str | None = None) -> str:
    """Run a complete login; returns the authenticated account."""
    return login(config, conv, account)


# ---------------------------------------------------------------------------
# Users database
# ---------------------------------------------------------------------------


def list_users(config: Config) -> list[tuple[str, str]]:
    return UsersDB(config.users_db).entries()


def add_user(config: Config, serialno: str, account: str) -> bool:
    added = UsersDB(config.users_db).add(serialno, account)
    if added:
        lg.info("associated card %s with %s", serialno, account)
    else:
        lg.info("card %s already associated with %s", serialno, account)
    return added


def remove_user(config: Config, serialno: str | None = None, account: str | None = None) -> int:
    removed = UsersDB(config.users_db).remove(serialno=serialno, account=account)
    lg.info("removed %d entries", removed)
    return removed
