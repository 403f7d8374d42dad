"""Local database authentication: users db for accounts, key files for keys."""

from __future__ import annotations

import logging

from cardauth.app.context import LoginContext
from cardauth.app.conv import Conversation
from cardauth.app.keys import KeyStore
from cardauth.app.usersdb import UsersDB
from cardauth.core.auth import Authenticator, digest_algorithm
from cardauth.core.errors import AmbiguousAccountError, NoAccountError

lg = logging.getLogger(__name__)


def resolve_account(db: UsersDB, serialno: str, conv: Conversation) -> str:
    """Account for the card; asks the user when the card has several."""
    try:
        return db.lookup_by_serialno(serialno)
    except AmbiguousAccountError as exc:
        lg.info("card %s is associated with %d accounts", serialno, len(exc.accounts))
        account = conv.ask("Username").strip()
        if not account:
            raise NoAccountError("no account given") from exc
        return account


def authenticate(ctx: LoginContext, username: str | None) -> str:
    """Authenticate the inserted card as *username* (or its own account)."""
    db = UsersDB(ctx.config.users_db)
    serialno = ctx.info.serialno
    if not serialno:
        raise NoAccountError("card reported no serial number")
    if username is None:
        username = resolve_account(db, serialno, ctx.conv)
    ctx.conv.tell(f"Trying authentication as user `{username}'...")

    if not db.check(serialno, username):
        raise NoAccountError(f"Serial no {serialno} is not associated with {username}")

    key = KeyStore(ctx.config.key_directory).load(serialno)
    lg.info("serial number %s, key loaded", serialno)

    authenticator = Authenticator(
        ctx.card,
        ctx.pin_provider,
        key_id=ctx.config.key_id,
        digest=digest_algorithm(ctx.config.digest),
    )
    result = authenticator.authenticate(key)
    if not result.authenticated:
        raise result.exception
    return username
