"""Login session: card daemon, card presence, authentication method."""

from __future__ import annotations

import logging

from cardauth.app import localdb, x509
from cardauth.app.config import Config
from cardauth.app.context import LoginContext, card_session
from cardauth.app.conv import Conversation, ConversationPinProvider
from cardauth.core.errors import AuthenticationFailed, CardAuthError, ConfigurationError
from cardauth.core.scd import CardTerminal, LearnMessage, wait_for_card

lg = logging.getLogger(__name__)

_METHODS = {
    "localdb": localdb.authenticate,
    "x509": x509.authenticate,
}


def login(config: Config, conv: Conversation, username: str | None = None) -> str:
    """Authenticate the card holder and return the account name.

    Every failure surfaces as AuthenticationFailed; the cause is logged.
    """
    terminal = CardTerminal(card_session(config))
    try:
        method = _METHODS.get(config.auth_method)
        if method is None:
            raise ConfigurationError(f"unknown authentication method {config.auth_method!r}")
        terminal.connect()
        serialno = wait_for_card(terminal, config.wait_timeout)
        lg.debug("card %s inserted", serialno)
        info = terminal.send(LearnMessage()).info
        ctx = LoginContext(
            config=config,
            card=terminal,
            info=info,
            conv=conv,
            pin_provider=ConversationPinProvider(conv),
        )
        account = method(ctx, username)
    except CardAuthError as exc:
        terminal.on_error(exc)
        raise AuthenticationFailed() from exc
    finally:
        terminal.disconnect()
    lg.info("authenticated as %s", account)
    return account
