from __future__ import annotations

from dataclasses import dataclass

from cardauth.app.config import Config
from cardauth.app.conv import Conversation
from cardauth.core.assuan.logging import inherited_fds
from cardauth.core.base import DaemonSession
from cardauth.core.scd import CardInfo, CardTerminal, PinProvider


@dataclass
class LoginContext:
    """Everything an authentication method needs about the current login."""

    config: Config
    card: CardTerminal
    info: CardInfo
    conv: Conversation
    pin_provider: PinProvider


def card_session(config: Config) -> DaemonSession:
    """Session with the card daemon: its socket if configured, else a child."""
    if config.scdaemon_socket:
        return DaemonSession.from_infostr(config.scdaemon_socket)
    return DaemonSession.spawn(
        config.scdaemon_program, config.scdaemon_options, keep_fds=inherited_fds()
    )


def dirmngr_session(config: Config) -> DaemonSession:
    """Session with the directory manager: its socket if configured, else a child."""
    if config.dirmngr_socket:
        return DaemonSession.from_infostr(config.dirmngr_socket)
    return DaemonSession.spawn(config.dirmngr_program, keep_fds=inherited_fds())
