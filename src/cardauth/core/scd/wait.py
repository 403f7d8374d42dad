from __future__ import annotations

import logging
import time
from collections.abc import Callable

from cardauth.core.errors import CardNotPresentError
from cardauth.core.scd.messages import SerialNoMessage
from cardauth.core.scd.terminal import CardTerminal

lg = logging.getLogger(__name__)

POLL_INTERVAL = 0.5


def wait_for_card(
    terminal: CardTerminal,
    timeout: float = 0,
    interval: float = POLL_INTERVAL,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Poll the card daemon until a card is inserted; return its serial number.

    A *timeout* of 0 waits forever. Only card absence is retried; every
    other error propagates at once.
    """
    start = clock()
    announced = False
    while True:
        try:
            return terminal.send(SerialNoMessage()).serialno
        except CardNotPresentError:
            if timeout and clock() - start >= timeout:
                lg.info("no card inserted within %g seconds", timeout)
                raise
            if not announced:
                lg.info("waiting for card")
                announced = True
        sleep(interval)
