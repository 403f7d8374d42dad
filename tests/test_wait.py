import pytest
from fakes import SERIALNO, FakeCard, FakeDaemon

from cardauth.core.base import DaemonSession
from cardauth.core.errors import CardNotPresentError, DaemonError, TransportError
from cardauth.core.scd import CardTerminal, wait_for_card


class FakeClock:
    """Clock advanced only by the sleep it hands out."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def terminal_for(card_or_daemon) -> CardTerminal:
    daemon = getattr(card_or_daemon, "daemon", card_or_daemon)
    terminal = CardTerminal(DaemonSession(daemon))
    terminal.connect()
    return terminal


class TestWaitForCard:
    """Polling SERIALNO until a card shows up."""

    def test_card_already_present(self, fake_card):
        clock = FakeClock()
        serialno = wait_for_card(terminal_for(fake_card), 5, clock=clock, sleep=clock.sleep)
        assert serialno == SERIALNO
        assert clock.sleeps == []

    def test_card_inserted_while_waiting(self, rsa_key):
        card = FakeCard(rsa_key, absent_polls=3)
        clock = FakeClock()
        serialno = wait_for_card(terminal_for(card), 10, 0.5, clock=clock, sleep=clock.sleep)
        assert serialno == SERIALNO
        assert clock.sleeps == [0.5, 0.5, 0.5]
        assert card.daemon.commands.count("SERIALNO") == 4

    def test_timeout_raises_card_not_present(self, rsa_key):
        card = FakeCard(rsa_key, absent_polls=1000)
        clock = FakeClock()
        with pytest.raises(CardNotPresentError):
            wait_for_card(terminal_for(card), 2, 0.5, clock=clock, sleep=clock.sleep)
        assert clock.now - 100.0 == pytest.approx(2.0)
        assert card.daemon.commands.count("SERIALNO") == 5

    def test_zero_timeout_waits_until_inserted(self, rsa_key):
        card = FakeCard(rsa_key, absent_polls=50)
        clock = FakeClock()
        assert wait_for_card(terminal_for(card), 0, 1, clock=clock, sleep=clock.sleep) == SERIALNO
        assert len(clock.sleeps) == 50

    def test_other_errors_are_not_retried(self):
        daemon = FakeDaemon({"SERIALNO": ["ERR 100663404 Card error"]})
        clock = FakeClock()
        with pytest.raises(DaemonError) as info:
            wait_for_card(terminal_for(daemon), 10, clock=clock, sleep=clock.sleep)
        assert not isinstance(info.value, CardNotPresentError)
        assert clock.sleeps == []

    def test_disconnected_terminal(self, fake_card):
        terminal = CardTerminal(DaemonSession(fake_card.daemon))
        with pytest.raises(TransportError):
            wait_for_card(terminal, 1)
