import os
import signal
import subprocess
import sys
from pathlib import Path

import pytest
from fakes import FakeDaemon

from cardauth.core.assuan import PipeTransport, SocketTransport, parse_infostr
from cardauth.core.assuan import stream
from cardauth.core.base import DaemonSession
from cardauth.core.errors import DaemonError, ProtocolError, TransportError

FAKE_DAEMON = Path(__file__).with_name("fake_daemon.py")


@pytest.fixture
def daemon_program(tmp_path: Path) -> str:
    """Executable wrapper starting the fake daemon with the test interpreter."""
    script = tmp_path / "fake-scdaemon"
    script.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_DAEMON}" "$@"\n')
    script.chmod(0o755)
    return str(script)


class TestDaemonSession:
    """Connection lifecycle on top of an in-memory daemon."""

    def test_connect_reads_greeting_and_sends_nop(self, daemon):
        session = DaemonSession(daemon)
        session.connect()
        assert daemon.opened
        assert daemon.commands == ["NOP"]
        assert session.connected

    def test_disconnect_sends_restart_and_closes(self, session, daemon):
        session.disconnect()
        assert daemon.commands[-1] == "RESTART"
        assert daemon.closed
        assert not session.connected

    def test_disconnect_survives_failing_restart(self):
        daemon = FakeDaemon({"RESTART": ["ERR 1 cannot restart"]})
        session = DaemonSession(daemon)
        session.connect()
        session.disconnect()
        assert daemon.closed
        assert not session.connected

    def test_disconnect_twice_is_harmless(self, session, daemon):
        session.disconnect()
        session.disconnect()
        assert daemon.commands.count("RESTART") == 1

    def test_bad_greeting_closes_transport(self):
        daemon = FakeDaemon(greeting=b"ERR 1 not today")
        session = DaemonSession(daemon)
        with pytest.raises(DaemonError):
            session.connect()
        assert daemon.closed
        assert not session.connected

    def test_transact_requires_connection(self, daemon):
        with pytest.raises(TransportError):
            DaemonSession(daemon).transact("NOP")

    def test_transact_from_callback_is_rejected(self):
        daemon = FakeDaemon({"LEARN": ["S SERIALNO 1234", "OK"]})
        session = DaemonSession(daemon)
        session.connect()

        def reenter(keyword, text):
            session.transact("NOP")

        with pytest.raises(ProtocolError, match="already in progress"):
            session.transact("LEARN", status_cb=reenter)
        # the session is free again afterwards
        assert session.transact("NOP") == b""

    def test_context_manager(self, daemon):
        with DaemonSession(daemon) as session:
            assert session.connected
        assert daemon.closed
        assert daemon.commands == ["NOP", "RESTART"]


class TestInfoString:
    """'<socket>:<pid>:<protocol>' daemon info strings."""

    def test_valid(self):
        assert parse_infostr("/run/user/1000/gnupg/S.scdaemon:4711:1") == (
            "/run/user/1000/gnupg/S.scdaemon", 4711, 1,
        )

    @pytest.mark.parametrize("infostr", [
        "",
        "/tmp/sock",
        "/tmp/sock:12",
        ":12:1",
        "/tmp/sock:pid:1",
        "/tmp/sock:12:x",
    ])
    def test_malformed(self, infostr):
        with pytest.raises(TransportError, match="malformed"):
            parse_infostr(infostr)

    def test_unsupported_version(self):
        with pytest.raises(TransportError, match="version 2"):
            parse_infostr("/tmp/sock:12:2")


class TestPipeTransport:
    """Daemon spawned as a child in --server mode."""

    def test_argv_carries_server_and_options(self):
        transport = PipeTransport("/usr/lib/gnupg/scdaemon", "/etc/scd.conf")
        assert transport.argv == [
            "scdaemon", "--server", "--options", "/etc/scd.conf",
        ]
        assert PipeTransport("/usr/bin/dirmngr").argv == ["dirmngr", "--server"]

    def test_spawned_daemon_round_trip(self, daemon_program):
        transport = PipeTransport(daemon_program, "opts.conf")
        session = DaemonSession(transport)
        session.connect()
        try:
            assert int(session.transact("GETINFO pid")) == transport.pid
            argv = session.transact("GETINFO argv").decode().split(" ")
            assert argv[1:] == ["--server", "--options", "opts.conf"]
        finally:
            session.disconnect()
        assert transport.pid is None

    def test_child_exits_after_disconnect(self, daemon_program):
        transport = PipeTransport(daemon_program)
        session = DaemonSession(transport)
        session.connect()
        process = transport._process
        session.disconnect()
        assert process.returncode == 0

    def test_lingering_child_is_terminated(self, daemon_program, monkeypatch):
        monkeypatch.setattr(stream, "GRACE_PERIOD", 0.2)
        transport = PipeTransport(daemon_program, "linger")
        session = DaemonSession(transport)
        session.connect()
        process = transport._process
        session.disconnect()
        assert process.returncode == -signal.SIGTERM

    def test_missing_program(self, tmp_path):
        session = DaemonSession.spawn(str(tmp_path / "no-such-daemon"))
        with pytest.raises(TransportError, match="failed to spawn"):
            session.connect()
        assert not session.connected


class TestSocketTransport:
    """Running daemon reached through a UNIX socket."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "S.fake"
        server = subprocess.Popen(
            [sys.executable, str(FAKE_DAEMON), "--socket", str(path)],
            stdout=subprocess.PIPE,
            text=True,
        )
        try:
            assert server.stdout.readline().strip() == "ready"
            session = DaemonSession.from_infostr(f"{path}:{server.pid}:1")
            with session:
                text = session.transact("GETINFO pid")
                assert int(text) == server.pid
        finally:
            server.wait(timeout=10)
            server.stdout.close()

    def test_connect_to_missing_socket(self, tmp_path):
        with pytest.raises(TransportError, match="failed to connect"):
            SocketTransport(str(tmp_path / "absent")).open()

    def test_close_without_open(self, tmp_path):
        SocketTransport(str(tmp_path / "absent")).close()


def test_spawn_keeps_only_extra_descriptors(daemon_program):
    read_fd, write_fd = os.pipe()
    try:
        transport = PipeTransport(daemon_program, keep_fds=(2, write_fd))
        transport.open()
        transport.close()
    finally:
        os.close(read_fd)
        os.close(write_fd)
