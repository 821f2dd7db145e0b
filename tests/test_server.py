"""Tests for the SSH front end pieces that run without a network."""

import json
from pathlib import Path

import paramiko
import pytest

from shellfolio.config import Config, ShellConfig, SSHConfig, StorageConfig, TerminalConfig
from shellfolio.metrics import ROUTES, MetricsCollector, get_metrics_collector
from shellfolio.server import ShellServer, build_session
from shellfolio.ssh_interface import SSHServer, get_or_create_host_key

BUNDLED_CONTENT = Path(__file__).resolve().parents[1] / "data" / "prompts.json"


class TestSSHServer:
    """Tests for the Paramiko ServerInterface."""

    def test_any_credentials_accepted(self):
        """Password and none auth both succeed."""
        server = SSHServer()
        assert server.check_auth_password("visitor", "secret") == paramiko.AUTH_SUCCESSFUL
        assert server.check_auth_none("visitor") == paramiko.AUTH_SUCCESSFUL
        assert server.username == "visitor"
        assert server.get_allowed_auths("visitor") == "none,password"

    def test_only_session_channels(self):
        """Only session channels are granted."""
        server = SSHServer()
        assert server.check_channel_request("session", 1) == paramiko.OPEN_SUCCEEDED
        assert (
            server.check_channel_request("direct-tcpip", 1)
            == paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED
        )

    def test_pty_and_resize(self):
        """The PTY request sets the window and resizes are queued once."""
        server = SSHServer()
        assert server.check_channel_pty_request(None, b"xterm", 100, 30, 0, 0, b"")
        assert server.term == "xterm"
        assert server.window_size(80, 24) == (100, 30)
        assert server.check_channel_window_change_request(None, 120, 40, 0, 0)
        assert server.take_resize() == (120, 40)
        assert server.take_resize() is None

    def test_window_size_defaults(self):
        """Without a PTY request the configured size is used."""
        assert SSHServer().window_size(80, 24) == (80, 24)

    def test_shell_and_exec_requests(self):
        """Shell and exec requests both start the session."""
        server = SSHServer()
        assert server.check_channel_exec_request(None, b"cat README.md")
        assert server.exec_command == "cat README.md"
        assert server.shell_requested.is_set()


class TestHostKey:
    def test_key_generated_then_reused(self, tmp_path):
        """A missing host key is created then loaded again."""
        path = tmp_path / "keys" / "host.key"
        first = get_or_create_host_key(path)
        assert path.exists()
        second = get_or_create_host_key(path)
        assert first.get_fingerprint() == second.get_fingerprint()


class TestBuildSession:
    def test_session_uses_configured_stores(self, tmp_path):
        """build_session sizes the terminal and opens the configured stores."""
        files_path = tmp_path / "files.json"
        files_path.write_text(json.dumps({"/hello.txt": "hi"}), encoding="utf-8")
        config = Config(
            shell=ShellConfig(user="guest", hostname="folio", content_path=BUNDLED_CONTENT),
            storage=StorageConfig(
                files_path=files_path, high_score_path=tmp_path / "score.json"
            ),
            terminal=TerminalConfig(columns=80, rows=24, scrollback=100, mouse_links=False),
        )
        sent = []
        session = build_session(config, 100, 30, sent.append)
        assert (session.terminal.columns, session.terminal.rows) == (100, 30)
        assert session.submit("cat hello.txt") == "hi"
        session.terminal.write("x")
        assert sent == ["x"]



class TestSharedStores:
    """Sessions on one server see each other's files and scores."""

    @pytest.fixture
    def server(self, tmp_path):
        key_path = tmp_path / "host.key"
        paramiko.RSAKey.generate(1024).write_private_key_file(str(key_path))
        config = Config(
            ssh=SSHConfig(host="127.0.0.1", port=0, host_key_path=key_path),
            shell=ShellConfig(user="guest", hostname="folio", content_path=BUNDLED_CONTENT),
            storage=StorageConfig(
                files_path=tmp_path / "files.json", high_score_path=tmp_path / "score.json"
            ),
            terminal=TerminalConfig(columns=80, rows=24, scrollback=100, mouse_links=False),
        )
        return ShellServer(config=config)

    def test_second_visitor_keeps_first_visitors_file(self, server, tmp_path):
        """Saving from one session never drops files another session created."""
        alice = server.new_session(80, 24)
        bob = server.new_session(80, 24)
        alice.submit("touch alice.txt")
        bob.submit("touch bob.txt")

        stored = json.loads((tmp_path / "files.json").read_text(encoding="utf-8"))
        assert stored == {"/alice.txt": "", "/bob.txt": ""}
        assert bob.submit("cat alice.txt") == ""
        assert "alice.txt" in bob.submit("ls")

    def test_stale_session_cannot_lower_high_score(self, server, tmp_path):
        """A lower score saved later leaves the best score in place."""
        first = server.new_session(80, 24)
        second = server.new_session(80, 24)
        assert first.high_scores is second.high_scores
        assert first.high_scores.save(90) is True
        assert second.high_scores.save(40) is False

        stored = json.loads((tmp_path / "score.json").read_text(encoding="utf-8"))
        assert stored == {"high_score": 90}

class TestMetrics:
    def test_exposition_includes_shell_metrics(self):
        """The exposition lists the shell metrics."""
        collector = get_metrics_collector()
        collector.record_command("builtin")
        collector.record_high_score(50)
        text = collector.exposition().decode("utf-8")
        assert "shellfolio_commands_total" in text
        assert "shellfolio_high_score" in text

    def test_health_route_reports_live_sessions(self):
        """/health reports the live session count."""
        collector = MetricsCollector()
        collector.record_session_start()
        content_type, body = ROUTES["/health"](collector)
        assert content_type == "text/plain"
        assert body == b"OK sessions=1\n"
        collector.record_session_end(1.5)
        assert collector.live_sessions == 0

    def test_metrics_route_uses_prometheus_format(self):
        """/metrics answers in the Prometheus text format."""
        content_type, body = ROUTES["/metrics"](MetricsCollector())
        assert content_type.startswith("text/plain")
        assert b"shellfolio_uptime_seconds" in body
