"""SSH server hosting one shell session per connection.

This module wires together:
- SSH transport (Paramiko)
- The in-memory terminal whose output is mirrored to the SSH channel
- The session engine and its keystroke router
- A cooperative loop per connection that interleaves input with timers
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from typing import Optional

import paramiko

from .config import Config, get_config
from .content import get_content
from .filesystem import normalize_newlines
from .keys import KeyDecoder
from .metrics import get_metrics_collector
from .session import Session
from .ssh_interface import SSHServer, create_listening_socket, get_or_create_host_key
from .storage import CreatedFileOverlay, HighScoreStore, open_high_score, open_overlay
from .terminal import VirtualTerminal
from .tty_handler import TTYHandler

LOGGER = logging.getLogger(__name__)

MAX_WAIT = 0.5
MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1000l\x1b[?1006l"


def build_session(
    config: Config,
    columns: int,
    rows: int,
    sink=None,
    overlay: Optional[CreatedFileOverlay] = None,
    high_scores: Optional[HighScoreStore] = None,
) -> Session:
    """Create a session on a fresh terminal.

    Sessions served by one ``ShellServer`` share its stores; standalone
    callers get stores opened from the configured paths.
    """
    if overlay is None:
        overlay = open_overlay(config.storage.files_path)
    if high_scores is None:
        high_scores = open_high_score(config.storage.high_score_path)
    terminal = VirtualTerminal(
        columns=columns,
        rows=rows,
        scrollback=config.terminal.scrollback,
        sink=sink,
    )
    session = Session(
        terminal=terminal,
        content=get_content(config.shell.content_path),
        overlay=overlay,
        high_scores=high_scores,
        config=config,
    )
    return session


class ShellServer:
    """Accepts SSH connections and runs each session in a daemon thread."""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.host = host or self.config.ssh.host
        self.port = port or self.config.ssh.port
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._host_key = get_or_create_host_key(self.config.ssh.host_key_path)
        self._active = 0
        self._lock = threading.Lock()
        self._metrics = get_metrics_collector()
        self.overlay = open_overlay(self.config.storage.files_path)
        self.high_scores = open_high_score(self.config.storage.high_score_path)

    # =========================================================================
    # Accept loop
    # =========================================================================

    def run(self) -> None:
        """Start the server and block until stopped."""
        try:
            self._socket = create_listening_socket(self.host, self.port)
        except OSError as exc:
            LOGGER.error("Failed to bind to %s:%d - %s", self.host, self.port, exc)
            raise

        self._running = True
        LOGGER.info("shellfolio listening on %s:%d", self.host, self.port)

        try:
            while self._running:
                try:
                    self._socket.settimeout(1.0)
                    client, addr = self._socket.accept()
                except socket.timeout:
                    continue
                thread = threading.Thread(
                    target=self._handle_client, args=(client, addr), daemon=True
                )
                thread.start()
                LOGGER.debug("Started handler thread for %s:%s", addr[0], addr[1])
        except KeyboardInterrupt:
            LOGGER.info("Received interrupt signal")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        self._running = False
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        LOGGER.info("shellfolio server stopped")

    def new_session(self, columns: int, rows: int, sink=None) -> Session:
        """Session backed by this server's shared overlay and high score."""
        return build_session(
            self.config, columns, rows, sink, overlay=self.overlay, high_scores=self.high_scores
        )

    def _reserve_slot(self) -> bool:
        with self._lock:
            if self._active >= self.config.ssh.max_sessions:
                return False
            self._active += 1
            return True

    def _release_slot(self) -> None:
        with self._lock:
            self._active -= 1

    # =========================================================================
    # Per-connection handling
    # =========================================================================

    def _handle_client(self, client: socket.socket, addr) -> None:
        visitor_ip, visitor_port = addr[0], addr[1]

        if not self._reserve_slot():
            LOGGER.warning(
                "Connection from %s:%s refused: %d sessions active",
                visitor_ip,
                visitor_port,
                self.config.ssh.max_sessions,
            )
            self._metrics.record_connection("refused")
            client.close()
            return

        LOGGER.info("New connection from %s:%s", visitor_ip, visitor_port)
        client.settimeout(60)
        transport = paramiko.Transport(client)
        transport.set_keepalive(30)
        transport.add_server_key(self._host_key)
        server = SSHServer()
        chan = None

        try:
            try:
                transport.start_server(server=server)
            except paramiko.SSHException as exc:
                LOGGER.error("SSH negotiation failed with %s:%s - %s", visitor_ip, visitor_port, exc)
                self._metrics.record_connection("failed")
                return

            chan = transport.accept(20)
            if chan is None:
                LOGGER.warning("No channel received from %s:%s within 20 seconds", visitor_ip, visitor_port)
                self._metrics.record_connection("failed")
                return
            server.shell_requested.wait(10)
            self._metrics.record_connection("accepted")
            self._run_session(chan, server, visitor_ip)
        except Exception as exc:  # pragma: no cover
            LOGGER.error("Error in session with %s: %s", visitor_ip, exc)
        finally:
            if chan is not None:
                try:
                    chan.close()
                except (OSError, EOFError):
                    pass
            transport.close()
            self._release_slot()

    def _run_session(self, chan: paramiko.Channel, server: SSHServer, visitor_ip: str) -> None:
        config = self.config

        def sink(data: str) -> None:
            chan.sendall(data.encode("utf-8"))

        columns, rows = server.window_size(config.terminal.columns, config.terminal.rows)
        session = self.new_session(columns, rows, sink)
        session.annotator.open_url = session.open_url_in_stream

        if server.exec_command is not None:
            LOGGER.info("Exec from %s: %s", visitor_ip, server.exec_command)
            output = session.submit(server.exec_command)
            if output:
                chan.sendall((normalize_newlines(output) + "\r\n").encode("utf-8"))
            chan.send_exit_status(0)
            return

        self._metrics.record_session_start()
        LOGGER.info("Session started for %s (%dx%d)", visitor_ip, columns, rows)
        try:
            self._interact(chan, server, session, visitor_ip)
        finally:
            duration = time.time() - session.started_at
            self._metrics.record_session_end(duration)
            LOGGER.info(
                "Session with %s ended (duration: %.1fs, commands: %d)",
                visitor_ip,
                duration,
                len(session.history),
            )

    def _interact(
        self, chan: paramiko.Channel, server: SSHServer, session: Session, visitor_ip: str
    ) -> None:
        terminal = session.terminal
        scheduler = session.scheduler
        handler = TTYHandler(session)
        decoder = KeyDecoder()
        max_duration = self.config.ssh.max_session_duration
        mouse = self.config.terminal.mouse_links

        if mouse:
            terminal.write(MOUSE_ON)
        session.start()

        try:
            while not session.closed:
                if max_duration > 0 and time.time() - session.started_at > max_duration:
                    LOGGER.warning(
                        "Session from %s exceeded max duration (%d seconds), terminating",
                        visitor_ip,
                        max_duration,
                    )
                    terminal.write("\r\nSession timeout. Connection closed.\r\n")
                    break

                resize = server.take_resize()
                if resize is not None:
                    terminal.resize(*resize)

                wait = scheduler.time_until_next()
                chan.settimeout(MAX_WAIT if wait is None else min(MAX_WAIT, wait))
                try:
                    data = chan.recv(1024)
                except socket.timeout:
                    events = decoder.flush()
                else:
                    if not data:
                        LOGGER.info("Session closed by client %s", visitor_ip)
                        break
                    events = decoder.feed(data)

                for event in events:
                    handler.handle(event)
                    if session.closed:
                        break
                scheduler.run_due()
        finally:
            if mouse and not chan.closed:
                try:
                    chan.sendall(MOUSE_OFF.encode("utf-8"))
                except OSError:
                    pass
