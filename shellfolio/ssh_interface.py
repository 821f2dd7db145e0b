"""SSH side of a visitor connection.

Anyone may log in, with a password or without one, and gets an interactive
shell. ``SSHServer`` remembers the terminal type and window size the client
announces; window changes are queued for the connection loop, which owns the
session's terminal and applies them between keystrokes.
"""

from __future__ import annotations

import logging
import socket
import threading
from pathlib import Path
from typing import Optional, Tuple

import paramiko

LOGGER = logging.getLogger(__name__)

HOST_KEY_BITS = 3072


def get_or_create_host_key(path: Path) -> paramiko.PKey:
    """RSA host key stored at ``path``; a missing or unreadable key is replaced."""
    if path.exists():
        try:
            return paramiko.RSAKey(filename=str(path))
        except (paramiko.SSHException, OSError) as exc:
            LOGGER.error("Host key %s unusable, generating a new one: %s", path, exc)

    key = paramiko.RSAKey.generate(HOST_KEY_BITS)
    path.parent.mkdir(parents=True, exist_ok=True)
    key.write_private_key_file(str(path))
    LOGGER.info("Wrote new %d-bit host key to %s", HOST_KEY_BITS, path)
    return key


class SSHServer(paramiko.ServerInterface):
    """Open-door ServerInterface: every login and session channel is granted."""

    def __init__(self) -> None:
        super().__init__()
        self.shell_requested = threading.Event()
        self.username: Optional[str] = None
        self.term = "xterm"
        self.window: Optional[Tuple[int, int]] = None
        self.exec_command: Optional[str] = None
        self._resize: Optional[Tuple[int, int]] = None
        self._resize_lock = threading.Lock()

    def window_size(self, columns: int, rows: int) -> Tuple[int, int]:
        """Announced window size, falling back to ``columns`` x ``rows``."""
        if not self.window:
            return columns, rows
        width, height = self.window
        return width or columns, height or rows

    def take_resize(self) -> Optional[Tuple[int, int]]:
        """Pop the latest window change not yet applied, if any."""
        with self._resize_lock:
            size, self._resize = self._resize, None
        return size

    # -- authentication -------------------------------------------------------

    def _welcome(self, username: str, method: str) -> int:
        self.username = username
        LOGGER.info("Visitor %s logged in (%s)", username, method)
        return paramiko.AUTH_SUCCESSFUL

    def check_auth_password(self, username: str, password: str) -> int:
        return self._welcome(username, "password")

    def check_auth_none(self, username: str) -> int:
        return self._welcome(username, "none")

    def get_allowed_auths(self, username: str) -> str:
        return "none,password"

    # -- channels ---------------------------------------------------------------

    def check_channel_request(self, kind: str, chanid: int) -> int:
        if kind != "session":
            LOGGER.debug("Refusing %s channel %d", kind, chanid)
            return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED
        return paramiko.OPEN_SUCCEEDED

    def check_channel_pty_request(
        self, channel, term, width, height, pixelwidth, pixelheight, modes
    ) -> bool:
        if isinstance(term, bytes):
            term = term.decode("ascii", errors="replace")
        self.term = term or self.term
        self.window = (width, height)
        LOGGER.debug("PTY %s %dx%d", self.term, width, height)
        return True

    def check_channel_window_change_request(
        self, channel, width, height, pixelwidth, pixelheight
    ) -> bool:
        self.window = (width, height)
        with self._resize_lock:
            self._resize = (width, height)
        return True

    def check_channel_shell_request(self, channel) -> bool:
        self.shell_requested.set()
        return True

    def check_channel_exec_request(self, channel, command) -> bool:
        self.exec_command = command.decode("utf-8", errors="replace")
        LOGGER.debug("Exec request: %s", self.exec_command)
        self.shell_requested.set()
        return True


def create_listening_socket(host: str, port: int, backlog: int = 100) -> socket.socket:
    """Bound, listening TCP socket for the SSH server; the caller closes it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    for level, option in (
        (socket.SOL_SOCKET, socket.SO_REUSEADDR),
        (socket.SOL_SOCKET, socket.SO_KEEPALIVE),
        (socket.IPPROTO_TCP, socket.TCP_NODELAY),
    ):
        sock.setsockopt(level, option, 1)
    sock.bind((host, port))
    sock.listen(backlog)
    return sock
