"""Command parsing and dispatch for the shell session.

``handle_command`` is the entry point for a submitted line. The line may hold
several ``|``-separated commands; they run one after another (nothing is piped
between them) and only the last output is shown. Every failure comes back as
diagnostic text, never as an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Sequence

from .metrics import get_metrics_collector

if TYPE_CHECKING:
    from .session import Session

LOGGER = logging.getLogger(__name__)

GAME_COMMAND = "sudo space-adventure"
CLEAR_COMMANDS = ("cls", "clear")
EXIT_COMMANDS = ("exit", "logout")


@dataclass
class ParsedCommand:
    command: str
    args: List[str] = field(default_factory=list)
    flags: Dict[str, bool] = field(default_factory=dict)


def parse_command(line: str) -> ParsedCommand:
    """Split ``line`` on whitespace into command, positional args and flags."""
    parts = line.split()
    if not parts:
        return ParsedCommand(command="")

    parsed = ParsedCommand(command=parts[0].lower())
    for part in parts[1:]:
        if part.startswith("-"):
            parsed.flags[part[1:]] = True
        else:
            parsed.args.append(part)
    return parsed


def is_known_unsupported(command: str, patterns: Sequence[str]) -> bool:
    normalized = command.lower().strip()
    return any(
        normalized == pattern or normalized.startswith(pattern + " ")
        for pattern in patterns
    )


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


# =============================================================================
# Built-in handlers
# =============================================================================


def _handle_capture(command: str, marker: str, session: "Session") -> str:
    filename = command.strip()[len(marker):].strip()
    if not filename:
        return "cat: missing file operand"
    if "/" in filename:
        return "cat: cannot create file with path separators"
    session.start_capture(filename, append=marker == "cat >>")
    return ""


def _handle_ls(command: str, parsed: ParsedCommand, session: "Session") -> str:
    long_format = parsed.flags.get("l", False) or "-l" in command
    return session.navigator.ls(long_format)


def _handle_cat(parsed: ParsedCommand, session: "Session") -> str:
    if not parsed.args:
        return "cat: missing file operand"
    return session.navigator.cat(parsed.args[0])


def _handle_echo(command: str, session: "Session") -> str:
    body = command.strip()[len("echo"):].strip()

    for marker, append in ((">>", True), (">", False)):
        if marker in body:
            text, filename = body.split(marker, 1)
            return session.navigator.echo_to_file(
                _unquote(text), filename.strip(), append=append
            )
    return _unquote(body)


def _handle_exit(session: "Session") -> str:
    session.request_close()
    return "logout"


def execute_command(command: str, session: "Session") -> str:
    """Run one command and return its output text."""
    normalized = command.lower().strip()
    if not normalized:
        return ""

    LOGGER.info("Executing command: %s", command.strip())
    metrics = get_metrics_collector()

    if normalized in CLEAR_COMMANDS:
        session.clear_screen()
        metrics.record_command("builtin")
        return ""

    if normalized == GAME_COMMAND:
        session.start_game()
        metrics.record_command("builtin")
        return ""

    # ">>" has to be checked first, "cat >" is a prefix of it
    for marker in ("cat >>", "cat >"):
        if normalized.startswith(marker):
            metrics.record_command("builtin")
            return _handle_capture(command, marker, session)

    parsed = parse_command(command)
    navigator = session.navigator
    content = session.content

    handlers = {
        "ls": lambda: _handle_ls(command, parsed, session),
        "cd": lambda: navigator.cd(parsed.args[0] if parsed.args else ""),
        "cat": lambda: _handle_cat(parsed, session),
        "pwd": navigator.get_current_path,
        "help": lambda: content.help_text,
        "touch": lambda: navigator.touch(parsed.args[0] if parsed.args else ""),
        "echo": lambda: _handle_echo(command, session),
        "tree": navigator.tree,
        "whoami": lambda: session.user,
    }
    handler = handlers.get(parsed.command)
    if handler is not None:
        metrics.record_command("builtin")
        return handler()

    if parsed.command in EXIT_COMMANDS:
        metrics.record_command("builtin")
        return _handle_exit(session)

    if is_known_unsupported(command, content.unsupported_commands):
        metrics.record_command("unsupported")
        return content.unsupported_text

    metrics.record_command("unknown")
    return content.unknown_message(command.split()[0])


def split_chain(line: str) -> List[str]:
    return [part.strip() for part in line.split("|")]


def handle_command(line: str, session: "Session") -> str:
    """Run every ``|``-separated command of ``line`` in turn.

    Stops early when a command leaves Normal mode (file capture or the game),
    so later commands cannot write over the new mode. Returns the last
    output after link annotation.
    """
    output = ""
    for command in split_chain(line):
        output = execute_command(command, session)
        if not session.is_normal or session.closed:
            break
    return session.annotator.annotate(session.terminal, output)
