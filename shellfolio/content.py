"""Static content source for the shell.

The content document (``data/prompts.json`` by default) supplies everything the
session presents but never mutates: the directory catalog, the help/unsupported/
unknown texts, the link registry, the autocomplete vocabulary and the intro
menu. It is parsed once into typed objects; a missing or malformed document
falls back to a small built-in set so a session can always start.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .filesystem import DirectoryEntry, build_catalog

LOGGER = logging.getLogger(__name__)

LINK_URL = "URL"
LINK_TEXT = "Text"


@dataclass(frozen=True)
class LinkEntry:
    """One keyword made activatable by link annotation."""

    keyword: str
    kind: str
    payload: str
    color: Optional[str] = None
    start_offset: int = 0
    end_offset: int = 0


@dataclass(frozen=True)
class MenuItem:
    icon: str
    heading: str
    heading_color: str
    description: str


DEFAULT_MENU = [
    MenuItem("🚀", "Projects", "\x1b[92m", "View my past work"),
    MenuItem("💬", "Contact", "\x1b[95m", "Get in touch with me"),
    MenuItem("📖", "About", "\x1b[93m", "Learn more about me"),
    MenuItem("🎮", "Hidden Secrets", "\x1b[91m", "Hidden surprises await"),
    MenuItem("❓", "Help", "\x1b[97m", "Type 'help' to see commands"),
]

DEFAULT_COMMANDS = [
    "ls",
    "ls -l",
    "cat",
    "cd",
    "pwd",
    "clear",
    "cls",
    "help",
    "tree",
    "echo",
    "touch",
    "whoami",
    "exit",
]

DEFAULT_UNSUPPORTED = [
    "sudo",
    "mkdir",
    "rm",
    "cp",
    "mv",
    "grep",
    "find",
    "chmod",
    "chown",
]

DEFAULT_HELP = (
    "Available commands:\r\n"
    "  ls [-l]        list the current directory\r\n"
    "  cd <path>      change directory\r\n"
    "  cat <file>     print a file\r\n"
    "  cat > <file>   write a file (Ctrl-D to save)\r\n"
    "  pwd            print the current directory\r\n"
    "  help           show this message\r\n"
    "  cls            clear the screen"
)
DEFAULT_UNSUPPORTED_TEXT = "This command exists, but it is not available in this shell."
DEFAULT_UNKNOWN_TEXT = "{command}: command not found. Type 'help' to see available commands."


@dataclass
class ShellContent:
    """Everything the static content document provides."""

    catalog: DirectoryEntry
    help_text: str = DEFAULT_HELP
    unsupported_text: str = DEFAULT_UNSUPPORTED_TEXT
    unknown_text: str = DEFAULT_UNKNOWN_TEXT
    links: List[LinkEntry] = field(default_factory=list)
    commands: List[str] = field(default_factory=lambda: list(DEFAULT_COMMANDS))
    unsupported_commands: List[str] = field(
        default_factory=lambda: list(DEFAULT_UNSUPPORTED)
    )
    menu: List[MenuItem] = field(default_factory=lambda: list(DEFAULT_MENU))

    def unknown_message(self, command: str) -> str:
        return self.unknown_text.replace("{command}", command)


def _parse_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _parse_links(raw: Any) -> List[LinkEntry]:
    links: List[LinkEntry] = []
    if not isinstance(raw, list):
        return links
    for item in raw:
        if not isinstance(item, dict) or not item.get("key"):
            LOGGER.warning("Skipping malformed link entry: %r", item)
            continue
        kind = LINK_URL if str(item.get("type", "")).upper() == "URL" else LINK_TEXT
        links.append(
            LinkEntry(
                keyword=str(item["key"]),
                kind=kind,
                payload=str(item.get("value", "")),
                color=item.get("color") or None,
                start_offset=_parse_int(item.get("startOffset", 0)),
                end_offset=_parse_int(item.get("endOffset", 0)),
            )
        )
    return links


def _parse_menu(raw: Any) -> List[MenuItem]:
    if not isinstance(raw, list):
        return list(DEFAULT_MENU)
    menu = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        menu.append(
            MenuItem(
                icon=str(item.get("icon", "")),
                heading=str(item.get("heading", "")),
                heading_color=str(item.get("headingColor", "")),
                description=str(item.get("description", "")),
            )
        )
    return menu


def _string_list(raw: Any, default: List[str]) -> List[str]:
    if not isinstance(raw, list):
        return list(default)
    return [str(item) for item in raw]


def parse_content(data: Dict[str, Any]) -> ShellContent:
    """Build a ShellContent from an already-decoded content document."""
    visible = data.get("VISIBLE") or {}
    hidden = data.get("HIDDEN") or {}
    commands = data.get("COMMANDS") or {}

    return ShellContent(
        catalog=build_catalog(data.get("FILESYSTEM") or {}),
        help_text=str(visible.get("HELP", DEFAULT_HELP)),
        unsupported_text=str(visible.get("UNSUPPORTED", DEFAULT_UNSUPPORTED_TEXT)),
        unknown_text=str(visible.get("UNKNOWN", DEFAULT_UNKNOWN_TEXT)),
        links=_parse_links(hidden.get("LINKS")),
        commands=_string_list(commands.get("available"), DEFAULT_COMMANDS),
        unsupported_commands=_string_list(
            commands.get("unsupported"), DEFAULT_UNSUPPORTED
        ),
        menu=_parse_menu(data.get("MENU")),
    )


def load_content(path: Path) -> ShellContent:
    """Load the content document, falling back to built-in defaults."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        LOGGER.error("Content file %s not found, using built-in content", path)
        return ShellContent(catalog=build_catalog({}))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.error("Failed to load content from %s: %s", path, exc)
        return ShellContent(catalog=build_catalog({}))

    if not isinstance(data, dict):
        LOGGER.error("Content file %s is not a JSON object, using built-in content", path)
        return ShellContent(catalog=build_catalog({}))

    return parse_content(data)


_content_cache: Dict[str, ShellContent] = {}


def get_content(path: Path) -> ShellContent:
    """Return the parsed content for ``path``, loading it once per process."""
    key = str(path)
    if key not in _content_cache:
        _content_cache[key] = load_content(path)
        LOGGER.info("Loaded shell content from %s", path)
    return _content_cache[key]
