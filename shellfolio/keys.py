"""Decode raw terminal input bytes into key and mouse events."""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from typing import List, Union

ENTER = "Enter"
BACKSPACE = "Backspace"
TAB = "Tab"
ESCAPE = "Escape"
ARROW_UP = "ArrowUp"
ARROW_DOWN = "ArrowDown"
ARROW_LEFT = "ArrowLeft"
ARROW_RIGHT = "ArrowRight"
HOME = "Home"
END = "End"
DELETE = "Delete"


@dataclass(frozen=True)
class KeyEvent:
    """One keystroke.

    ``key`` is a logical name (``"Enter"``, ``"ArrowUp"``...) or the character
    itself for printable input and ctrl combinations; ``data`` is the raw text
    the key produced.
    """

    key: str
    data: str
    ctrl: bool = False

    @property
    def printable(self) -> bool:
        return len(self.key) == 1 and not self.ctrl


@dataclass(frozen=True)
class MouseEvent:
    """An SGR mouse report. ``column`` and ``row`` are 0-based viewport cells."""

    column: int
    row: int
    button: int
    pressed: bool


Event = Union[KeyEvent, MouseEvent]

_CSI_FINALS = {
    "A": ARROW_UP,
    "B": ARROW_DOWN,
    "C": ARROW_RIGHT,
    "D": ARROW_LEFT,
    "H": HOME,
    "F": END,
}
_TILDE_KEYS = {"1": HOME, "7": HOME, "3": DELETE, "4": END, "8": END}
_SGR_MOUSE = re.compile(r"<(\d+);(\d+);(\d+)([Mm])")


class KeyDecoder:
    """Incremental decoder; incomplete UTF-8 or escape sequences wait for more input."""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._last_was_cr = False

    def feed(self, data: bytes) -> List[Event]:
        self._pending += self._utf8.decode(data)
        events: List[Event] = []
        text = self._pending
        index = 0
        while index < len(text):
            char = text[index]
            if char == "\x1b":
                consumed, event = self._escape(text, index)
                if consumed == 0:
                    break
                index += consumed
                if event is not None:
                    events.append(event)
                self._last_was_cr = False
                continue

            index += 1
            if char == "\n" and self._last_was_cr:
                self._last_was_cr = False
                continue
            self._last_was_cr = char == "\r"

            if char in "\r\n":
                events.append(KeyEvent(ENTER, char))
            elif char in "\x7f\x08":
                events.append(KeyEvent(BACKSPACE, char))
            elif char == "\t":
                events.append(KeyEvent(TAB, char))
            elif char < " ":
                letter = chr(ord(char) + 96) if char != "\x00" else "@"
                events.append(KeyEvent(letter, char, ctrl=True))
            else:
                events.append(KeyEvent(char, char))
        self._pending = text[index:]
        return events

    def flush(self) -> List[Event]:
        """Emit a held lone ESC as an Escape key."""
        if self._pending == "\x1b":
            self._pending = ""
            return [KeyEvent(ESCAPE, "\x1b")]
        return []

    def _escape(self, text: str, start: int):
        """Return ``(consumed, event)``; ``consumed == 0`` means incomplete."""
        if start + 1 >= len(text):
            return 0, None
        intro = text[start + 1]

        if intro == "O":
            if start + 2 >= len(text):
                return 0, None
            final = text[start + 2]
            key = _CSI_FINALS.get(final)
            return 3, KeyEvent(key, text[start:start + 3]) if key else None

        if intro != "[":
            return 1, KeyEvent(ESCAPE, "\x1b")

        end = start + 2
        while end < len(text) and not ("\x40" <= text[end] <= "\x7e"):
            end += 1
        if end >= len(text):
            return 0, None
        body = text[start + 2:end]
        final = text[end]
        raw = text[start:end + 1]
        consumed = end + 1 - start

        if body.startswith("<") and final in "Mm":
            match = _SGR_MOUSE.fullmatch(body + final)
            if match is None:
                return consumed, None
            button, x, y, kind = match.groups()
            return consumed, MouseEvent(
                column=int(x) - 1,
                row=int(y) - 1,
                button=int(button),
                pressed=kind == "M",
            )

        if final == "~":
            key = _TILDE_KEYS.get(body.split(";")[0])
            return consumed, KeyEvent(key, raw) if key else None

        key = _CSI_FINALS.get(final)
        return consumed, KeyEvent(key, raw) if key else None
