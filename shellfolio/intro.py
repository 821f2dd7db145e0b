"""Intro screen and the cancellable typing animation that presents it."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterator, List, Optional, Sequence

from .content import MenuItem
from .scheduler import Scheduler, TimerHandle
from .terminal import VirtualTerminal, char_width

LOGGER = logging.getLogger(__name__)

INNER_WIDTH = 73
BORDER = "\x1b[94m"
RESET = "\x1b[0m"

_SGR = re.compile(r"\x1b\[[0-9;]*m")
_UNIT = re.compile(r"\x1b\[[0-9;]*m|.", re.DOTALL)


def display_width(text: str) -> int:
    return sum(char_width(char) for char in _SGR.sub("", text))


def build_intro_lines(width: int, menu: Sequence[MenuItem]) -> List[str]:
    """Render the welcome banner and the boxed two-column menu for ``width`` columns."""
    indent = " " * max(0, (width - INNER_WIDTH - 4) // 2)

    def center(text: str) -> str:
        return " " * max(0, (width - display_width(text)) // 2) + text

    def box_row(content: str) -> str:
        padding = " " * max(0, INNER_WIDTH - display_width(content))
        return f"{indent}{BORDER}│{RESET}{content}{padding}{BORDER}│{RESET}"

    def two_columns(left: str, right: str) -> str:
        if not right:
            return box_row(left)
        per_column = (INNER_WIDTH - 1) // 2
        left_pad = max(0, per_column - display_width(left))
        right_pad = max(0, per_column - display_width(right))
        gap = INNER_WIDTH - display_width(left) - display_width(right) - left_pad - right_pad
        return box_row(left + " " * left_pad + " " * max(1, gap) + right + " " * right_pad)

    lines = [
        "",
        center("\x1b[93mWelcome, explorer...\x1b[0m"),
        center("\x1b[96mYou have entered a realm where ideas become reality.\x1b[0m"),
        "",
        f"{indent}{BORDER}┌{'─' * INNER_WIDTH}┐{RESET}",
        box_row(""),
    ]

    for index in range(0, len(menu), 2):
        left = menu[index]
        right = menu[index + 1] if index + 1 < len(menu) else None

        lines.append(
            two_columns(
                f"  {left.heading_color}{left.icon} {left.heading}{RESET}",
                f"  {right.heading_color}{right.icon} {right.heading}{RESET}" if right else "",
            )
        )
        lines.append(
            two_columns(
                f"   {left.description}",
                f"   {right.description}" if right else "",
            )
        )
        if index + 2 < len(menu):
            lines.append(box_row(""))

    lines.append(box_row(""))
    lines.append(f"{indent}{BORDER}└{'─' * INNER_WIDTH}┘{RESET}")
    lines.append("")
    return lines


class TypeAnimation:
    """Types ``lines`` into the terminal one character at a time.

    Each step is a resumption point of a generator driven by scheduler timers.
    ``skip()`` raises the cancellation flag: the rest of the current line and
    every remaining line are written in a single write, then the animation
    completes. Style sequences are written whole, never split.
    """

    def __init__(
        self,
        terminal: VirtualTerminal,
        lines: Sequence[str],
        char_delay: float = 0.02,
        line_delay: float = 0.15,
    ):
        self.terminal = terminal
        self.lines = list(lines)
        self.char_delay = char_delay
        self.line_delay = line_delay
        self.skipped = False
        self.done = False
        self._steps: Optional[Iterator[float]] = None
        self._scheduler: Optional[Scheduler] = None
        self._timer: Optional[TimerHandle] = None
        self._on_done: Optional[Callable[[], None]] = None

    def run(self, scheduler: Scheduler, on_done: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self._on_done = on_done
        self._steps = self._type()
        self._advance()

    def skip(self) -> None:
        if self.done or self.skipped:
            return
        LOGGER.debug("Intro animation skipped")
        self.skipped = True
        if self._timer is not None:
            self._timer.cancel()
        if self._steps is not None:
            self._advance()

    def _advance(self) -> None:
        self._timer = None
        try:
            delay = next(self._steps)
        except StopIteration:
            self.done = True
            if self._on_done is not None:
                self._on_done()
            return
        self._timer = self._scheduler.call_later(delay, self._advance)

    def _flush(self, rest_of_line: str, next_line: int) -> None:
        remaining = "".join(line + "\r\n" for line in self.lines[next_line:])
        self.terminal.write(rest_of_line + "\r\n" + remaining)

    def _type(self) -> Iterator[float]:
        for line_index, line in enumerate(self.lines):
            units = _UNIT.findall(line)
            for unit_index, unit in enumerate(units):
                if self.skipped:
                    self._flush("".join(units[unit_index:]), line_index + 1)
                    return
                self.terminal.write(unit)
                if not unit.startswith("\x1b"):
                    yield self.char_delay
            if self.skipped:
                self._flush("", line_index + 1)
                return
            self.terminal.write("\r\n")
            yield self.line_delay
