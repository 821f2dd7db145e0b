"""In-memory terminal surface.

``VirtualTerminal`` is the cursor-addressable character grid the session writes
to. Escape sequence handling is done by a ``pyte`` history screen; on top of it
this module tracks absolute row numbers (rows scrolled off the top keep their
number) so the input router and link annotation can ask where the cursor is,
what text is on a row and which colour a cell carries. Every write is also
forwarded untouched to a sink, normally the SSH channel, so the client's real
terminal renders the same bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional

import pyte
from wcwidth import wcwidth

LOGGER = logging.getLogger(__name__)

DEFAULT_COLOR = "default"


def char_width(char: str) -> int:
    """Cells taken by ``char``; control and combining characters take none."""
    return max(0, wcwidth(char))


@dataclass
class Link:
    """An activatable region on one absolute row, columns ``[start, end)``."""

    row: int
    start: int
    end: int
    text: str
    activate: Callable[[], None]


LinkProvider = Callable[[int], List[Link]]


class ScrollCountingScreen(pyte.HistoryScreen):
    """History screen that counts how many rows have scrolled off the top."""

    def __init__(self, columns: int, lines: int, history: int):
        self.scrolled = 0
        super().__init__(columns, lines, history=history)

    def index(self):
        top, bottom = self.margins or pyte.screens.Margins(0, self.lines - 1)
        if self.cursor.y == bottom:
            self.scrolled += 1
        super().index()


class VirtualTerminal:
    """A character grid with scrollback that interprets terminal output."""

    def __init__(
        self,
        columns: int = 80,
        rows: int = 24,
        scrollback: int = 1000,
        sink: Optional[Callable[[str], None]] = None,
    ):
        self.screen = ScrollCountingScreen(max(2, columns), max(2, rows), max(0, scrollback))
        self.stream = pyte.Stream(self.screen)
        self.sink = sink
        self.link_provider_registered = False
        self._link_providers: List[LinkProvider] = []

    # =========================================================================
    # Output
    # =========================================================================

    def write(self, data: str, callback: Optional[Callable[[], None]] = None) -> None:
        """Apply ``data`` to the grid, forward it to the sink, then run ``callback``."""
        if data:
            self.stream.feed(data)
            if self.sink is not None:
                self.sink(data)
        if callback is not None:
            callback()

    def clear(self) -> None:
        """Drop the scrollback and blank the screen, cursor home."""
        self.write("\x1b[H\x1b[2J\x1b[3J")
        self.screen.history.top.clear()

    def resize(self, columns: int, rows: int) -> None:
        """Resize the grid, scrolling rows into history to keep the cursor visible."""
        screen = self.screen
        columns = max(2, columns)
        rows = max(2, rows)

        shift = max(0, screen.cursor.y - rows + 1)
        if shift:
            for y in range(shift):
                screen.history.top.append(screen.buffer[y])
            for y in range(rows):
                screen.buffer[y] = screen.buffer[y + shift]
            screen.scrolled += shift
            screen.cursor.y -= shift
        for y in [y for y in screen.buffer if y >= rows]:
            del screen.buffer[y]

        # Lines are handled above, pyte only trims columns.
        screen.resize(screen.lines, columns)
        screen.lines = rows
        screen.set_margins()
        screen.cursor.x = min(screen.cursor.x, columns - 1)
        LOGGER.debug("Terminal resized to %dx%d", columns, rows)

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def columns(self) -> int:
        return self.screen.columns

    @property
    def rows(self) -> int:
        return self.screen.lines

    @property
    def history(self) -> Deque:
        return self.screen.history.top

    @property
    def scrolled(self) -> int:
        return self.screen.scrolled

    @property
    def cursor_x(self) -> int:
        return self.screen.cursor.x

    @property
    def cursor_y(self) -> int:
        return self.screen.cursor.y

    @property
    def cursor_visible(self) -> bool:
        return not self.screen.cursor.hidden

    @property
    def cursor_row(self) -> int:
        """Absolute row of the cursor, counting rows scrolled off the top."""
        return self.scrolled + self.cursor_y

    def to_absolute(self, viewport_row: int) -> int:
        return self.scrolled + viewport_row

    def _row(self, row: int):
        if row >= self.scrolled:
            index = row - self.scrolled
            return self.screen.buffer[index] if index < self.rows else None
        offset = self.scrolled - row
        if offset > len(self.history):
            return None
        return self.history[len(self.history) - offset]

    def row_text(self, row: int, trim: bool = True) -> str:
        line = self._row(row)
        if line is None:
            return ""
        text = "".join(line[x].data for x in range(self.columns))
        return text.rstrip() if trim else text

    def text_before_cursor(self) -> str:
        line = self.screen.buffer[self.cursor_y]
        return "".join(line[x].data for x in range(min(self.cursor_x, self.columns)))

    def line_text(self, viewport_row: int, trim: bool = True) -> str:
        return self.row_text(self.to_absolute(viewport_row), trim)

    def cell_fg(self, row: int, column: int) -> Optional[str]:
        """Foreground colour name of a cell on an absolute row, None for default."""
        line = self._row(row)
        if line is None or not 0 <= column < self.columns:
            return None
        fg = line[column].fg
        return None if fg == DEFAULT_COLOR else fg

    @property
    def display(self) -> List[str]:
        return [self.line_text(y) for y in range(self.rows)]

    # =========================================================================
    # Links
    # =========================================================================

    def register_link_provider(self, provider: LinkProvider) -> None:
        self._link_providers.append(provider)

    def links_at(self, row: int) -> List[Link]:
        links: List[Link] = []
        for provider in self._link_providers:
            links.extend(provider(row))
        return links

    def activate_link(self, row: int, column: int) -> bool:
        """Activate the link covering ``column`` on absolute ``row``, if any."""
        for link in self.links_at(row):
            if link.start <= column < link.end:
                LOGGER.debug("Activating link %r at %d:%d", link.text, row, column)
                link.activate()
                return True
        return False
