"""Dynamic link annotation.

Configured keywords (the link registry from the content document) become
clickable regions wherever they appear as whole words in rendered output.
Links are computed lazily per row by a provider registered once on the
terminal, the way a terminal widget asks for links when the pointer hovers a
line. ``URL`` entries are handed to an opener; ``Text`` entries write their
payload into the terminal stream.
"""

from __future__ import annotations

import logging
import re
import webbrowser
from typing import Callable, List, Optional, Sequence

from .content import LINK_URL, LinkEntry
from .terminal import Link, VirtualTerminal, char_width

LOGGER = logging.getLogger(__name__)

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
WORD_CHAR = re.compile(r"[A-Za-z0-9_]")


def strip_ansi(text: str) -> str:
    return ANSI_PATTERN.sub("", text)


def visual_width_upto(text: str, index: int) -> int:
    """Visual column of ``text[index]``: escapes take no room, wide glyphs two cells."""
    width = 0
    position = 0
    limit = min(index, len(text))
    while position < limit:
        char = text[position]
        if char == "\x1b":
            match = ANSI_PATTERN.match(text, position)
            position = match.end() if match else position + 1
            continue
        width += char_width(char)
        position += 1
    return width


def _is_word_char(char: Optional[str]) -> bool:
    return bool(char) and WORD_CHAR.match(char) is not None


def find_keyword(line: str, keyword: str) -> List[int]:
    """Indexes in ``line`` where ``keyword`` occurs as a whole word, any case."""
    lower_line = line.lower()
    lower_keyword = keyword.lower()
    clean_line = strip_ansi(line)
    found: List[int] = []
    search = 0
    while lower_keyword:
        index = lower_line.find(lower_keyword, search)
        if index == -1:
            break
        clean_start = len(strip_ansi(line[:index]))
        clean_end = clean_start + len(lower_keyword)
        before = clean_line[clean_start - 1] if clean_start > 0 else None
        after = clean_line[clean_end] if clean_end < len(clean_line) else None
        if not _is_word_char(before) and not _is_word_char(after):
            found.append(index)
        search = index + len(lower_keyword)
    return found


class LinkAnnotator:
    """Registers the keyword link provider and builds links for a row."""

    def __init__(
        self,
        entries: Sequence[LinkEntry],
        prompt_marker: str = "",
        open_url: Callable[[str], object] = webbrowser.open,
    ):
        self.entries = list(entries)
        self.prompt_marker = prompt_marker
        self.open_url = open_url

    def annotate(self, terminal: VirtualTerminal, text: str) -> str:
        """Make sure ``terminal`` resolves links, then hand ``text`` back unchanged."""
        if self.entries and not terminal.link_provider_registered:
            terminal.register_link_provider(lambda row: self.links_for_row(terminal, row))
            terminal.link_provider_registered = True
            LOGGER.debug("Registered link provider for %d keyword(s)", len(self.entries))
        return text

    def links_for_row(self, terminal: VirtualTerminal, row: int) -> List[Link]:
        raw_line = terminal.row_text(row, trim=False)
        if self.prompt_marker and strip_ansi(raw_line).startswith(self.prompt_marker):
            return []

        links: List[Link] = []
        for entry in self.entries:
            for index in find_keyword(raw_line, entry.keyword):
                start = visual_width_upto(raw_line, index)
                end = start + len(entry.keyword)
                start_offset = end_offset = 0
                if entry.color and terminal.cell_fg(row, start) is not None:
                    start_offset = entry.start_offset
                    end_offset = entry.end_offset
                links.append(
                    Link(
                        row=row,
                        start=start + start_offset,
                        end=end + end_offset,
                        text=entry.keyword,
                        activate=self._activator(terminal, entry),
                    )
                )
        return links

    def _activator(self, terminal: VirtualTerminal, entry: LinkEntry) -> Callable[[], None]:
        def activate() -> None:
            if entry.kind == LINK_URL:
                LOGGER.info("Opening link %s", entry.payload)
                self.open_url(entry.payload)
            else:
                terminal.write(entry.payload)

        return activate
