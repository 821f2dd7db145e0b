"""Command history with a bidirectional browsing cursor."""

from __future__ import annotations

from typing import List, Optional

OLDER = -1
NEWER = 1


class CommandHistory:
    """Append-only list of submitted commands.

    ``cursor`` lies in ``[0, len(entries)]``; ``len(entries)`` means no entry is
    selected and the line is fresh.
    """

    def __init__(self) -> None:
        self.entries: List[str] = []
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.entries)

    def record(self, command: str) -> None:
        if command:
            self.entries.append(command)
        self.cursor = len(self.entries)

    def step(self, direction: int) -> Optional[str]:
        """Move the cursor and return the line that should now be shown.

        Returns None when nothing should change, "" when the line should be
        cleared back to a bare prompt, otherwise the selected entry.
        """
        if not self.entries:
            return None

        target = self.cursor + direction
        if target < 0:
            return None
        if target >= len(self.entries):
            self.cursor = len(self.entries)
            return ""

        self.cursor = target
        return self.entries[self.cursor]
