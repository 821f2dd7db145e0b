"""Tab completion over command names and current-directory entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from .filesystem import FileSystemNavigator


@dataclass
class Completion:
    """What a Tab press should do.

    ``suffix`` is appended in place when exactly one candidate matched;
    otherwise ``listing`` holds the candidates to print above a redrawn
    prompt. Both empty means nothing happens.
    """

    input: str
    suffix: str = ""
    listing: List[str] = field(default_factory=list)


def complete(
    line: str, vocabulary: Sequence[str], navigator: FileSystemNavigator
) -> Completion:
    """Compute completion for ``line``, the input typed before the cursor."""
    current = line.lstrip()
    entries = navigator.directory_entries()

    if not current.strip():
        return Completion(
            input=current,
            listing=list(vocabulary) + [entry.name for entry in entries],
        )

    parts = re.split(r"\s+", current)
    command = parts[0]
    last = parts[-1]

    if len(parts) == 1:
        matches = [name for name in vocabulary if name.startswith(command)]
    else:
        if command == "cd":
            entries = [entry for entry in entries if entry.is_dir]
        elif command == "cat":
            entries = [entry for entry in entries if not entry.is_dir]
        matches = [entry.name for entry in entries if entry.name.startswith(last)]

    if len(matches) == 1:
        return Completion(input=current, suffix=matches[0][len(last):])
    return Completion(input=current, listing=matches)
