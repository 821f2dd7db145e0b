"""Durable JSON records used by the shell session.

Two independent records survive between sessions:
- the created-file overlay (path string -> text), written by touch/echo/cat >
- the arcade high score (a single integer)

Both are read once when the server starts, shared by every session it hosts
and rewritten synchronously on every mutation. Persistence is best effort:
read failures degrade to the empty default and write failures are logged and
swallowed.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from .metrics import get_metrics_collector

LOGGER = logging.getLogger(__name__)


class JsonStore:
    """A single JSON document on disk."""

    def __init__(self, path: Path, record: str):
        self.path = Path(path)
        self.record = record

    def load(self, default: Any) -> Any:
        """Return the stored document, or ``default`` if it cannot be read."""
        if not self.path.exists():
            return default
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.error("Failed to read %s from %s: %s", self.record, self.path, exc)
            return default
        if not text.strip():
            return default
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            LOGGER.error("Malformed %s in %s: %s", self.record, self.path, exc)
            return default

    def save(self, value: Any) -> bool:
        """Write ``value`` atomically. Returns False if the write failed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(value, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.error("Failed to write %s to %s: %s", self.record, self.path, exc)
            get_metrics_collector().record_storage_failure(self.record)
            return False
        return True


class CreatedFileOverlay:
    """Flat mapping of slash-joined path keys to user-created text.

    Keys look like ``"/notes.txt"`` at home or ``"projects/web/todo"`` deeper
    down: the current directory segments joined with "/", then "/", then the
    file name.
    """

    def __init__(self, store: Optional[JsonStore] = None):
        self._store = store
        self._lock = threading.Lock()
        self._files: Dict[str, str] = {}
        if store is not None:
            self._files = self._coerce(store.load({}))

    @staticmethod
    def _coerce(raw: Any) -> Dict[str, str]:
        if not isinstance(raw, dict):
            LOGGER.warning("Created-file overlay is not a mapping, starting empty")
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def get(self, key: str) -> Optional[str]:
        return self._files.get(key)

    def items(self):
        with self._lock:
            return list(self._files.items())

    def set(self, key: str, content: str) -> None:
        """Store ``content`` under ``key`` and persist immediately."""
        with self._lock:
            self._files[key] = content
            if self._store is not None:
                self._store.save(dict(self._files))


class HighScoreStore:
    """Best arcade score, persisted as ``{"high_score": N}``."""

    def __init__(self, store: Optional[JsonStore] = None):
        self._store = store
        self._lock = threading.Lock()
        self._value = 0
        if store is not None:
            raw = store.load({})
            try:
                self._value = int(raw.get("high_score", 0)) if isinstance(raw, dict) else int(raw)
            except (TypeError, ValueError):
                LOGGER.warning("Ignoring malformed high score record: %r", raw)
                self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def save(self, score: int) -> bool:
        """Record ``score`` if it beats the stored one. Returns True if it did."""
        with self._lock:
            if score <= self._value:
                return False
            self._value = score
            if self._store is not None:
                self._store.save({"high_score": score})
        get_metrics_collector().record_high_score(score)
        return True


def open_overlay(path: Path) -> CreatedFileOverlay:
    return CreatedFileOverlay(JsonStore(path, "created files"))


def open_high_score(path: Path) -> HighScoreStore:
    return HighScoreStore(JsonStore(path, "high score"))
