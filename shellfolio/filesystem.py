"""Virtual filesystem for the shell.

Two layers are combined at read time:

- the static catalog, a tree of ``DirectoryEntry`` / ``FileEntry`` built once
  from the content document and never mutated;
- the created-file overlay, a flat mapping of ``"<cwd segments joined by />/<name>"``
  keys to text, persisted on every write.

Overlay entries appear in a directory only when their key is exactly one level
below that directory. They never create navigable directories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from .storage import CreatedFileOverlay

LOGGER = logging.getLogger(__name__)


# =============================================================================
# Entries
# =============================================================================


@dataclass
class FileEntry:
    name: str
    content: str = ""

    @property
    def is_dir(self) -> bool:
        return False


@dataclass
class DirectoryEntry:
    name: str
    description: Optional[str] = None
    children: Dict[str, "Entry"] = field(default_factory=dict)

    @property
    def is_dir(self) -> bool:
        return True


Entry = Union[FileEntry, DirectoryEntry]


def _build_files(raw: Any, into: Dict[str, Entry]) -> None:
    if not isinstance(raw, dict):
        return
    for name, body in raw.items():
        if isinstance(body, dict):
            into[name] = FileEntry(name=name, content=str(body.get("content", "")))
        elif isinstance(body, str):
            into[name] = FileEntry(name=name, content=body)
        else:
            LOGGER.warning("Skipping malformed file node %r", name)


def _build_directory(name: str, raw: Dict[str, Any]) -> DirectoryEntry:
    directory = DirectoryEntry(name=name, description=raw.get("description") or None)
    _build_files(raw.get("files"), directory.children)
    subdirectories = raw.get("subdirectories")
    if isinstance(subdirectories, dict):
        for sub_name, sub_raw in subdirectories.items():
            if not isinstance(sub_raw, dict):
                LOGGER.warning("Skipping malformed directory node %r", sub_name)
                continue
            directory.children[sub_name] = _build_directory(sub_name, sub_raw)
    return directory


def build_catalog(raw: Dict[str, Any]) -> DirectoryEntry:
    """Build the typed catalog tree from the content document's FILESYSTEM.

    Top-level keys become directories under home, except ``"~"`` whose
    files and subdirectories are placed directly in home.
    """
    root = DirectoryEntry(name="~")
    if not isinstance(raw, dict):
        return root

    for name, node in raw.items():
        if not isinstance(node, dict):
            LOGGER.warning("Skipping malformed directory node %r", name)
            continue
        if name == "~":
            home = _build_directory(name, node)
            root.children.update(home.children)
            continue
        root.children[name] = _build_directory(name, node)
    return root


# =============================================================================
# Errors
# =============================================================================


class FileSystemError(Exception):
    """Base class for failures reported back to the user as text."""


class FileNotFound(FileSystemError):
    def __init__(self, filename: str):
        super().__init__(f"cat: {filename}: No such file or directory")
        self.filename = filename


class IsADirectory(FileSystemError):
    def __init__(self, filename: str):
        super().__init__(f"cat: {filename}: Is a directory")
        self.filename = filename


class NoSuchDirectory(FileSystemError):
    def __init__(self, path: str):
        super().__init__(f"cd: no such file or directory: {path}")
        self.path = path


class FileExists(FileSystemError):
    def __init__(self, filename: str):
        super().__init__(f"touch: {filename}: File already exists")
        self.filename = filename


# =============================================================================
# Navigator
# =============================================================================


def normalize_newlines(text: str) -> str:
    """Convert any line terminators to CRLF for terminal display."""
    return text.replace("\r\n", "\n").replace("\n", "\r\n")


class FileSystemNavigator:
    """Current working directory plus every filesystem command."""

    def __init__(self, catalog: DirectoryEntry, overlay: CreatedFileOverlay):
        self.catalog = catalog
        self.overlay = overlay
        self.cwd: List[str] = []

    # -- paths ---------------------------------------------------------------

    def get_current_path(self) -> str:
        return "~" if not self.cwd else "~/" + "/".join(self.cwd)

    def overlay_key(self, filename: str, segments: Optional[Sequence[str]] = None) -> str:
        segments = self.cwd if segments is None else segments
        return "/".join(segments) + "/" + filename

    def resolve_directory(self, segments: Sequence[str]) -> Optional[DirectoryEntry]:
        """Walk the static catalog. Each segment must name a directory child."""
        current = self.catalog
        for segment in segments:
            child = current.children.get(segment)
            if not isinstance(child, DirectoryEntry):
                return None
            current = child
        return current

    # -- views ---------------------------------------------------------------

    def _overlay_files(self, segments: Sequence[str]) -> List[FileEntry]:
        prefix = "/".join(segments) + "/"
        files = []
        for key, content in self.overlay.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix):]
            if name and "/" not in name:
                files.append(FileEntry(name=name, content=content))
        return files

    def directory_entries(self, segments: Optional[Sequence[str]] = None) -> List[Entry]:
        """Static children followed by overlay files one level below ``segments``."""
        segments = self.cwd if segments is None else segments
        directory = self.resolve_directory(segments)
        entries: List[Entry] = []
        if directory is not None:
            entries.extend(directory.children.values())
        entries.extend(self._overlay_files(segments))
        return entries

    def current_directory_view(self) -> Dict[str, Entry]:
        """Children of the current directory keyed by name.

        Static entries win a name clash here; ``directory_entries`` keeps both.
        """
        view: Dict[str, Entry] = {}
        for entry in self.directory_entries():
            view.setdefault(entry.name, entry)
        return view

    # -- commands ------------------------------------------------------------

    def ls(self, long_format: bool = False) -> str:
        entries = self.directory_entries()
        lines = []
        if long_format:
            lines.append(f"total {len(entries)}")
            date = datetime.now().strftime("%m/%d/%Y")
            for entry in entries:
                kind = "d" if entry.is_dir else "-"
                size = 0 if entry.is_dir else len(entry.content)
                suffix = "/" if entry.is_dir else ""
                lines.append(
                    f"{kind}rw-r--r--  1 user  staff  {size:>5}  {date}  {entry.name}{suffix}"
                )
        else:
            for entry in entries:
                if isinstance(entry, DirectoryEntry):
                    line = f"{entry.name}/"
                    if entry.description:
                        line += f" - {entry.description}"
                    lines.append(line)
                else:
                    lines.append(entry.name)
        return "\r\n".join(lines).strip()

    def read(self, filename: str) -> str:
        """Return a file's raw text. Overlay entries win over the catalog."""
        key = self.overlay_key(filename)
        if key in self.overlay:
            return self.overlay.get(key) or ""

        directory = self.resolve_directory(self.cwd)
        item = directory.children.get(filename) if directory is not None else None
        if item is None:
            raise FileNotFound(filename)
        if isinstance(item, DirectoryEntry):
            raise IsADirectory(filename)
        return item.content

    def cat(self, filename: str) -> str:
        try:
            return normalize_newlines(self.read(filename))
        except FileSystemError as exc:
            return str(exc)

    def get_created_file(self, filename: str) -> Optional[str]:
        """Overlay content for ``filename`` in the cwd, or None if absent."""
        key = self.overlay_key(filename)
        if key in self.overlay:
            return self.overlay.get(key)
        return None

    def create(self, filename: str) -> None:
        if self.get_created_file(filename) is not None:
            raise FileExists(filename)
        self.overlay.set(self.overlay_key(filename), "")
        LOGGER.info("Created file %s", self.overlay_key(filename))

    def touch(self, filename: str) -> str:
        if not filename:
            return "Usage: touch <filename>"
        if "/" in filename:
            return "touch: cannot create file with path separators"
        try:
            self.create(filename)
        except FileExists as exc:
            return str(exc)
        return ""

    def write(self, filename: str, content: str, append: bool = False) -> None:
        """Replace or append to an overlay entry and persist it."""
        key = self.overlay_key(filename)
        if append and key in self.overlay:
            content = (self.overlay.get(key) or "") + "\n" + content
        self.overlay.set(key, content)
        LOGGER.info("Wrote %d characters to %s", len(content), key)

    def echo_to_file(self, content: str, filename: str, append: bool = False) -> str:
        if not filename:
            return "Usage: echo <text> > <filename>"
        if "/" in filename:
            return "touch: cannot create file with path separators"
        self.write(filename, content, append)
        return ""

    def change_directory(self, path: str) -> List[str]:
        """Resolve ``path`` against the cwd and return the new segment list.

        Raises NoSuchDirectory on the first segment that is not a directory.
        The navigator is not modified.
        """
        if path in ("", "~", "~/"):
            return []

        if path.startswith("~/"):
            target: List[str] = []
            parts = path[2:].split("/")
        elif path.startswith("/"):
            target = []
            parts = path[1:].split("/")
        else:
            target = list(self.cwd)
            parts = path.split("/")

        for part in parts:
            if not part or part == ".":
                continue
            if part == "..":
                if target:
                    target.pop()
                continue
            if not any(
                entry.is_dir and entry.name == part
                for entry in self.directory_entries(target)
            ):
                raise NoSuchDirectory(path)
            target.append(part)
        return target

    def cd(self, path: str) -> str:
        try:
            self.cwd = self.change_directory(path)
        except NoSuchDirectory as exc:
            return str(exc)
        return ""

    def tree(self) -> str:
        lines = [self.get_current_path()]
        self._tree_lines(list(self.cwd), "", lines)
        return "\r\n".join(lines)

    def _tree_lines(self, segments: List[str], indent: str, lines: List[str]) -> None:
        entries = self.directory_entries(segments)
        for index, entry in enumerate(entries):
            last = index == len(entries) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{indent}{connector}{entry.name}{'/' if entry.is_dir else ''}")
            if entry.is_dir:
                self._tree_lines(
                    segments + [entry.name], indent + ("    " if last else "│   "), lines
                )
