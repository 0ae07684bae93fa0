"""History store: bounded, deduplicating, persistent log of accepted lines.

File format (``#V2``): a header line, then one entry per line, oldest
first.  Backslash, newline and carriage return inside an entry are written
as ``\\\\``, ``\\n`` and ``\\r``.  Files without the header are read as one
entry per line with no unescaping.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from lineedit.config import EditorConfig, HistoryDuplicates
from lineedit.errors import HistoryIoError, HistoryParseError

logger = logging.getLogger(__name__)

HISTORY_HEADER = "#V2"

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r"}


@dataclass(frozen=True)
class HistoryEntry:
    text: str
    seq: int


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------


def escape_entry(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def unescape_entry(line: str, *, lineno: int | None = None, path: str | None = None) -> str:
    """Reverse :func:`escape_entry`; raises HistoryParseError on a bad escape."""
    if "\\" not in line:
        return line
    out: list[str] = []
    chars = iter(line)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt is None:
            raise HistoryParseError("Dangling escape", path, lineno)
        if nxt not in _UNESCAPES:
            raise HistoryParseError(f"Invalid escape \\{nxt}", path, lineno)
        out.append(_UNESCAPES[nxt])
    return "".join(out)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class History:
    """Ordered log of accepted lines, oldest first.

    Args:
        max_size: Capacity.  ``0`` is unlimited, a negative value disables
            history entirely.
        duplicates: What to do when a line repeats an existing entry.
        ignore_space: Skip lines whose first character is whitespace.
    """

    def __init__(
        self,
        max_size: int = 100,
        duplicates: HistoryDuplicates = HistoryDuplicates.IGNORE_CONSECUTIVE,
        ignore_space: bool = False,
    ) -> None:
        self._entries: deque[HistoryEntry] = deque()
        self._max_size = max_size
        self.duplicates = duplicates
        self.ignore_space = ignore_space
        self._next_seq = 0

    @classmethod
    def from_config(cls, config: EditorConfig) -> History:
        return cls(
            max_size=config.max_history_size,
            duplicates=config.history_duplicates,
            ignore_space=config.history_ignore_space,
        )

    # -- capacity -----------------------------------------------------------

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def enabled(self) -> bool:
        return self._max_size >= 0

    def set_max_size(self, max_size: int) -> None:
        """Change the capacity, evicting the oldest entries if needed."""
        self._max_size = max_size
        if max_size < 0:
            self._entries.clear()
        self._evict()

    def _evict(self) -> None:
        if self._max_size <= 0:
            return
        while len(self._entries) > self._max_size:
            self._entries.popleft()

    # -- sequence protocol --------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return (entry.text for entry in self._entries)

    def __getitem__(self, index: int) -> str:
        return self._entries[index].text

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def texts(self) -> list[str]:
        return [entry.text for entry in self._entries]

    # -- mutation -----------------------------------------------------------

    def add(self, text: str) -> bool:
        """Append *text* subject to the whitespace and duplicate policies.

        Returns True if an entry was added.
        """
        if not self.enabled or not text:
            return False
        if self.ignore_space and text[0].isspace():
            return False

        if self.duplicates is HistoryDuplicates.IGNORE_CONSECUTIVE:
            if self._entries and self._entries[-1].text == text:
                return False
        elif self.duplicates is HistoryDuplicates.IGNORE_ALL:
            for entry in self._entries:
                if entry.text == text:
                    self._entries.remove(entry)
                    break

        self._append(text)
        return True

    def _append(self, text: str) -> None:
        self._entries.append(HistoryEntry(text, self._next_seq))
        self._next_seq += 1
        self._evict()

    def clear(self) -> None:
        self._entries.clear()

    # -- search -------------------------------------------------------------

    def search(self, term: str, start: int, *, backward: bool = True, prefix: bool = False) -> int | None:
        """Index of the nearest entry from *start* containing *term*.

        With ``prefix=True`` the entry must start with *term*.  *start* is
        inclusive and is clamped to the valid range.
        """
        if not self._entries:
            return None
        start = max(0, min(start, len(self._entries) - 1))
        indices = range(start, -1, -1) if backward else range(start, len(self._entries))
        for i in indices:
            text = self._entries[i].text
            if (text.startswith(term) if prefix else term in text):
                return i
        return None

    # -- persistence --------------------------------------------------------

    def load(self, path: str | os.PathLike[str]) -> None:
        """Replace the entries with the contents of *path*.

        Nothing changes unless the whole file parses.
        """
        file_path = Path(path)
        try:
            raw = file_path.read_bytes()
        except OSError as e:
            raise HistoryIoError(f"Cannot read history ({e.strerror or e})", str(file_path)) from e
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise HistoryParseError("History is not valid UTF-8", str(file_path)) from e

        lines = content.split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        texts: list[str] = []
        if lines and lines[0].rstrip("\r") == HISTORY_HEADER:
            for lineno, line in enumerate(lines[1:], start=2):
                texts.append(unescape_entry(line, lineno=lineno, path=str(file_path)))
        else:
            texts = [line.rstrip("\r") for line in lines]

        texts = [text for text in texts if text]
        if not self.enabled:
            texts = []
        elif self._max_size > 0:
            texts = texts[-self._max_size :]

        self._entries.clear()
        for text in texts:
            self._append(text)
        logger.debug("Loaded %d history entries from %s", len(texts), file_path)

    def save(self, path: str | os.PathLike[str]) -> None:
        """Write all entries to *path*, replacing it atomically."""
        file_path = Path(path)
        body = "".join(escape_entry(entry.text) + "\n" for entry in self._entries)
        data = (HISTORY_HEADER + "\n" + body).encode("utf-8")
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", dir=file_path.parent)
        except OSError as e:
            raise HistoryIoError(f"Cannot write history ({e.strerror or e})", str(file_path)) from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if file_path.exists():
                os.chmod(tmp_name, file_path.stat().st_mode & 0o777)
            else:
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, file_path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise HistoryIoError(f"Cannot write history ({e.strerror or e})", str(file_path)) from e
        logger.debug("Saved %d history entries to %s", len(self._entries), file_path)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class HistoryNavigator:
    """Up/Down recall over a :class:`History` with a scratch entry.

    The scratch entry holds the in-progress buffer while the user browses
    older lines; returning past the newest entry gives it back verbatim.
    """

    def __init__(self, history: History) -> None:
        self._history = history
        self._index: int | None = None
        self._scratch = ""

    @property
    def index(self) -> int | None:
        """Index of the recalled entry, ``None`` at the present."""
        return self._index

    @property
    def browsing(self) -> bool:
        return self._index is not None

    @property
    def scratch(self) -> str:
        return self._scratch

    def reset(self) -> None:
        """Return to the present (called whenever the user edits)."""
        self._index = None

    def previous(self, current: str, prefix: str | None = None) -> str | None:
        """Move to an older entry; returns its text or None at the oldest.

        With *prefix*, entries not starting with it are skipped.
        """
        if not len(self._history):
            return None
        if self._index is None:
            start = len(self._history) - 1
        elif self._index == 0:
            return None
        else:
            start = self._index - 1
        found = self._find(start, backward=True, prefix=prefix)
        if found is None:
            return None
        if self._index is None:
            self._scratch = current
        self._index = found
        return self._history[found]

    def next(self, prefix: str | None = None) -> str | None:
        """Move to a newer entry, or back to the scratch text past the newest."""
        if self._index is None:
            return None
        found = None
        if self._index + 1 < len(self._history):
            found = self._find(self._index + 1, backward=False, prefix=prefix)
        if found is None:
            self._index = None
            return self._scratch
        self._index = found
        return self._history[found]

    def first(self, current: str) -> str | None:
        if not len(self._history):
            return None
        if self._index is None:
            self._scratch = current
        self._index = 0
        return self._history[0]

    def last(self) -> str | None:
        if self._index is None:
            return None
        self._index = None
        return self._scratch

    def _find(self, start: int, *, backward: bool, prefix: str | None) -> int | None:
        if not prefix:
            return start
        return self._history.search(prefix, start, backward=backward, prefix=True)
