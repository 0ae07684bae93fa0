"""Completion protocol, request isolation, cycling state and listings.

A completer is anything with ``complete(line, pos)`` (or a plain function
with that signature) returning completion candidates.  The engine calls it,
materializes the result once, and turns any failure into "no
candidates" so that a broken completer never ends the edit session.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Protocol, Union

from lineedit.hooks import resolve_hook
from lineedit.layout import visible_width

logger = logging.getLogger(__name__)

PATH_DELIMITERS = frozenset({" ", "\t", '"', "'", "=", "\n"})


@dataclass(frozen=True)
class CompletionCandidate:
    """One completion: what to list and what to put in ``[start, end)``."""

    display: str
    replacement: str
    start: int
    end: int

    def apply(self, line: str) -> tuple[str, int]:
        """The completed line and the cursor position after the replacement."""
        text = line[: self.start] + self.replacement + line[self.end :]
        return text, self.start + len(self.replacement)


class Completer(Protocol):
    def complete(self, line: str, pos: int) -> Iterable[CompletionCandidate]: ...


CompleterFunc = Callable[[str, int], Iterable[Union[CompletionCandidate, str]]]


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def find_last_delimiter(text: str) -> int:
    """Index of the last path delimiter in *text*, or -1."""
    for i in range(len(text) - 1, -1, -1):
        if text[i] in PATH_DELIMITERS:
            return i
    return -1


def find_unclosed_quote_start(text: str) -> int | None:
    """Position of an unclosed double quote, or None."""
    quote_start: int | None = None
    for i, ch in enumerate(text):
        if ch == '"':
            quote_start = i if quote_start is None else None
    return quote_start


def word_start(line: str, pos: int) -> int:
    """Start of the whitespace-delimited word that ends at *pos*."""
    i = pos
    while i > 0 and not line[i - 1].isspace():
        i -= 1
    return i


def longest_common_prefix(texts: Iterable[str]) -> str:
    return os.path.commonprefix(list(texts))


# ---------------------------------------------------------------------------
# Ready-made completers
# ---------------------------------------------------------------------------


class WordCompleter:
    """Complete the word before the cursor from a fixed vocabulary."""

    def __init__(self, words: Iterable[str], *, ignore_case: bool = False) -> None:
        self.words = sorted(set(words))
        self.ignore_case = ignore_case

    def complete(self, line: str, pos: int) -> list[CompletionCandidate]:
        start = word_start(line, pos)
        prefix = line[start:pos]
        if self.ignore_case:
            prefix = prefix.lower()
        return [
            CompletionCandidate(word, word, start, pos)
            for word in self.words
            if (word.lower() if self.ignore_case else word).startswith(prefix)
        ]


class FilenameCompleter:
    """Complete the path token before the cursor from the filesystem.

    ``~`` expands to the home directory, dotfiles are offered only when the
    typed name starts with ``.``, directories get a trailing ``/``, and
    names containing spaces are quoted.
    """

    def __init__(self, base_path: str | os.PathLike[str] | None = None) -> None:
        self._base_path = Path(base_path) if base_path is not None else None

    def complete(self, line: str, pos: int) -> list[CompletionCandidate]:
        before = line[:pos]
        quote_start = find_unclosed_quote_start(before)
        if quote_start is not None:
            start = quote_start
            raw_prefix = before[quote_start + 1 :]
            quoted = True
        else:
            start = find_last_delimiter(before) + 1
            raw_prefix = before[start:]
            quoted = False

        dir_part, _, file_part = raw_prefix.rpartition("/")
        if "/" in raw_prefix:
            dir_part += "/"
        search_dir = self._resolve(dir_part)

        try:
            entries = list(os.scandir(search_dir))
        except OSError:
            return []

        show_hidden = file_part.startswith(".")
        candidates: list[tuple[bool, str, CompletionCandidate]] = []
        for entry in entries:
            name = entry.name
            if not name.startswith(file_part):
                continue
            if name.startswith(".") and not show_hidden:
                continue
            is_directory = _is_directory(entry)
            label = name + ("/" if is_directory else "")
            value = dir_part + label
            if quoted or " " in value:
                value = f'"{value}' if is_directory else f'"{value}"'
            candidates.append((not is_directory, label, CompletionCandidate(label, value, start, pos)))

        candidates.sort(key=lambda item: (item[0], item[1]))
        return [candidate for _, _, candidate in candidates]

    def _resolve(self, dir_part: str) -> str:
        if dir_part.startswith("~"):
            return os.path.expanduser(dir_part) or "."
        if not dir_part:
            return str(self._base_path) if self._base_path is not None else "."
        if os.path.isabs(dir_part) or self._base_path is None:
            return dir_part
        return str(self._base_path / dir_part)


def _is_directory(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CompletionEngine:
    """Invokes the registered completer with failure isolation."""

    def __init__(self, completer: Completer | CompleterFunc | None = None) -> None:
        self._complete: CompleterFunc | None = None
        self.set_completer(completer)

    def set_completer(self, completer: Completer | CompleterFunc | None) -> None:
        """Install *completer*; ``None`` removes it.  The last call wins."""
        self._complete = resolve_hook(completer, "complete")

    @property
    def has_completer(self) -> bool:
        return self._complete is not None

    def request(self, line: str, pos: int) -> list[CompletionCandidate]:
        """Candidates for *line* with the cursor at *pos*, never raising.

        Plain strings from the completer replace the word before the cursor.
        """
        if self._complete is None:
            return []
        try:
            raw = list(self._complete(line, pos))
        except Exception:
            logger.exception("Completer failed for %r at %d", line, pos)
            return []

        candidates: list[CompletionCandidate] = []
        for item in raw:
            if isinstance(item, str):
                start = word_start(line, pos)
                candidates.append(CompletionCandidate(item, item, start, pos))
            elif isinstance(item, CompletionCandidate):
                start = max(0, min(item.start, len(line)))
                end = max(start, min(item.end, len(line)))
                if (start, end) != (item.start, item.end):
                    item = CompletionCandidate(item.display, item.replacement, start, end)
                candidates.append(item)
            else:
                logger.warning("Ignoring completion candidate of type %s", type(item).__name__)
        return candidates


def common_prefix_candidate(line: str, candidates: list[CompletionCandidate]) -> CompletionCandidate | None:
    """A candidate inserting the longest common prefix, if it extends the input.

    Only applies when every candidate replaces the same span.
    """
    if not candidates:
        return None
    spans = {(c.start, c.end) for c in candidates}
    if len(spans) != 1:
        return None
    start, end = spans.pop()
    prefix = longest_common_prefix(c.replacement for c in candidates)
    if len(prefix) <= end - start or not prefix.startswith(line[start:end]):
        return None
    return CompletionCandidate(prefix, prefix, start, end)


# ---------------------------------------------------------------------------
# Cycling session
# ---------------------------------------------------------------------------


class CompletionSession:
    """Tab-cycling state: which candidate is previewed in the buffer.

    Position ``-1`` is the original text; stepping past the last candidate
    returns to it.
    """

    def __init__(self, candidates: list[CompletionCandidate], original_text: str, original_cursor: int) -> None:
        self.candidates = candidates
        self.original_text = original_text
        self.original_cursor = original_cursor
        self.index = -1

    @property
    def current(self) -> CompletionCandidate | None:
        return self.candidates[self.index] if self.index >= 0 else None

    def step(self, delta: int = 1) -> tuple[str, int]:
        """Advance by *delta* and return the text and cursor to show."""
        size = len(self.candidates) + 1
        self.index = (self.index + 1 + delta) % size - 1
        return self.preview()

    def preview(self) -> tuple[str, int]:
        candidate = self.current
        if candidate is None:
            return self.original_text, self.original_cursor
        return candidate.apply(self.original_text)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def format_grid(displays: list[str], width: int, styled: list[str] | None = None) -> list[str]:
    """Lay candidates out in columns, filled top to bottom.

    *displays* give the widths; *styled* (same length) are what is drawn.
    """
    if not displays:
        return []
    cells = styled if styled is not None else displays
    widths = [visible_width(d) for d in displays]
    col_width = max(widths) + 2
    ncols = max(1, min(len(displays), (width + 2) // col_width if col_width else 1))
    nrows = math.ceil(len(displays) / ncols)

    lines: list[str] = []
    for row in range(nrows):
        parts: list[str] = []
        for col in range(ncols):
            i = col * nrows + row
            if i >= len(displays):
                break
            last = col == ncols - 1 or (col + 1) * nrows + row >= len(displays)
            pad = "" if last else " " * (col_width - widths[i])
            parts.append(cells[i] + pad)
        lines.append("".join(parts))
    return lines
