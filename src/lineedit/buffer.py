"""EditBuffer: the text being edited, its cursor, selection and undo history.

The buffer is a single string; multi-line input keeps its ``"\\n"``
separators inline.  Offsets are Python string indices, and the cursor is
always kept on a grapheme-cluster boundary so that a combining accent or
an emoji sequence is never split.
"""

from __future__ import annotations

import enum
from contextlib import contextmanager
from typing import Iterator

import grapheme

from lineedit.config import EditMode
from lineedit.layout import Position, advance
from lineedit.undo import DEFAULT_UNDO_LIMIT, Change, UndoStack


class Unit(enum.Enum):
    CHAR = "char"
    WORD = "word"
    LINE = "line"
    BUFFER = "buffer"


class Direction(enum.Enum):
    BACKWARD = -1
    FORWARD = 1


# ---------------------------------------------------------------------------
# Character classes
# ---------------------------------------------------------------------------


def is_whitespace_char(g: str) -> bool:
    return g.isspace()


def _emacs_word(g: str) -> bool:
    return g[:1].isalnum()


def _vi_class(g: str) -> int:
    """0 whitespace, 1 word characters, 2 punctuation."""
    if g.isspace():
        return 0
    if g[:1].isalnum() or g[:1] == "_":
        return 1
    return 2


def _vi_big_class(g: str) -> int:
    return 0 if g.isspace() else 1


# ---------------------------------------------------------------------------
# EditBuffer
# ---------------------------------------------------------------------------


class EditBuffer:
    """Text, cursor, optional selection and undo/redo.

    Every mutation is recorded on the undo stack unless it is itself an
    undo or redo.
    """

    def __init__(
        self,
        text: str = "",
        *,
        edit_mode: EditMode = EditMode.EMACS,
        undo_limit: int = DEFAULT_UNDO_LIMIT,
    ) -> None:
        self._text = text
        self._cursor = len(text)
        self._anchor: int | None = None
        self.edit_mode = edit_mode
        self._undo = UndoStack(undo_limit)

    # -- read access --------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._text)

    def __str__(self) -> str:
        return self._text

    @property
    def is_empty(self) -> bool:
        return not self._text

    @property
    def undo_stack(self) -> UndoStack:
        return self._undo

    def line_start(self, pos: int | None = None) -> int:
        pos = self._cursor if pos is None else pos
        return self._text.rfind("\n", 0, pos) + 1

    def line_end(self, pos: int | None = None) -> int:
        pos = self._cursor if pos is None else pos
        end = self._text.find("\n", pos)
        return len(self._text) if end < 0 else end

    def line_and_column(self, pos: int | None = None) -> tuple[int, int]:
        """Zero-based logical line number and string column of *pos*."""
        pos = self._cursor if pos is None else pos
        return self._text.count("\n", 0, pos), pos - self.line_start(pos)

    @property
    def line_count(self) -> int:
        return self._text.count("\n") + 1

    def char_before(self, pos: int | None = None) -> str:
        """The grapheme ending at *pos*, or ``""`` at the start."""
        pos = self._cursor if pos is None else pos
        start = self.prev_boundary(pos)
        return self._text[start:pos]

    def char_after(self, pos: int | None = None) -> str:
        pos = self._cursor if pos is None else pos
        return self._text[pos : self.next_boundary(pos)]

    # -- grapheme boundaries ------------------------------------------------

    def next_boundary(self, pos: int) -> int:
        if pos >= len(self._text):
            return len(self._text)
        if self._text[pos] == "\n":
            return pos + 1
        first = next(grapheme.graphemes(self._text[pos : self.line_end(pos)]), "")
        return pos + max(len(first), 1)

    def prev_boundary(self, pos: int) -> int:
        if pos <= 0:
            return 0
        if self._text[pos - 1] == "\n":
            return pos - 1
        start = self.line_start(pos)
        last = ""
        for last in grapheme.graphemes(self._text[start:pos]):
            pass
        return pos - max(len(last), 1)

    def snap(self, pos: int) -> int:
        """Largest grapheme boundary at or before *pos*."""
        pos = max(0, min(pos, len(self._text)))
        start = self.line_start(pos)
        boundary = start
        for g in grapheme.graphemes(self._text[start : self.line_end(pos)]):
            if boundary + len(g) > pos:
                break
            boundary += len(g)
        return boundary

    def _graphemes_forward(self, pos: int) -> Iterator[tuple[int, str]]:
        while pos < len(self._text):
            end = self.next_boundary(pos)
            yield pos, self._text[pos:end]
            pos = end

    def _graphemes_backward(self, pos: int) -> Iterator[tuple[int, str]]:
        while pos > 0:
            start = self.prev_boundary(pos)
            yield start, self._text[start:pos]
            pos = start

    # -- word boundaries ----------------------------------------------------

    def next_word_start(self, pos: int | None = None, *, big: bool = False) -> int:
        """Start of the next word (Vi ``w``) or end of the current one (Emacs)."""
        pos = self._cursor if pos is None else pos
        if self.edit_mode is EditMode.EMACS:
            it = self._graphemes_forward(pos)
            seen_word = False
            for start, g in it:
                if _emacs_word(g):
                    seen_word = True
                elif seen_word:
                    return start
            return len(self._text)

        classify = _vi_big_class if big else _vi_class
        it = self._graphemes_forward(pos)
        first = next(it, None)
        if first is None:
            return len(self._text)
        start_class = classify(first[1])
        for start, g in it:
            cls = classify(g)
            if cls != start_class:
                if cls == 0:
                    start_class = 0
                    continue
                return start
        return len(self._text)

    def prev_word_start(self, pos: int | None = None, *, big: bool = False) -> int:
        """Start of the word before *pos* (Emacs ``M-b`` / Vi ``b``)."""
        pos = self._cursor if pos is None else pos
        if self.edit_mode is EditMode.EMACS:
            result = pos
            seen_word = False
            for start, g in self._graphemes_backward(pos):
                if _emacs_word(g):
                    seen_word = True
                    result = start
                elif seen_word:
                    break
                else:
                    result = start
            return result

        classify = _vi_big_class if big else _vi_class
        result = pos
        word_class: int | None = None
        for start, g in self._graphemes_backward(pos):
            cls = classify(g)
            if word_class is None:
                if cls == 0:
                    result = start
                    continue
                word_class = cls
            elif cls != word_class:
                break
            result = start
        return result

    def word_end(self, pos: int | None = None, *, big: bool = False) -> int:
        """Offset just past the end of the next word (Vi ``e`` is one less)."""
        pos = self._cursor if pos is None else pos
        classify = _vi_big_class if big else _vi_class
        if self.edit_mode is EditMode.EMACS:
            classify = lambda g: 1 if _emacs_word(g) else 0  # noqa: E731
        word_class: int | None = None
        result = pos
        for start, g in self._graphemes_forward(pos):
            cls = classify(g)
            if word_class is None:
                if cls == 0:
                    result = start + len(g)
                    continue
                word_class = cls
            elif cls != word_class:
                return start
            result = start + len(g)
        return result if word_class is not None else len(self._text)

    def word_range(self, pos: int | None = None) -> tuple[int, int]:
        """Span of the word touching *pos* (used for case changes and completion)."""
        pos = self._cursor if pos is None else pos
        start = pos
        for s, g in self._graphemes_backward(pos):
            if not _emacs_word(g) and g != "_":
                break
            start = s
        end = pos
        for s, g in self._graphemes_forward(pos):
            if not _emacs_word(g) and g != "_":
                break
            end = s + len(g)
        return start, end

    # -- cursor -------------------------------------------------------------

    def set_cursor(self, pos: int) -> None:
        self._cursor = self.snap(pos)

    def move_cursor(self, unit: Unit, direction: Direction, count: int = 1) -> bool:
        """Move by *count* units; returns False when the cursor did not move."""
        before = self._cursor
        for _ in range(max(count, 1)):
            self._cursor = self._target(unit, direction)
        self._undo.break_coalescing()
        return self._cursor != before

    def _target(self, unit: Unit, direction: Direction) -> int:
        forward = direction is Direction.FORWARD
        if unit is Unit.CHAR:
            return self.next_boundary(self._cursor) if forward else self.prev_boundary(self._cursor)
        if unit is Unit.WORD:
            return self.next_word_start() if forward else self.prev_word_start()
        if unit is Unit.LINE:
            return self.line_end() if forward else self.line_start()
        return len(self._text) if forward else 0

    def move_vertical(self, delta: int, tab_stop: int = 8) -> bool:
        """Move *delta* logical lines up or down, keeping the display column.

        Returns False when there is no line in that direction.
        """
        line, _ = self.line_and_column()
        target = line + delta
        if target < 0 or target >= self.line_count:
            return False
        start = self.line_start()
        column = advance(self._text[start : self._cursor], Position(0, 0), 1 << 30, tab_stop).col

        lines = self._text.split("\n")
        offset = sum(len(text) + 1 for text in lines[:target])
        pos = offset
        for g in grapheme.graphemes(lines[target]):
            width = advance(self._text[offset:pos] + g, Position(0, 0), 1 << 30, tab_stop).col
            if width > column:
                break
            pos += len(g)
        self._cursor = pos
        self._undo.break_coalescing()
        return True

    # -- selection ----------------------------------------------------------

    def set_selection(self, anchor: int, cursor: int | None = None) -> None:
        """Select from *anchor* to *cursor* (default: the current cursor)."""
        self._anchor = self.snap(anchor)
        if cursor is not None:
            self._cursor = self.snap(cursor)

    def clear_selection(self) -> None:
        self._anchor = None

    @property
    def has_selection(self) -> bool:
        return self._anchor is not None

    @property
    def selection_anchor(self) -> int | None:
        return self._anchor

    def selection_range(self) -> tuple[int, int] | None:
        if self._anchor is None:
            return None
        return min(self._anchor, self._cursor), max(self._anchor, self._cursor)

    def selected_text(self) -> str:
        span = self.selection_range()
        return "" if span is None else self._text[span[0] : span[1]]

    # -- mutation -----------------------------------------------------------

    def insert(self, text: str, at: int | None = None, *, typing: bool = False) -> None:
        """Insert *text* at *at* (default: the cursor) and move the cursor past it."""
        if not text:
            return
        pos = self._cursor if at is None else self.snap(at)
        boundary = typing and is_whitespace_char(text)
        self._apply(Change(pos, "", text, self._cursor, pos + len(text)), typing=typing, boundary=boundary)

    def delete(self, start: int, end: int) -> str:
        """Delete ``[start, end)`` and return the removed text."""
        start, end = sorted((max(0, start), min(end, len(self._text))))
        if start == end:
            return ""
        removed = self._text[start:end]
        cursor_after = self._cursor
        if cursor_after >= end:
            cursor_after -= end - start
        elif cursor_after > start:
            cursor_after = start
        self._apply(Change(start, removed, "", self._cursor, cursor_after))
        return removed

    def replace(self, start: int, end: int, text: str, *, cursor: int | None = None) -> str:
        """Replace ``[start, end)`` with *text*; the cursor lands after it."""
        start, end = sorted((max(0, start), min(end, len(self._text))))
        removed = self._text[start:end]
        if removed == text:
            return removed
        cursor_after = start + len(text) if cursor is None else cursor
        self._apply(Change(start, removed, text, self._cursor, cursor_after))
        return removed

    def reset(self, text: str = "", cursor: int | None = None) -> None:
        """Replace everything without recording undo; clears undo and redo."""
        self._text = text
        self._cursor = len(text) if cursor is None else self.snap(cursor)
        self._anchor = None
        self._undo.clear()

    def swap_text(self, text: str, cursor: int | None = None) -> None:
        """Show *text* without recording it or touching the undo history.

        Used for previews (completion cycling, history search); the caller
        swaps the real text back before making a recorded change.
        """
        self._text = text
        self._cursor = len(text) if cursor is None else self.snap(cursor)
        self._anchor = None

    def set_text(self, text: str, cursor: int | None = None) -> None:
        """Replace everything as one undoable change."""
        cursor_after = len(text) if cursor is None else cursor
        if text == self._text:
            self.set_cursor(cursor_after)
            return
        self._apply(Change(0, self._text, text, self._cursor, cursor_after))

    def _apply(self, change: Change, *, typing: bool = False, boundary: bool = False) -> None:
        self._text = change.apply(self._text)
        self._cursor = self.snap(change.cursor_after)
        self._anchor = None
        self._undo.record(change, typing=typing, boundary=boundary)

    # -- undo ---------------------------------------------------------------

    @contextmanager
    def group(self) -> Iterator[None]:
        """Make every change inside the block one undo unit."""
        self._undo.begin_group()
        try:
            yield
        finally:
            self._undo.end_group()

    def break_coalescing(self) -> None:
        self._undo.break_coalescing()

    def undo(self) -> bool:
        unit = self._undo.pop_undo()
        if unit is None:
            return False
        for change in reversed(unit):
            self._text = change.inverse().apply(self._text)
        self._cursor = self.snap(unit[0].cursor_before)
        self._anchor = None
        return True

    def redo(self) -> bool:
        unit = self._undo.pop_redo()
        if unit is None:
            return False
        for change in unit:
            self._text = change.apply(self._text)
        self._cursor = self.snap(unit[-1].cursor_after)
        self._anchor = None
        return True
