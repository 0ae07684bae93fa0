"""Undo/redo stack built from reversible change records.

Each edit is stored as a :class:`Change` (what was removed, what was put
in its place, and where the cursor was before and after) instead of a
snapshot of the whole buffer, so memory stays proportional to the edits.
Several changes can form one undo unit: a kill, a yank-pop, or a run of
typed word characters.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

DEFAULT_UNDO_LIMIT = 256


@dataclass(frozen=True)
class Change:
    """Replace ``deleted`` at ``start`` with ``inserted``."""

    start: int
    deleted: str
    inserted: str
    cursor_before: int
    cursor_after: int

    def apply(self, text: str) -> str:
        end = self.start + len(self.deleted)
        return text[: self.start] + self.inserted + text[end:]

    def inverse(self) -> Change:
        return Change(self.start, self.inserted, self.deleted, self.cursor_after, self.cursor_before)

    @property
    def is_insert(self) -> bool:
        return not self.deleted and bool(self.inserted)


class UndoStack:
    """LIFO stack of undo units with a redo stack.

    A new record clears the redo stack.  The oldest units are dropped once
    ``limit`` is reached.
    """

    def __init__(self, limit: int = DEFAULT_UNDO_LIMIT) -> None:
        self._undo: deque[list[Change]] = deque(maxlen=limit)
        self._redo: list[list[Change]] = []
        self._group: list[Change] | None = None
        self._group_depth = 0
        self._typing = False

    def record(self, change: Change, *, typing: bool = False, boundary: bool = False) -> None:
        """Push *change* as a new unit, or merge it into the current one.

        Args:
            change: The edit that was just applied.
            typing: The change is a self-inserted character; consecutive
                typing merges into one unit.
            boundary: Start a new unit even while typing (whitespace).
        """
        self._redo.clear()
        if self._group is not None:
            self._group.append(change)
            return

        if typing and not boundary and self._typing and self._undo:
            unit = self._undo[-1]
            last = unit[-1]
            if last.is_insert and change.is_insert and change.start == last.start + len(last.inserted):
                unit[-1] = Change(
                    last.start,
                    "",
                    last.inserted + change.inserted,
                    last.cursor_before,
                    change.cursor_after,
                )
                return

        self._undo.append([change])
        self._typing = typing

    def begin_group(self) -> None:
        if self._group_depth == 0:
            self._group = []
        self._group_depth += 1

    def end_group(self) -> None:
        if self._group_depth == 0:
            return
        self._group_depth -= 1
        if self._group_depth == 0:
            group = self._group or []
            self._group = None
            if group:
                self._undo.append(group)
                self._typing = False

    def break_coalescing(self) -> None:
        """Make the next typed character start a new undo unit."""
        self._typing = False

    def pop_undo(self) -> list[Change] | None:
        """Remove the newest unit and move it to the redo stack."""
        self._typing = False
        if not self._undo:
            return None
        unit = self._undo.pop()
        self._redo.append(unit)
        return unit

    def pop_redo(self) -> list[Change] | None:
        self._typing = False
        if not self._redo:
            return None
        unit = self._redo.pop()
        self._undo.append(unit)
        return unit

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._group = None
        self._group_depth = 0
        self._typing = False

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def length(self) -> int:
        return len(self._undo)
