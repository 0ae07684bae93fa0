"""Tests for lineedit.undo -- change records and the undo stack."""

from __future__ import annotations

from lineedit.undo import Change, UndoStack


def insert(start: int, text: str) -> Change:
    return Change(start, "", text, start, start + len(text))


class TestChange:
    """Applying and inverting single changes."""

    def test_apply_insert(self) -> None:
        assert insert(2, "XY").apply("abcd") == "abXYcd"

    def test_apply_replace(self) -> None:
        change = Change(1, "bc", "Z", 3, 2)
        assert change.apply("abcd") == "aZd"

    def test_inverse_restores(self) -> None:
        change = Change(1, "bc", "Z", 3, 2)
        assert change.inverse().apply(change.apply("abcd")) == "abcd"
        assert change.inverse().cursor_after == 3

    def test_is_insert(self) -> None:
        assert insert(0, "a").is_insert
        assert not Change(0, "a", "", 1, 0).is_insert


class TestUndoStackCoalescing:
    """Typing runs merge into one unit."""

    def test_consecutive_typing_merges(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"), typing=True)
        stack.record(insert(1, "b"), typing=True)
        assert stack.length == 1
        unit = stack.pop_undo()
        assert unit is not None
        assert unit[0].inserted == "ab"

    def test_whitespace_starts_new_unit(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"), typing=True)
        stack.record(insert(1, " "), typing=True, boundary=True)
        stack.record(insert(2, "b"), typing=True)
        assert stack.length == 2

    def test_non_adjacent_typing_does_not_merge(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"), typing=True)
        stack.record(insert(0, "b"), typing=True)
        assert stack.length == 2

    def test_break_coalescing(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"), typing=True)
        stack.break_coalescing()
        stack.record(insert(1, "b"), typing=True)
        assert stack.length == 2


class TestUndoStackGroups:
    """Explicit groups and redo."""

    def test_group_is_one_unit(self) -> None:
        stack = UndoStack()
        stack.begin_group()
        stack.record(insert(0, "a"))
        stack.begin_group()
        stack.record(insert(1, "b"))
        stack.end_group()
        stack.record(insert(2, "c"))
        stack.end_group()
        assert stack.length == 1

    def test_empty_group_records_nothing(self) -> None:
        stack = UndoStack()
        stack.begin_group()
        stack.end_group()
        assert not stack.can_undo

    def test_new_record_clears_redo(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"))
        stack.pop_undo()
        assert stack.can_redo
        stack.record(insert(0, "b"))
        assert not stack.can_redo

    def test_pop_redo_moves_back(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"))
        stack.pop_undo()
        assert stack.pop_redo() is not None
        assert stack.can_undo
        assert stack.pop_redo() is None

    def test_limit_drops_oldest(self) -> None:
        stack = UndoStack(limit=2)
        for i in range(3):
            stack.record(insert(i, "x"))
        assert stack.length == 2

    def test_clear(self) -> None:
        stack = UndoStack()
        stack.record(insert(0, "a"))
        stack.clear()
        assert not stack.can_undo
        assert stack.pop_undo() is None
