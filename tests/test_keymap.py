"""Tests for lineedit.keymap and lineedit.vi -- key bindings and Vi parsing."""

from __future__ import annotations

import pytest

from lineedit.config import EditMode
from lineedit.keymap import DEFAULT_EMACS_KEYBINDINGS, DEFAULT_VI_INSERT_KEYBINDINGS, KeybindingsManager
from lineedit.vi import LINE, ViCommand, ViCommandParser, ViParseError


# ---------------------------------------------------------------------------
# KeybindingsManager
# ---------------------------------------------------------------------------


class TestEmacsBindings:
    """Default Emacs map."""

    def test_resolve_defaults(self) -> None:
        manager = KeybindingsManager()
        assert manager.resolve("ctrl+a") == "cursorLineStart"
        assert manager.resolve("alt+b") == "cursorWordLeft"
        assert manager.resolve("enter") == "submit"
        assert manager.resolve("x") is None

    def test_chord(self) -> None:
        manager = KeybindingsManager()
        assert manager.is_prefix("ctrl+x")
        assert manager.resolve("ctrl+u", prefix="ctrl+x") == "undo"
        assert manager.resolve("ctrl+u") == "killToLineStart"

    def test_get_keys(self) -> None:
        manager = KeybindingsManager()
        assert manager.get_keys("yank") == ["ctrl+y"]
        assert manager.get_keys("viCommandMode") == []


class TestOverrides:
    """User configuration replaces an action's keys."""

    def test_override_replaces_defaults(self) -> None:
        manager = KeybindingsManager(config={"cursorLineStart": "C-o"})
        assert manager.resolve("ctrl+o") == "cursorLineStart"
        assert manager.resolve("home") is None

    def test_chord_override_is_normalized(self) -> None:
        manager = KeybindingsManager(config={"redo": "C-x C-r"})
        assert manager.is_prefix("ctrl+x")
        assert manager.resolve("ctrl+r", prefix="ctrl+x") == "redo"

    def test_set_config_rebuilds(self) -> None:
        manager = KeybindingsManager()
        manager.set_config({"submit": "ctrl+m"})
        assert manager.resolve("enter") is None
        assert manager.resolve("ctrl+m") == "submit"


class TestViInsertBindings:
    """Vi insert mode keeps the control keys and drops meta-only actions."""

    def test_escape_enters_command_mode(self) -> None:
        manager = KeybindingsManager(EditMode.VI)
        assert manager.resolve("escape") == "viCommandMode"
        assert manager.resolve("ctrl+w") == "killWordBackward"

    def test_meta_actions_dropped(self) -> None:
        assert "yankPop" in DEFAULT_EMACS_KEYBINDINGS
        assert "yankPop" not in DEFAULT_VI_INSERT_KEYBINDINGS
        manager = KeybindingsManager(EditMode.VI)
        assert manager.resolve("alt+y") is None

    def test_switch_mode(self) -> None:
        manager = KeybindingsManager()
        manager.set_edit_mode(EditMode.VI)
        assert manager.edit_mode is EditMode.VI
        assert manager.resolve("escape") == "viCommandMode"


# ---------------------------------------------------------------------------
# Vi command parser
# ---------------------------------------------------------------------------


def feed_all(parser: ViCommandParser, *keys: str) -> ViCommand | None:
    result = None
    for key in keys:
        result = parser.feed(key)
    return result


class TestViCommandParser:
    """Counts, operators, motions and arguments."""

    def test_plain_motion(self) -> None:
        assert ViCommandParser().feed("w") == ViCommand("w")

    def test_count(self) -> None:
        parser = ViCommandParser()
        assert parser.feed("3") is None
        assert parser.pending
        assert parser.feed("l") == ViCommand("l", count=3)
        assert not parser.pending

    def test_zero_is_a_motion_without_count(self) -> None:
        assert ViCommandParser().feed("0") == ViCommand("0")
        assert feed_all(ViCommandParser(), "1", "0", "x") == ViCommand("x", count=10)

    def test_operator_motion(self) -> None:
        assert feed_all(ViCommandParser(), "d", "w") == ViCommand("w", operator="d")

    def test_counts_multiply(self) -> None:
        assert feed_all(ViCommandParser(), "2", "d", "3", "w") == ViCommand("w", count=6, operator="d")

    def test_doubled_operator_is_line(self) -> None:
        command = feed_all(ViCommandParser(), "c", "c")
        assert command == ViCommand(LINE, operator="c")
        assert command is not None and command.is_motion

    def test_find_takes_argument(self) -> None:
        assert feed_all(ViCommandParser(), "d", "t", "x") == ViCommand("t", operator="d", argument="x")
        assert feed_all(ViCommandParser(), "r", "space") == ViCommand("r", argument=" ")

    def test_replace_after_operator_is_error(self) -> None:
        parser = ViCommandParser()
        parser.feed("d")
        with pytest.raises(ViParseError):
            parser.feed("r")
        assert not parser.pending

    def test_command_after_operator_is_error(self) -> None:
        parser = ViCommandParser()
        parser.feed("y")
        with pytest.raises(ViParseError):
            parser.feed("x")

    def test_unknown_key(self) -> None:
        with pytest.raises(ViParseError):
            ViCommandParser().feed("ctrl+q")

    def test_argument_must_be_a_character(self) -> None:
        parser = ViCommandParser()
        parser.feed("f")
        with pytest.raises(ViParseError):
            parser.feed("left")

    def test_repeat(self) -> None:
        assert ViCommand("x").repeat == 1
        assert ViCommand("x", count=4).repeat == 4
        assert not ViCommand("x").is_motion
        assert ViCommand("f", argument="a").is_motion
