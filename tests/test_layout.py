"""Tests for lineedit.layout -- widths, wrapping and cursor positions."""

from __future__ import annotations

from lineedit.layout import Position, advance, grapheme_width, mask_text, strip_ansi, visible_width, wrap_rows


class TestWidths:
    """Display widths of graphemes and strings."""

    def test_ascii_and_wide(self) -> None:
        assert grapheme_width("a") == 1
        assert grapheme_width("日") == 2
        assert visible_width("日本") == 4

    def test_combining_and_emoji(self) -> None:
        assert grapheme_width("é") == 1
        assert grapheme_width("\U0001F44D\U0001F3FD") == 2

    def test_escape_sequences_have_no_width(self) -> None:
        assert visible_width("\x1b[31mab\x1b[0m") == 2
        assert strip_ansi("\x1b[1;32m> \x1b[0m") == "> "

    def test_tabs_expand_to_stop(self) -> None:
        assert visible_width("\t") == 8
        assert visible_width("ab\t") == 8
        assert visible_width("ab\t", tab_stop=4) == 4

    def test_control_characters_use_caret_notation(self) -> None:
        assert visible_width("\x01") == 2
        assert wrap_rows("a\x01", 80) == ["a^A"]


class TestAdvance:
    """Cursor position after drawing text."""

    def test_single_row(self) -> None:
        assert advance("abc", Position(0, 0), 80) == Position(0, 3)

    def test_exact_fill_moves_to_next_row(self) -> None:
        assert advance("abcd", Position(0, 0), 4) == Position(1, 0)

    def test_wide_char_does_not_split(self) -> None:
        assert advance("ab日", Position(0, 0), 3) == Position(1, 2)

    def test_newline(self) -> None:
        assert advance("ab\nc", Position(0, 0), 80) == Position(1, 1)

    def test_start_position(self) -> None:
        assert advance("xy", Position(2, 3), 80) == Position(2, 5)


class TestWrapRows:
    """Cutting styled lines into rows."""

    def test_wrap(self) -> None:
        assert wrap_rows("abcdef", 4) == ["abcd", "ef"]

    def test_exact_fill_has_trailing_empty_row(self) -> None:
        assert wrap_rows("abcd", 4) == ["abcd", ""]

    def test_style_is_carried_over_break(self) -> None:
        rows = wrap_rows("\x1b[31mabcdef\x1b[0m", 4)
        assert rows == ["\x1b[31mabcd\x1b[0m", "\x1b[31mef\x1b[0m"]

    def test_wide_char_moves_to_next_row(self) -> None:
        assert wrap_rows("ab日", 3) == ["ab", "日"]

    def test_empty(self) -> None:
        assert wrap_rows("", 80) == [""]


class TestMaskText:
    """Password masking keeps the layout."""

    def test_mask(self) -> None:
        assert mask_text("abc") == "***"
        assert mask_text("a\nb") == "*\n*"
        assert mask_text("日") == "**"

    def test_tab_masks_its_cells(self) -> None:
        assert mask_text("a\t", tab_stop=4) == "****"
