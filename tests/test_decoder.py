"""Tests for lineedit.decoder.KeyDecoder -- bytes to key events."""

from __future__ import annotations

import pytest

from lineedit.decoder import KeyDecoder
from lineedit.keys import Key, KeyEvent


def keys(events: list[KeyEvent]) -> list[str]:
    return [e.key for e in events]


# ---------------------------------------------------------------------------
# Plain input
# ---------------------------------------------------------------------------


class TestPlainInput:
    """Characters that need no lookahead."""

    def test_ascii(self) -> None:
        decoder = KeyDecoder()
        events = decoder.feed(b"ab", now=0.0)
        assert events == [KeyEvent("a", "a"), KeyEvent("b", "b")]
        assert not decoder.pending

    def test_control_keys(self) -> None:
        decoder = KeyDecoder()
        assert keys(decoder.feed(b"\x01\r\x7f", now=0.0)) == ["ctrl+a", "enter", "backspace"]

    def test_utf8_split_across_reads(self) -> None:
        decoder = KeyDecoder()
        data = "é".encode("utf-8")
        assert decoder.feed(data[:1], now=0.0) == []
        assert decoder.feed(data[1:], now=0.0) == [KeyEvent("é", "é")]

    def test_malformed_utf8_is_replaced(self) -> None:
        decoder = KeyDecoder()
        events = decoder.feed(b"\xff", now=0.0)
        assert events == [KeyEvent("\ufffd", "\ufffd")]


# ---------------------------------------------------------------------------
# Escape sequences
# ---------------------------------------------------------------------------


class TestEscapeSequences:
    """Known and unknown sequences, split or whole."""

    def test_whole_sequence(self) -> None:
        decoder = KeyDecoder()
        assert keys(decoder.feed(b"\x1b[A\x1b[1;5C", now=0.0)) == ["up", "ctrl+right"]

    def test_split_within_timeout_resolves_once(self) -> None:
        decoder = KeyDecoder(timeout_ms=100)
        assert decoder.feed(b"\x1b", now=0.0) == []
        assert decoder.pending
        assert decoder.timeout_remaining(now=0.05) == pytest.approx(0.05)
        assert decoder.expire(now=0.05) == []
        assert keys(decoder.feed(b"[A", now=0.06)) == ["up"]
        assert not decoder.pending

    def test_split_after_timeout_is_escape_then_literal(self) -> None:
        decoder = KeyDecoder(timeout_ms=100)
        decoder.feed(b"\x1b", now=0.0)
        assert keys(decoder.expire(now=0.2)) == ["escape"]
        assert decoder.feed(b"[A", now=0.3) == [KeyEvent("[", "["), KeyEvent("A", "A")]

    def test_each_byte_rearms_deadline(self) -> None:
        decoder = KeyDecoder(timeout_ms=100)
        decoder.feed(b"\x1b", now=0.0)
        decoder.feed(b"[", now=0.09)
        assert decoder.expire(now=0.15) == []
        assert decoder.timeout_remaining(now=0.15) is not None

    def test_alt_letter(self) -> None:
        decoder = KeyDecoder()
        assert keys(decoder.feed(b"\x1bb", now=0.0)) == ["alt+b"]

    def test_double_escape(self) -> None:
        decoder = KeyDecoder(timeout_ms=100)
        assert keys(decoder.feed(b"\x1b\x1b", now=0.0)) == ["escape"]
        assert decoder.pending
        assert keys(decoder.feed(b"[B", now=0.01)) == ["down"]

    def test_unknown_csi(self) -> None:
        decoder = KeyDecoder()
        events = decoder.feed(b"\x1b[99x", now=0.0)
        assert events == [KeyEvent(Key.unknown, "\x1b[99x")]

    def test_prefix_that_cannot_match_is_replayed(self) -> None:
        decoder = KeyDecoder()
        # ESC O is a prefix, ESC O z is nothing
        assert keys(decoder.feed(b"\x1bOz", now=0.0)) == ["escape", "O", "z"]

    def test_flush_resolves_pending_now(self) -> None:
        decoder = KeyDecoder(timeout_ms=-1)
        decoder.feed(b"\x1b", now=0.0)
        assert decoder.timeout_remaining(now=100.0) is None
        assert keys(decoder.flush()) == ["escape"]

    def test_zero_timeout_resolves_at_end_of_feed(self) -> None:
        decoder = KeyDecoder(timeout_ms=0)
        assert keys(decoder.feed(b"\x1b", now=0.0)) == ["escape"]
        assert not decoder.pending


# ---------------------------------------------------------------------------
# Bracketed paste
# ---------------------------------------------------------------------------


class TestBracketedPaste:
    """Paste payloads arrive as one event."""

    def test_paste_is_one_event(self) -> None:
        decoder = KeyDecoder()
        events = decoder.feed(b"\x1b[200~hello\x1b[Aworld\x1b[201~x", now=0.0)
        assert events == [KeyEvent(Key.paste, "hello\x1b[Aworld"), KeyEvent("x", "x")]

    def test_paste_split_across_reads(self) -> None:
        decoder = KeyDecoder()
        assert decoder.feed(b"\x1b[200~ab", now=0.0) == []
        assert decoder.in_paste
        assert decoder.feed(b"c\x1b[20", now=0.0) == []
        assert decoder.feed(b"1~", now=0.0) == [KeyEvent(Key.paste, "abc")]
        assert not decoder.in_paste

    def test_paste_line_endings_normalized(self) -> None:
        decoder = KeyDecoder()
        events = decoder.feed(b"\x1b[200~a\r\nb\rc\x1b[201~", now=0.0)
        assert events == [KeyEvent(Key.paste, "a\nb\nc")]

    def test_reset_drops_partial_paste(self) -> None:
        decoder = KeyDecoder()
        decoder.feed(b"\x1b[200~abc", now=0.0)
        decoder.reset()
        assert not decoder.in_paste
        assert decoder.feed(b"x", now=0.0) == [KeyEvent("x", "x")]
