"""KeyDecoder turns raw terminal bytes into logical key events.

Input can arrive in arbitrary chunks: an arrow key's ``ESC [ A`` may be
split across two reads, and a lone ``ESC`` is only distinguishable from
the start of a sequence by waiting.  The decoder is an explicit state
machine (pending prefix + deadline); it never blocks.  The caller feeds
bytes as they arrive and asks :meth:`KeyDecoder.timeout_remaining` how long
it may wait before calling :meth:`KeyDecoder.expire`.
"""

from __future__ import annotations

import codecs
import logging
import time

from lineedit.config import DEFAULT_KEY_SEQ_TIMEOUT_MS
from lineedit.keys import (
    BRACKETED_PASTE_END,
    ESC,
    Key,
    KeyEvent,
    build_sequence_table,
    char_event,
    meta_key,
)

logger = logging.getLogger(__name__)

_PASTE_START_KEY = "paste-start"

# Longest run of CSI parameter bytes accepted before giving up on a sequence
_MAX_CSI_LENGTH = 32


# ---------------------------------------------------------------------------
# Sequence trie
# ---------------------------------------------------------------------------


class _TrieNode:
    __slots__ = ("key", "children")

    def __init__(self) -> None:
        self.key: str | None = None
        self.children: dict[str, _TrieNode] = {}


def build_trie(sequences: dict[str, str]) -> _TrieNode:
    """Build a character trie from ``{sequence: key_id}``.

    The ``ESC`` node itself resolves to ``"escape"`` so that a lone ESC is
    the shortest binding when a timeout cuts a sequence short.
    """
    root = _TrieNode()
    for seq, key in sequences.items():
        node = root
        for ch in seq:
            node = node.children.setdefault(ch, _TrieNode())
        node.key = key
    esc = root.children.setdefault(ESC, _TrieNode())
    if esc.key is None:
        esc.key = Key.escape
    return root


def _is_csi_param(ch: str) -> bool:
    return 0x20 <= ord(ch) <= 0x3F


def _is_csi_final(ch: str) -> bool:
    return 0x40 <= ord(ch) <= 0x7E


# ---------------------------------------------------------------------------
# KeyDecoder
# ---------------------------------------------------------------------------


class KeyDecoder:
    """Incremental byte-to-key decoder.

    Args:
        timeout_ms: How long an incomplete escape sequence may wait for its
            next byte.  ``0`` resolves pending prefixes at the end of every
            :meth:`feed`; ``-1`` waits forever.
        sequences: ``{escape sequence: key id}``; defaults to the xterm
            table from :mod:`lineedit.keys`.
    """

    def __init__(
        self,
        timeout_ms: int = DEFAULT_KEY_SEQ_TIMEOUT_MS,
        sequences: dict[str, str] | None = None,
    ) -> None:
        self._timeout_ms = timeout_ms
        self._root = build_trie(sequences if sequences is not None else build_sequence_table())
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        # Position in the trie, or None while consuming an unknown CSI sequence
        self._node: _TrieNode | None = None
        self._deadline: float | None = None
        self._paste: list[str] | None = None

    # -- properties ---------------------------------------------------------

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @timeout_ms.setter
    def timeout_ms(self, value: int) -> None:
        self._timeout_ms = value

    @property
    def pending(self) -> bool:
        """True while an escape sequence prefix awaits more bytes."""
        return bool(self._pending)

    @property
    def in_paste(self) -> bool:
        return self._paste is not None

    # -- input --------------------------------------------------------------

    def feed(self, data: bytes, now: float | None = None) -> list[KeyEvent]:
        """Consume *data* and return the key events it completes."""
        if now is None:
            now = time.monotonic()
        text = self._utf8.decode(data)
        if "\ufffd" in text:
            logger.debug("Replaced malformed UTF-8 in input %r", data)

        events: list[KeyEvent] = []
        for ch in text:
            self._consume(ch, events)
            if self._pending:
                self._arm(now)

        if self._pending and self._timeout_ms == 0:
            self._resolve_pending(events)
        return events

    def timeout_remaining(self, now: float | None = None) -> float | None:
        """Seconds until a pending prefix expires, ``None`` for no limit."""
        if not self._pending or self._deadline is None:
            return None
        if now is None:
            now = time.monotonic()
        return max(0.0, self._deadline - now)

    def expire(self, now: float | None = None) -> list[KeyEvent]:
        """Resolve the pending prefix if its deadline has passed."""
        if not self._pending or self._deadline is None:
            return []
        if now is None:
            now = time.monotonic()
        if now < self._deadline:
            return []
        return self.flush()

    def flush(self) -> list[KeyEvent]:
        """Resolve whatever is pending right now, regardless of the deadline."""
        events: list[KeyEvent] = []
        if self._pending:
            self._resolve_pending(events)
        return events

    def reset(self) -> None:
        """Drop all partial state (pending prefix, paste, partial UTF-8)."""
        self._utf8.reset()
        self._clear_pending()
        self._paste = None

    # -- state machine ------------------------------------------------------

    def _arm(self, now: float) -> None:
        if self._timeout_ms < 0:
            self._deadline = None
        else:
            self._deadline = now + self._timeout_ms / 1000.0

    def _clear_pending(self) -> None:
        self._pending = ""
        self._node = None
        self._deadline = None

    def _consume(self, ch: str, events: list[KeyEvent]) -> None:
        if self._paste is not None:
            self._consume_paste(ch, events)
            return

        if self._pending:
            self._advance(ch, events)
            return

        if ch == ESC:
            self._pending = ch
            self._node = self._root.children[ESC]
            return

        events.append(char_event(ch))

    def _advance(self, ch: str, events: list[KeyEvent]) -> None:
        candidate = self._pending + ch

        if self._node is not None:
            child = self._node.children.get(ch)
            if child is not None:
                self._pending = candidate
                self._node = child
                if not child.children:
                    self._clear_pending()
                    self._emit_sequence(child.key, candidate, events)
                return

            if self._pending == ESC:
                self._clear_pending()
                if ch == ESC:
                    # ESC ESC: the first is a plain escape, the second may start a sequence
                    events.append(KeyEvent(Key.escape))
                    self._pending = ch
                    self._node = self._root.children[ESC]
                else:
                    events.append(KeyEvent(meta_key(ch)))
                return

            if candidate.startswith("\x1b[") and (_is_csi_param(ch) or _is_csi_final(ch)):
                if _is_csi_final(ch):
                    self._clear_pending()
                    self._emit_unknown(candidate, events)
                else:
                    self._pending = candidate
                    self._node = None
                return
        else:
            if _is_csi_param(ch) and len(candidate) < _MAX_CSI_LENGTH:
                self._pending = candidate
                return
            if _is_csi_final(ch):
                self._clear_pending()
                self._emit_unknown(candidate, events)
                return

        # The prefix cannot become a known sequence
        prefix = self._pending
        self._clear_pending()
        self._replay(prefix, events)
        self._consume(ch, events)

    def _resolve_pending(self, events: list[KeyEvent]) -> None:
        prefix = self._pending
        node = self._node
        self._clear_pending()
        if node is not None and node.key is not None:
            logger.debug("Key sequence %r timed out, resolved as %s", prefix, node.key)
            self._emit_sequence(node.key, prefix, events)
            return
        logger.debug("Key sequence %r timed out, replaying as literal input", prefix)
        self._replay(prefix, events)

    def _replay(self, prefix: str, events: list[KeyEvent]) -> None:
        """Emit ``ESC`` as a literal escape and decode the rest on its own."""
        events.append(KeyEvent(Key.escape))
        for ch in prefix[1:]:
            self._consume(ch, events)

    def _emit_sequence(self, key: str | None, raw: str, events: list[KeyEvent]) -> None:
        if key == _PASTE_START_KEY:
            self._paste = []
            return
        if key is None:
            self._emit_unknown(raw, events)
            return
        events.append(KeyEvent(key))

    def _emit_unknown(self, raw: str, events: list[KeyEvent]) -> None:
        logger.debug("Unrecognized escape sequence %r", raw)
        events.append(KeyEvent(Key.unknown, raw))

    def _consume_paste(self, ch: str, events: list[KeyEvent]) -> None:
        assert self._paste is not None
        self._paste.append(ch)
        end_len = len(BRACKETED_PASTE_END)
        if ch != BRACKETED_PASTE_END[-1] or len(self._paste) < end_len:
            return
        if "".join(self._paste[-end_len:]) != BRACKETED_PASTE_END:
            return
        text = "".join(self._paste[:-end_len])
        self._paste = None
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        events.append(KeyEvent(Key.paste, text))
