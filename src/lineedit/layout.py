"""Display-width math: grapheme widths, tab expansion and row wrapping.

The renderer never relies on the terminal's own auto-wrap.  Every logical
line is cut into screen rows here, and cursor positions are computed with
the same walk, so the two always agree:

* a grapheme that does not fit in the remaining columns starts a new row;
* a row that is filled exactly moves the position to column 0 of the next
  row;
* tabs advance to the next multiple of ``tab_stop`` (clipped at the row end);
* control characters are shown in caret notation (``^A``).
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

# CSI, OSC and APC sequences that occupy no columns
_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"
)

_SGR_RESET = "\x1b[0m"


@dataclass(frozen=True)
class Position:
    """Zero-based screen position relative to the first row of the prompt."""

    row: int
    col: int


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Emoji sequences (VS16, ZWJ, skin tones, flags) count as two columns;
    combining marks and format characters as zero; everything else is
    delegated to wcwidth.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000 or 0x2600 <= ord(first) <= 0x27BF:
        return 2
    if unicodedata.category(first) in ("Mn", "Me", "Mc", "Cf"):
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def _cell(g: str, col: int, tab_stop: int) -> tuple[str, int]:
    """How grapheme *g* is drawn when it starts at column *col*."""
    if g == "\t":
        width = tab_stop - (col % tab_stop)
        return " " * width, width
    if len(g) == 1 and (ord(g) < 0x20 or ord(g) == 0x7F):
        return "^" + chr(ord(g) ^ 0x40), 2
    return g, grapheme_width(g)


# ---------------------------------------------------------------------------
# ANSI helpers
# ---------------------------------------------------------------------------


def strip_ansi(text: str) -> str:
    return _STRIP_RE.sub("", text)


def _tokens(text: str) -> Iterator[tuple[bool, str]]:
    """Yield ``(is_escape, chunk)`` pairs, splitting out ANSI sequences."""
    pos = 0
    for match in _STRIP_RE.finditer(text):
        if match.start() > pos:
            yield False, text[pos : match.start()]
        yield True, match.group(0)
        pos = match.end()
    if pos < len(text):
        yield False, text[pos:]


class _SgrState:
    """Remembers the SGR codes in effect so they survive a row break."""

    def __init__(self) -> None:
        self._codes: list[str] = []

    def process(self, code: str) -> None:
        if not code.endswith("m") or not code.startswith("\x1b["):
            return
        params = code[2:-1]
        if params in ("", "0"):
            self._codes.clear()
        else:
            self._codes.append(code)

    @property
    def active(self) -> str:
        return "".join(self._codes)


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------


def visible_width(text: str, tab_stop: int = 8, start_col: int = 0) -> int:
    """Columns *text* occupies on one unwrapped row starting at *start_col*."""
    col = start_col
    for is_escape, chunk in _tokens(text):
        if is_escape:
            continue
        for g in grapheme.graphemes(chunk):
            col += _cell(g, col, tab_stop)[1]
    return col - start_col


def advance(text: str, start: Position, cols: int, tab_stop: int = 8) -> Position:
    """Position reached after drawing plain *text* from *start*.

    ``"\\n"`` moves to column 0 of the next row.
    """
    row, col = start.row, start.col
    cols = max(cols, 1)
    for g in grapheme.graphemes(text):
        if g == "\n" or g == "\r\n":
            row += 1
            col = 0
            continue
        _, width = _cell(g, col, tab_stop)
        if g == "\t":
            width = min(width, cols - col)
        elif col + width > cols:
            row += 1
            col = 0
        col += width
        if col >= cols:
            row += 1
            col = 0
    return Position(row, col)


def wrap_rows(text: str, cols: int, tab_stop: int = 8, start_col: int = 0) -> list[str]:
    """Cut one styled logical line into screen rows.

    Escape sequences pass through without width.  Styles still active at
    a row break are closed and reopened on the next row.  A line that ends
    exactly at the right margin gets an empty trailing row, matching
    :func:`advance`.
    """
    cols = max(cols, 1)
    rows: list[str] = []
    current: list[str] = []
    sgr = _SgrState()
    col = start_col

    def break_row() -> None:
        nonlocal current, col
        active = sgr.active
        if active:
            current.append(_SGR_RESET)
        rows.append("".join(current))
        current = [active] if active else []
        col = 0

    for is_escape, chunk in _tokens(text):
        if is_escape:
            sgr.process(chunk)
            current.append(chunk)
            continue
        for g in grapheme.graphemes(chunk):
            drawn, width = _cell(g, col, tab_stop)
            if g == "\t":
                width = min(width, cols - col)
                drawn = " " * width
            elif col + width > cols:
                break_row()
            current.append(drawn)
            col += width
            if col >= cols:
                break_row()

    rows.append("".join(current))
    return rows


def mask_text(text: str, mask: str = "*", tab_stop: int = 8) -> str:
    """Replace every visible cell of *text* with *mask*, keeping widths.

    Line breaks survive so multi-line input keeps its shape.
    """
    out: list[str] = []
    col = 0
    for g in grapheme.graphemes(text):
        if g == "\n":
            out.append(g)
            col = 0
            continue
        width = _cell(g, col, tab_stop)[1]
        out.append(mask * width)
        col += width
    return "".join(out)
