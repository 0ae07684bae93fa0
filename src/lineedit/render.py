"""Differential renderer for the prompt, the edited text, hints and status.

A frame is the list of screen rows the prompt area occupies plus the
cursor position inside it.  Each render walks from the first row of the
previous frame, rewrites only the rows that changed, clears rows that are
no longer used and finally places the cursor.  A change of terminal width
forces a full redraw.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lineedit.config import BellStyle
from lineedit.layout import Position, advance, strip_ansi, wrap_rows
from lineedit.terminal import HIDE_CURSOR, SHOW_CURSOR, Terminal

logger = logging.getLogger(__name__)

SYNC_BEGIN = "\x1b[?2026h"
SYNC_END = "\x1b[?2026l"
CLEAR_SCREEN = "\x1b[H\x1b[2J"
CLEAR_TO_END = "\x1b[J"
CLEAR_LINE = "\x1b[K"
AUDIBLE_BELL = "\x07"
VISIBLE_BELL_ON = "\x1b[?5h"
VISIBLE_BELL_OFF = "\x1b[?5l"


@dataclass
class View:
    """Everything that is drawn for one state of the editor.

    ``styled_*`` fields are the highlighted forms of the plain fields and
    must have the same visible width; they default to the plain text.
    """

    prompt: str
    text: str
    cursor: int
    styled_prompt: str | None = None
    styled_text: str | None = None
    continuation: str | None = None
    styled_continuation: str | None = None
    hint: str = ""
    status: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Frame:
    rows: list[str]
    cursor: Position


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def layout_view(view: View, cols: int, tab_stop: int = 8) -> Frame:
    """Cut *view* into screen rows and locate the cursor among them."""
    styled_prompt = view.styled_prompt if view.styled_prompt is not None else view.prompt
    prompt_lines = view.prompt.split("\n")
    styled_prompt_lines = styled_prompt.split("\n")
    if len(styled_prompt_lines) != len(prompt_lines):
        styled_prompt_lines = prompt_lines

    rows: list[str] = []
    # Every prompt line but the last stands on its own rows
    for styled in styled_prompt_lines[:-1]:
        rows.extend(wrap_rows(styled, cols, tab_stop))
    prompt_raw = strip_ansi(prompt_lines[-1])
    prompt_styled = styled_prompt_lines[-1]

    cont_raw = strip_ansi(view.continuation or "")
    cont_styled = view.styled_continuation if view.styled_continuation is not None else (view.continuation or "")

    lines = view.text.split("\n")
    styled_text = view.styled_text if view.styled_text is not None else view.text
    styled_lines = styled_text.split("\n")
    if len(styled_lines) != len(lines):
        logger.debug("Highlighted text changed the line count, drawing it unstyled")
        styled_lines = lines

    cursor_line = view.text.count("\n", 0, view.cursor)
    line_start = view.text.rfind("\n", 0, view.cursor) + 1
    cursor: Position | None = None

    for i, (raw, styled) in enumerate(zip(lines, styled_lines)):
        prefix_raw, prefix_styled = (prompt_raw, prompt_styled) if i == 0 else (cont_raw, cont_styled)
        body = prefix_styled + styled
        if i == len(lines) - 1 and view.hint:
            body += view.hint
        if i == cursor_line:
            pos = advance(prefix_raw + view.text[line_start : view.cursor], Position(0, 0), cols, tab_stop)
            cursor = Position(len(rows) + pos.row, pos.col)
        line_rows = wrap_rows(body, cols, tab_stop)
        if i == cursor_line and cursor is not None:
            # A cursor right after an exactly full row sits on a row the hint may not create
            while len(rows) + len(line_rows) <= cursor.row:
                line_rows.append("")
        rows.extend(line_rows)

    for status in view.status:
        for line in status.split("\n"):
            rows.extend(wrap_rows(line, cols, tab_stop))

    return Frame(rows, cursor or Position(0, 0))


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class Renderer:
    """Draws frames on a :class:`~lineedit.terminal.Terminal` incrementally."""

    def __init__(
        self,
        terminal: Terminal,
        *,
        tab_stop: int = 8,
        synchronized_output: bool = True,
        bell_style: BellStyle = BellStyle.AUDIBLE,
    ) -> None:
        self.terminal = terminal
        self.tab_stop = tab_stop
        self.synchronized_output = synchronized_output
        self.bell_style = bell_style
        self._previous_rows: list[str] = []
        self._previous_width = 0
        self._cursor_row = 0
        self._force_full = False
        self.full_redraw_count = 0

    @property
    def cursor_row(self) -> int:
        return self._cursor_row

    @property
    def previous_rows(self) -> list[str]:
        return list(self._previous_rows)

    def invalidate(self) -> None:
        """Redraw everything on the next render (after a resize)."""
        self._force_full = True

    def forget(self) -> None:
        """Start the next frame at the cursor, leaving the old one on screen."""
        self._previous_rows = []
        self._cursor_row = 0
        self._force_full = False

    # -- frames -------------------------------------------------------------

    def render(self, view: View) -> Frame:
        cols = self.terminal.columns
        frame = layout_view(view, cols, self.tab_stop)
        self._draw(frame, cols)
        return frame

    def _draw(self, frame: Frame, cols: int) -> None:
        rows = frame.rows
        out: list[str] = []
        if self.synchronized_output:
            out.append(SYNC_BEGIN)

        # Navigate to row 0 of the previous frame
        if self._cursor_row > 0:
            out.append(f"\x1b[{self._cursor_row}A")
        out.append("\r")

        force_full = self._force_full or bool(self._previous_rows and cols != self._previous_width)
        num_new = len(rows)
        num_old = len(self._previous_rows)

        if force_full or not self._previous_rows:
            if force_full:
                self.full_redraw_count += 1
                logger.debug("Full redraw of %d rows at width %d", num_new, cols)
            out.append(CLEAR_TO_END)
            for i, row in enumerate(rows):
                if i > 0:
                    out.append("\r\n")
                out.append(row)
            last_written_row = num_new - 1
        else:
            total = max(num_new, num_old)
            for i in range(total):
                if i > 0:
                    out.append("\r\n")
                if i >= num_new:
                    out.append("\r" + CLEAR_LINE)
                elif i >= num_old or rows[i] != self._previous_rows[i]:
                    out.append("\r" + CLEAR_LINE + rows[i])
            last_written_row = total - 1

        # Move from the last written row to the cursor row
        delta = last_written_row - frame.cursor.row
        if delta > 0:
            out.append(f"\x1b[{delta}A")
        elif delta < 0:
            out.append(f"\x1b[{-delta}B")
        out.append("\r")
        if frame.cursor.col > 0:
            out.append(f"\x1b[{frame.cursor.col}C")

        if self.synchronized_output:
            out.append(SYNC_END)

        self._previous_rows = rows
        self._previous_width = cols
        self._cursor_row = frame.cursor.row
        self._force_full = False
        self.terminal.write("".join(out))
        self.terminal.flush()

    def finish(self, view: View) -> None:
        """Draw the final frame and leave the cursor on the line below it."""
        frame = self.render(view)
        below = len(frame.rows) - 1 - frame.cursor.row
        out = f"\x1b[{below}B" if below > 0 else ""
        self.terminal.write(out + "\r\n")
        self.terminal.flush()
        self.forget()

    # -- output below the frame ---------------------------------------------

    def write_below(self, lines: list[str]) -> None:
        """Print *lines* under the current frame; the next frame starts after them."""
        below = len(self._previous_rows) - 1 - self._cursor_row
        out: list[str] = []
        if below > 0:
            out.append(f"\x1b[{below}B")
        out.append("\r\n")
        out.extend(line + CLEAR_LINE + "\r\n" for line in lines)
        self.terminal.write("".join(out))
        self.terminal.flush()
        self.forget()

    def write_lines(self, lines: list[str]) -> None:
        """Print *lines* at the cursor (which must be at the start of a line)."""
        self.terminal.write("".join("\r" + line + CLEAR_LINE + "\r\n" for line in lines))
        self.terminal.flush()

    def show_message(self, text: str) -> None:
        """Draw *text* on the current line without a newline (``--More--``)."""
        self.terminal.write("\r" + CLEAR_LINE + text)
        self.terminal.flush()

    def clear_message(self) -> None:
        self.terminal.write("\r" + CLEAR_LINE)
        self.terminal.flush()

    # -- screen -------------------------------------------------------------

    def clear_screen(self) -> None:
        self.terminal.write(CLEAR_SCREEN)
        self.terminal.flush()
        self.forget()

    def beep(self) -> None:
        if self.bell_style is BellStyle.AUDIBLE:
            self.terminal.write(AUDIBLE_BELL)
        elif self.bell_style is BellStyle.VISIBLE:
            self.terminal.write(VISIBLE_BELL_ON + VISIBLE_BELL_OFF)
        else:
            return
        self.terminal.flush()

    def set_cursor_visibility(self, visible: bool) -> None:
        self.terminal.write(SHOW_CURSOR if visible else HIDE_CURSOR)
        self.terminal.flush()

    def start_on_fresh_line(self) -> None:
        """Move to a new line when the cursor is not at column 0."""
        column = self.terminal.cursor_column()
        if column:
            self.terminal.write("\r\n")
            self.terminal.flush()
