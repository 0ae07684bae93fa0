"""Highlighting hooks: prompt, line, char, candidate and hint styling.

Each slot is optional.  An empty slot, a disabled colour mode or a hook
that raises all give the text back unchanged.  Hooks receive plain
strings and their results are only ever drawn, never fed back into the
buffer, so styling must not change the visible width of the text.
"""

from __future__ import annotations

import enum
import logging
import os
from typing import Any, Callable

from lineedit.config import ColorMode, CompletionType
from lineedit.layout import mask_text

logger = logging.getLogger(__name__)

BOLD = "\x1b[1m"
RESET = "\x1b[0m"
GREY = "\x1b[90m"
GREEN = "\x1b[1;32m"
CYAN = "\x1b[36m"
BLUE = "\x1b[1;34m"

_OPEN_BRACKETS = {"(": ")", "[": "]", "{": "}"}
_CLOSE_BRACKETS = {v: k for k, v in _OPEN_BRACKETS.items()}


class CmdKind(enum.Enum):
    """What caused a redraw, passed to the char hook."""

    MOVE_CURSOR = "move_cursor"
    OTHER = "other"
    FORCED_REFRESH = "forced_refresh"


def color_enabled(mode: ColorMode, is_tty: bool, term: str | None = None) -> bool:
    """Whether styling should be emitted for *mode* on this output."""
    if mode is ColorMode.FORCED:
        return True
    if mode is ColorMode.DISABLED:
        return False
    if term is None:
        term = os.environ.get("TERM", "")
    return is_tty and term != "dumb"


# ---------------------------------------------------------------------------
# Highlighter base
# ---------------------------------------------------------------------------


class Highlighter:
    """Identity implementation of all five hooks; override what you need."""

    def highlight_prompt(self, prompt: str, is_default: bool) -> str:
        return prompt

    def highlight(self, line: str, pos: int) -> str:
        return line

    def highlight_char(self, line: str, pos: int, kind: CmdKind) -> bool:
        """Return True if the line must be re-highlighted for this change."""
        return kind is not CmdKind.MOVE_CURSOR

    def highlight_candidate(self, candidate: str, completion_type: CompletionType) -> str:
        return candidate

    def highlight_hint(self, hint: str) -> str:
        return hint


def find_matching_bracket(line: str, pos: int) -> tuple[int, int] | None:
    """Offsets of the bracket at (or just before) *pos* and its partner."""
    for at in (pos, pos - 1):
        if 0 <= at < len(line) and (line[at] in _OPEN_BRACKETS or line[at] in _CLOSE_BRACKETS):
            break
    else:
        return None

    ch = line[at]
    if ch in _OPEN_BRACKETS:
        target, step, indices = _OPEN_BRACKETS[ch], 1, range(at + 1, len(line))
    else:
        target, step, indices = _CLOSE_BRACKETS[ch], -1, range(at - 1, -1, -1)
    depth = 0
    for i in indices:
        if line[i] == ch:
            depth += 1
        elif line[i] == target:
            if depth == 0:
                return (at, i) if step > 0 else (i, at)
            depth -= 1
    return None


class SimpleHighlighter(Highlighter):
    """Grey hints, a green prompt, cyan candidates and bracket matching."""

    def __init__(self) -> None:
        self._had_match = False

    def highlight_prompt(self, prompt: str, is_default: bool) -> str:
        if not is_default:
            return prompt
        return f"{GREEN}{prompt}{RESET}"

    def highlight(self, line: str, pos: int) -> str:
        match = find_matching_bracket(line, pos)
        if match is None:
            return line
        a, b = match
        return (
            line[:a]
            + f"{BLUE}{line[a]}{RESET}"
            + line[a + 1 : b]
            + f"{BLUE}{line[b]}{RESET}"
            + line[b + 1 :]
        )

    def highlight_char(self, line: str, pos: int, kind: CmdKind) -> bool:
        has_match = find_matching_bracket(line, pos) is not None
        refresh = kind is not CmdKind.MOVE_CURSOR or has_match or self._had_match
        self._had_match = has_match
        return refresh

    def highlight_candidate(self, candidate: str, completion_type: CompletionType) -> str:
        if completion_type is CompletionType.LIST:
            return f"{CYAN}{candidate}{RESET}"
        return candidate

    def highlight_hint(self, hint: str) -> str:
        return f"{GREY}{hint}{RESET}"


class PasswordHighlighter(Highlighter):
    """Shows every character of the line as ``*``."""

    def __init__(self, mask: str = "*", tab_stop: int = 8) -> None:
        self.mask = mask
        self.tab_stop = tab_stop

    def highlight(self, line: str, pos: int) -> str:
        return mask_text(line, self.mask, self.tab_stop)

    def highlight_char(self, line: str, pos: int, kind: CmdKind) -> bool:
        return True

    def highlight_hint(self, hint: str) -> str:
        return ""


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

PromptHook = Callable[[str, bool], str]
LineHook = Callable[[str, int], str]
CharHook = Callable[[str, int, CmdKind], bool]
CandidateHook = Callable[[str, CompletionType], str]
HintHook = Callable[[str], str]


class HighlightPipeline:
    """The five hook slots plus colour gating and failure isolation."""

    def __init__(self) -> None:
        self.prompt: PromptHook | None = None
        self.line: LineHook | None = None
        self.char: CharHook | None = None
        self.candidate: CandidateHook | None = None
        self.hint: HintHook | None = None
        self.enabled = True
        self._reported: set[str] = set()

    def set_highlighter(self, highlighter: Highlighter | None) -> None:
        """Fill every slot from *highlighter*; ``None`` empties them all."""
        if highlighter is None:
            self.prompt = self.line = self.char = self.candidate = self.hint = None
            return
        self.prompt = highlighter.highlight_prompt
        self.line = highlighter.highlight
        self.char = highlighter.highlight_char
        self.candidate = highlighter.highlight_candidate
        self.hint = highlighter.highlight_hint

    def begin_read(self) -> None:
        """Start a new read: failures will be logged again."""
        self._reported.clear()

    # -- hook calls ---------------------------------------------------------

    def style_prompt(self, prompt: str, is_default: bool = True) -> str:
        return self._call("prompt", self.prompt, prompt, prompt, is_default)

    def style_line(self, line: str, pos: int) -> str:
        return self._call("line", self.line, line, line, pos)

    def style_candidate(self, candidate: str, completion_type: CompletionType) -> str:
        return self._call("candidate", self.candidate, candidate, candidate, completion_type)

    def style_hint(self, hint: str) -> str:
        return self._call("hint", self.hint, hint, hint)

    def needs_refresh(self, line: str, pos: int, kind: CmdKind) -> bool:
        """Ask the char hook whether a redraw must re-run the line hook."""
        if self.line is None or not self.enabled:
            return False
        if self.char is None:
            return True
        return bool(self._call("char", self.char, True, line, pos, kind))

    def _call(self, slot: str, hook: Callable[..., Any] | None, fallback: Any, *args: Any) -> Any:
        if hook is None or not self.enabled:
            return fallback
        try:
            result = hook(*args)
        except Exception:
            if slot not in self._reported:
                self._reported.add(slot)
                logger.exception("The %s highlighter failed", slot)
            return fallback
        if result is None:
            return fallback
        return result
