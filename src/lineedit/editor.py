"""Editor: the ``read_line`` state machine.

One :meth:`Editor.read_line` call owns the terminal until it returns.  It
reads bytes, lets the :class:`~lineedit.decoder.KeyDecoder` turn them into
key events, dispatches each event through the key map to an action on the
:class:`~lineedit.buffer.EditBuffer`, and redraws the prompt area.  The
only blocking point is :meth:`Terminal.read`, bounded by the decoder's
escape-sequence deadline.

States::

    IDLE -> EDITING <-> COMPLETING -> TERMINATED
               \\-> AWAITING_KEY_SEQUENCE (while an escape prefix is pending)
"""

from __future__ import annotations

import enum
import errno
import logging
import termios
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from lineedit.buffer import Direction, EditBuffer, Unit
from lineedit.completion import (
    CompletionCandidate,
    CompletionEngine,
    CompletionSession,
    common_prefix_candidate,
    format_grid,
)
from lineedit.config import BellStyle, ColorMode, CompletionType, EditMode, EditorConfig, HistoryDuplicates
from lineedit.decoder import KeyDecoder
from lineedit.errors import (
    ConfigError,
    EditorDisposedError,
    Err,
    ErrorKind,
    HistoryIoError,
    Ok,
    ReadLineResult,
    ReentrantCallError,
    default_message,
)
from lineedit.highlight import CmdKind, HighlightPipeline, Highlighter, color_enabled
from lineedit.history import History, HistoryNavigator
from lineedit.hooks import resolve_hook
from lineedit.keymap import EditorAction, KeybindingsConfig, KeybindingsManager
from lineedit.keys import Key, KeyEvent
from lineedit.kill_ring import KillRing
from lineedit.render import Renderer, View
from lineedit.terminal import HIDE_CURSOR, SHOW_CURSOR, Terminal, open_terminal
from lineedit.validate import Validation, ValidationResult
from lineedit.vi import LINE, ViCommand, ViCommandParser, ViParseError

logger = logging.getLogger(__name__)

# Errors after which the terminal is unusable for good
_BROKEN_ERRNOS = frozenset({errno.EBADF, errno.EIO})

MORE_PROMPT = "--More-- (show {} more? y/n)"

_LITERAL_KEYS = {
    "tab": "\t",
    "enter": "\r",
    "escape": "\x1b",
    "backspace": "\x7f",
    "space": " ",
    "ctrl+space": "\x00",
}


class EditorState(enum.Enum):
    IDLE = "idle"
    EDITING = "editing"
    COMPLETING = "completing"
    AWAITING_KEY_SEQUENCE = "awaiting_key_sequence"
    TERMINATED = "terminated"


class ViMode(enum.Enum):
    INSERT = "insert"
    COMMAND = "command"


@dataclass
class _Search:
    """Reverse incremental history search in progress."""

    term: str
    index: int | None
    original_text: str
    original_cursor: int
    failed: bool = False

    @property
    def status(self) -> str:
        label = "failed reverse-i-search" if self.failed else "reverse-i-search"
        return f"({label})`{self.term}'"


def _literal_text(event: KeyEvent) -> str:
    """The characters a key stands for, for quoted insert."""
    if event.text:
        return event.text
    key = event.key
    if key.startswith("ctrl+") and len(key) == 6 and "a" <= key[5] <= "z":
        return chr(ord(key[5]) - ord("a") + 1)
    return _LITERAL_KEYS.get(key, "")


def _whitespace_word_start(text: str, pos: int) -> int:
    """Start of the whitespace-delimited word before *pos* (``C-w``)."""
    i = pos
    while i > 0 and text[i - 1].isspace():
        i -= 1
    while i > 0 and not text[i - 1].isspace():
        i -= 1
    return i


def _capitalize(text: str) -> str:
    for i, ch in enumerate(text):
        if ch.isalnum():
            return text[:i] + ch.upper() + text[i + 1 :].lower()
    return text


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


class Editor:
    """Interactive line editor with history, completion, hints and highlighting.

    Example::

        with Editor() as editor:
            result = editor.read_line(">> ")
            if result.ok:
                print(result.text)

    Args:
        config: Settings snapshot; defaults to :class:`EditorConfig`.
        terminal: Terminal to draw on.  By default one is opened on the
            first read (see :func:`~lineedit.terminal.open_terminal`) and
            closed by :meth:`dispose`.
        keybindings: Overrides for the Emacs / Vi insert key maps.
    """

    def __init__(
        self,
        config: EditorConfig | None = None,
        *,
        terminal: Terminal | None = None,
        keybindings: KeybindingsConfig | None = None,
    ) -> None:
        if config is None:
            config = EditorConfig()
        elif not isinstance(config, EditorConfig):
            raise ConfigError(f"config must be an EditorConfig, got {config!r}")
        self._config = config
        self._terminal = terminal
        self._owns_terminal = False

        self._history = History.from_config(config)
        self._kill_ring = KillRing()
        self._completion = CompletionEngine()
        self._highlight = HighlightPipeline()
        self._hinter: Callable[..., Any] | None = None
        self._validator: Callable[..., Any] | None = None
        self._validate_while_typing = False
        self._keybindings = KeybindingsManager(config.edit_mode, keybindings)

        self._state = EditorState.IDLE
        self._reading = False
        self._disposed = False
        self._broken: str | None = None
        self._plain_input = b""

        # State of the current read
        self._buffer = EditBuffer(edit_mode=config.edit_mode)
        self._navigator = HistoryNavigator(self._history)
        self._decoder = KeyDecoder(config.effective_key_seq_timeout)
        self._renderer: Renderer | None = None
        self._pending_keys: deque[KeyEvent] = deque()
        self._prompt = ""
        self._continuation: str | None = None
        self._hint = ""
        self._history_view: tuple[str, ...] = ()
        self._status: str | None = None
        self._styled_cache: tuple[str, str] | None = None
        self._last_action: str | None = None
        self._this_action: str | None = None
        self._history_moved = False
        self._yank_span: tuple[int, int] | None = None
        self._session: CompletionSession | None = None
        self._listing: list[CompletionCandidate] | None = None
        self._search: _Search | None = None
        self._quoted_insert = False
        self._chord_prefix: str | None = None
        self._vi_mode = ViMode.INSERT
        self._vi_parser = ViCommandParser()

        self._actions: dict[EditorAction, Callable[[KeyEvent], Optional[ReadLineResult]]] = {
            "cursorLeft": self._cursor_left,
            "cursorRight": self._cursor_right,
            "cursorWordLeft": self._cursor_word_left,
            "cursorWordRight": self._cursor_word_right,
            "cursorLineStart": self._cursor_line_start,
            "cursorLineEnd": self._cursor_line_end,
            "cursorUp": self._cursor_up,
            "cursorDown": self._cursor_down,
            "historyPrevious": self._history_previous,
            "historyNext": self._history_next,
            "historyFirst": self._history_first,
            "historyLast": self._history_last,
            "reverseSearch": self._reverse_search,
            "deleteCharBackward": self._delete_char_backward,
            "deleteCharForward": self._delete_char_forward,
            "deleteCharOrEof": self._delete_char_or_eof,
            "killToLineEnd": self._kill_to_line_end,
            "killToLineStart": self._kill_to_line_start,
            "killWordBackward": self._kill_word_backward,
            "killWordForward": self._kill_word_forward,
            "yank": self._yank,
            "yankPop": self._yank_pop,
            "transposeChars": self._transpose_chars,
            "upcaseWord": self._upcase_word,
            "downcaseWord": self._downcase_word,
            "capitalizeWord": self._capitalize_word,
            "indent": self._indent,
            "dedent": self._dedent,
            "quotedInsert": self._start_quoted_insert,
            "newLine": self._new_line,
            "setMark": self._set_mark,
            "undo": self._undo,
            "redo": self._redo,
            "complete": self._complete_forward,
            "completeBackward": self._complete_backward,
            "submit": self._submit,
            "abort": self._abort,
            "interrupt": self._interrupt,
            "clearScreen": self._clear_screen_action,
            "viCommandMode": self._enter_vi_command_mode,
        }

    # -- properties ---------------------------------------------------------

    @property
    def config(self) -> EditorConfig:
        return self._config

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def history(self) -> History:
        return self._history

    @property
    def kill_ring(self) -> KillRing:
        return self._kill_ring

    @property
    def vi_mode(self) -> ViMode:
        return self._vi_mode

    # -- lifecycle ----------------------------------------------------------

    def dispose(self) -> None:
        """Release the terminal (if the editor opened it), history and kill ring."""
        if self._reading:
            raise ReentrantCallError("Cannot dispose the editor during an active read")
        if self._disposed:
            return
        self._disposed = True
        self._history.clear()
        self._kill_ring.clear()
        self._buffer = EditBuffer()
        if self._owns_terminal and self._terminal is not None:
            close = getattr(self._terminal, "close", None)
            if close is not None:
                close()
        self._terminal = None

    close = dispose

    def __enter__(self) -> Editor:
        self._check_usable()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def _check_usable(self) -> None:
        if self._disposed:
            raise EditorDisposedError("The editor has been disposed")

    def _check_not_reading(self, what: str) -> None:
        self._check_usable()
        if self._reading:
            raise ReentrantCallError(f"Cannot {what} during an active read")

    # -- hooks --------------------------------------------------------------

    def set_completer(self, completer: Any) -> None:
        """Register a completer (``complete(line, pos)`` or a callable)."""
        self._check_usable()
        self._completion.set_completer(completer)

    def set_highlighter(self, highlighter: Highlighter | None) -> None:
        """Fill all five highlight slots from *highlighter*."""
        self._check_usable()
        self._highlight.set_highlighter(highlighter)
        self._styled_cache = None

    def set_prompt_highlighter(self, hook: Callable[[str, bool], str] | None) -> None:
        self._check_usable()
        self._highlight.prompt = hook

    def set_line_highlighter(self, hook: Callable[[str, int], str] | None) -> None:
        self._check_usable()
        self._highlight.line = hook
        self._styled_cache = None

    def set_char_highlighter(self, hook: Callable[[str, int, CmdKind], bool] | None) -> None:
        self._check_usable()
        self._highlight.char = hook

    def set_candidate_highlighter(self, hook: Callable[[str, CompletionType], str] | None) -> None:
        self._check_usable()
        self._highlight.candidate = hook

    def set_hint_highlighter(self, hook: Callable[[str], str] | None) -> None:
        self._check_usable()
        self._highlight.hint = hook

    def set_hinter(self, hinter: Any) -> None:
        """Register a hinter (``hint(line, pos, history)`` or a callable)."""
        self._check_usable()
        self._hinter = resolve_hook(hinter, "hint")

    def set_validator(self, validator: Any, *, while_typing: bool = False) -> None:
        """Register a validator (``validate(line, pos)`` or a callable).

        With *while_typing*, an invalid result is shown below the line after
        every edit, not only when Enter is pressed.
        """
        self._check_usable()
        self._validator = resolve_hook(validator, "validate")
        self._validate_while_typing = while_typing

    def set_keybindings(self, keybindings: KeybindingsConfig) -> None:
        self._check_usable()
        self._keybindings.set_config(keybindings)

    # -- config fields ------------------------------------------------------

    def _update_config(self, **changes: Any) -> None:
        self._check_usable()
        self._config = self._config.replace(**changes)

    def set_auto_add_history(self, enabled: bool) -> None:
        self._update_config(auto_add_history=enabled)

    def set_color_mode(self, mode: ColorMode) -> None:
        self._update_config(color_mode=mode)

    def set_bell_style(self, style: BellStyle) -> None:
        self._update_config(bell_style=style)

    def set_edit_mode(self, mode: EditMode) -> None:
        self._update_config(edit_mode=mode)
        self._keybindings.set_edit_mode(mode)
        self._buffer.edit_mode = mode

    def set_completion_type(self, completion_type: CompletionType) -> None:
        self._update_config(completion_type=completion_type)

    def set_max_history_size(self, size: int) -> None:
        self._check_not_reading("resize the history")
        self._update_config(max_history_size=size)
        self._history.set_max_size(size)

    def set_history_ignore_space(self, ignore: bool) -> None:
        self._update_config(history_ignore_space=ignore)
        self._history.ignore_space = ignore

    def set_history_duplicates(self, policy: HistoryDuplicates) -> None:
        self._update_config(history_duplicates=policy)
        self._history.duplicates = policy

    # -- history ------------------------------------------------------------

    def load_history(self, path: str | Path, *, missing_ok: bool = False) -> None:
        """Replace the history with the contents of *path*.

        Raises:
            HistoryIoError: The file cannot be read (unless it does not
                exist and *missing_ok* is set).
            HistoryParseError: The file is corrupt; the history is unchanged.
        """
        self._check_not_reading("load history")
        try:
            self._history.load(path)
        except HistoryIoError:
            if missing_ok and not Path(path).exists():
                logger.debug("No history file at %s", path)
                return
            raise

    def save_history(self, path: str | Path) -> None:
        self._check_not_reading("save history")
        self._history.save(path)

    def add_history_entry(self, text: str) -> bool:
        self._check_not_reading("add a history entry")
        return self._history.add(text)

    def clear_history(self) -> None:
        self._check_not_reading("clear the history")
        self._history.clear()

    # -- screen -------------------------------------------------------------

    def clear_screen(self) -> None:
        self._check_not_reading("clear the screen")
        terminal = self._ensure_terminal()
        terminal.write("\x1b[H\x1b[2J")
        terminal.flush()

    def set_cursor_visibility(self, visible: bool) -> None:
        self._check_usable()
        terminal = self._ensure_terminal()
        terminal.write(SHOW_CURSOR if visible else HIDE_CURSOR)
        terminal.flush()

    def _ensure_terminal(self) -> Terminal:
        if self._terminal is None:
            self._terminal = open_terminal(self._config)
            self._owns_terminal = True
        return self._terminal

    # -----------------------------------------------------------------------
    # read_line
    # -----------------------------------------------------------------------

    def read_line(
        self,
        prompt: str = "",
        initial: tuple[str, str] = ("", ""),
        continuation_prompt: str | None = None,
    ) -> ReadLineResult:
        """Read one line of input.

        Args:
            prompt: Drawn before the first line.
            initial: Text placed before and after the cursor to start with.
            continuation_prompt: Drawn before every following line of a
                multi-line buffer.

        Returns:
            ``Ok(text)`` when a line was accepted, otherwise ``Err`` with
            kind EOF, INTERRUPTED or UNKNOWN.
        """
        self._check_usable()
        if self._reading:
            raise ReentrantCallError("read_line called during an active read")
        if self._broken is not None:
            return Err(ErrorKind.UNKNOWN, self._broken)

        self._reading = True
        try:
            try:
                terminal = self._ensure_terminal()
            except OSError as e:
                return self._io_error(e)
            if not terminal.is_tty:
                return self._read_plain(terminal, prompt)
            return self._read_interactive(terminal, prompt, initial, continuation_prompt)
        finally:
            self._reading = False

    def _read_plain(self, terminal: Terminal, prompt: str) -> ReadLineResult:
        """Read a line without editing (input is not an interactive terminal)."""
        try:
            if prompt and terminal.is_output_tty:
                terminal.write(prompt)
                terminal.flush()
            terminal.observe_signals()
            try:
                while b"\n" not in self._plain_input:
                    data = terminal.read(None)
                    if data is None:
                        if terminal.take_interrupt():
                            self._state = EditorState.TERMINATED
                            return Err(ErrorKind.INTERRUPTED)
                        continue
                    if not data:
                        break
                    self._plain_input += data
            finally:
                terminal.restore_signals()
        except KeyboardInterrupt:
            # Off the main thread no handler is installed
            self._state = EditorState.TERMINATED
            return Err(ErrorKind.INTERRUPTED)
        except OSError as e:
            return self._io_error(e)

        self._state = EditorState.TERMINATED
        if not self._plain_input:
            return Err(ErrorKind.EOF)
        line, _, self._plain_input = self._plain_input.partition(b"\n")
        text = line.decode("utf-8", errors="replace").removesuffix("\r")
        if self._config.auto_add_history:
            self._history.add(text)
        return Ok(text)

    def _read_interactive(
        self,
        terminal: Terminal,
        prompt: str,
        initial: tuple[str, str],
        continuation_prompt: str | None,
    ) -> ReadLineResult:
        self._begin_read(terminal, prompt, initial, continuation_prompt)
        try:
            terminal.enable_raw_mode()
        except (OSError, termios.error) as e:
            return self._io_error(e)
        try:
            if self._config.check_cursor_position and self._renderer is not None:
                self._renderer.start_on_fresh_line()
            self._refresh(CmdKind.FORCED_REFRESH)
            return self._loop(terminal)
        except OSError as e:
            return self._io_error(e)
        finally:
            try:
                terminal.disable_raw_mode()
            except (OSError, termios.error):
                logger.warning("Could not restore the terminal mode", exc_info=True)
            self._renderer = None
            self._pending_keys.clear()

    def _begin_read(
        self,
        terminal: Terminal,
        prompt: str,
        initial: tuple[str, str],
        continuation_prompt: str | None,
    ) -> None:
        config = self._config
        before, after = initial
        self._state = EditorState.EDITING
        self._prompt = prompt
        self._continuation = continuation_prompt
        self._buffer = EditBuffer(before + after, edit_mode=config.edit_mode)
        self._buffer.set_cursor(len(before))
        self._navigator = HistoryNavigator(self._history)
        # History only changes between reads, and hooks must not change it
        self._history_view = tuple(self._history)
        self._decoder = KeyDecoder(config.effective_key_seq_timeout)
        self._renderer = Renderer(
            terminal,
            tab_stop=config.tab_stop,
            synchronized_output=config.enable_synchronized_output,
            bell_style=config.bell_style,
        )
        self._pending_keys.clear()
        self._hint = ""
        self._status = None
        self._styled_cache = None
        self._last_action = None
        self._yank_span = None
        self._session = None
        self._listing = None
        self._search = None
        self._quoted_insert = False
        self._chord_prefix = None
        self._vi_mode = ViMode.INSERT
        self._vi_parser.reset()
        self._highlight.enabled = color_enabled(config.color_mode, terminal.is_output_tty)
        self._highlight.begin_read()
        self._update_hint()

    def _loop(self, terminal: Terminal) -> ReadLineResult:
        while True:
            # A resize is handled before anything else, including pending keys
            if terminal.take_resize():
                logger.debug("Terminal resized to %d columns", terminal.columns)
                if self._renderer is not None:
                    self._renderer.invalidate()
                self._refresh(CmdKind.FORCED_REFRESH)
            if terminal.take_interrupt():
                return self._finish(Err(ErrorKind.INTERRUPTED))

            if self._pending_keys:
                result = self._handle_key(self._pending_keys.popleft())
                if result is not None:
                    return result
                continue

            if self._decoder.pending:
                self._state = EditorState.AWAITING_KEY_SEQUENCE
            else:
                self._state = EditorState.COMPLETING if self._session is not None else EditorState.EDITING

            data = terminal.read(self._decoder.timeout_remaining())
            if data is None:
                self._pending_keys.extend(self._decoder.expire())
                continue
            if not data:
                self._pending_keys.extend(self._decoder.flush())
                while self._pending_keys:
                    result = self._handle_key(self._pending_keys.popleft())
                    if result is not None:
                        return result
                return self._finish(Err(ErrorKind.EOF))
            self._pending_keys.extend(self._decoder.feed(data))

    def _finish(self, result: ReadLineResult) -> ReadLineResult:
        """Draw the final line and end the read with *result*."""
        self._session = None
        self._search = None
        self._listing = None
        self._hint = ""
        self._status = None
        if self._renderer is not None:
            self._renderer.finish(self._view(CmdKind.FORCED_REFRESH, final=True))
        self._state = EditorState.TERMINATED
        if isinstance(result, Ok) and self._config.auto_add_history:
            self._history.add(result.text)
        return result

    def _io_error(self, error: Exception) -> ReadLineResult:
        message = default_message(ErrorKind.UNKNOWN, str(error))
        if isinstance(error, OSError) and error.errno in _BROKEN_ERRNOS:
            logger.warning("Terminal is no longer usable: %s", error)
            self._broken = message
        else:
            logger.debug("Terminal error", exc_info=True)
        self._state = EditorState.TERMINATED
        return Err(ErrorKind.UNKNOWN, message)

    # -----------------------------------------------------------------------
    # Key dispatch
    # -----------------------------------------------------------------------

    def _handle_key(self, event: KeyEvent) -> ReadLineResult | None:
        if self._listing is not None:
            self._handle_more_key(event)
            return None

        buffer = self._buffer
        text_before, cursor_before = buffer.text, buffer.cursor
        self._status = None
        self._this_action = None
        self._history_moved = False

        result = self._dispatch(event)
        if result is not None:
            return result

        self._last_action = self._this_action
        changed = self._buffer.text != text_before
        if changed and not self._history_moved and self._session is None and self._search is None:
            self._navigator.reset()
            if self._validate_while_typing:
                validation = self._validate()
                if validation.result is ValidationResult.INVALID:
                    self._status = validation.message
        self._update_hint()
        if changed or self._buffer.cursor != cursor_before:
            self._refresh(CmdKind.OTHER if changed else CmdKind.MOVE_CURSOR)
        else:
            self._refresh(CmdKind.MOVE_CURSOR)
        return None

    def _dispatch(self, event: KeyEvent) -> ReadLineResult | None:
        if self._quoted_insert:
            self._quoted_insert = False
            self._buffer.insert(_literal_text(event))
            return None
        if self._search is not None and self._handle_search_key(event):
            return None
        if self._session is not None and self._handle_completing_key(event):
            return None
        if self._config.edit_mode is EditMode.VI and self._vi_mode is ViMode.COMMAND:
            return self._handle_vi_key(event)
        return self._handle_editing_key(event)

    def _handle_editing_key(self, event: KeyEvent) -> ReadLineResult | None:
        key = event.key
        if self._chord_prefix is not None:
            prefix, self._chord_prefix = self._chord_prefix, None
            action = self._keybindings.resolve(key, prefix)
            if action is None:
                self._beep()
                return None
            return self._actions[action](event)
        if self._keybindings.is_prefix(key):
            self._chord_prefix = key
            return None

        action = self._keybindings.resolve(key)
        if action is not None:
            return self._actions[action](event)
        if key == Key.paste:
            self._insert_paste(event.text)
        elif event.is_printable:
            self._buffer.insert(event.text, typing=True)
        else:
            logger.debug("Unbound key %s", key)
        return None

    def _insert_paste(self, text: str) -> None:
        buffer = self._buffer
        buffer.break_coalescing()
        with buffer.group():
            buffer.insert(text)

    def _beep(self) -> None:
        if self._renderer is not None:
            self._renderer.beep()

    # -- rendering ----------------------------------------------------------

    def _refresh(self, kind: CmdKind = CmdKind.OTHER) -> None:
        if self._renderer is None or self._listing is not None:
            return
        self._renderer.render(self._view(kind))

    def _view(self, kind: CmdKind, *, final: bool = False) -> View:
        buffer = self._buffer
        text, pos = buffer.text, buffer.cursor
        cached = self._styled_cache
        if (
            cached is None
            or cached[0] != text
            or kind is CmdKind.FORCED_REFRESH
            or self._highlight.needs_refresh(text, pos, kind)
        ):
            styled = self._highlight.style_line(text, pos)
            self._styled_cache = (text, styled)
        else:
            styled = cached[1]

        status: list[str] = []
        if not final:
            if self._search is not None:
                status.append(self._search.status)
            if self._status:
                status.append(self._status)
        hint = "" if final or not self._hint else self._highlight.style_hint(self._hint)
        continuation = self._continuation
        return View(
            prompt=self._prompt,
            text=text,
            cursor=pos,
            styled_prompt=self._highlight.style_prompt(self._prompt, True),
            styled_text=styled,
            continuation=continuation,
            styled_continuation=self._highlight.style_prompt(continuation, False) if continuation else None,
            hint=hint,
            status=status,
        )

    def _update_hint(self) -> None:
        self._hint = ""
        if self._hinter is None or self._session is not None or self._search is not None:
            return
        buffer = self._buffer
        try:
            hint = self._hinter(buffer.text, buffer.cursor, self._history_view)
        except Exception:
            logger.exception("Hinter failed")
            return
        self._hint = hint or ""

    def _accept_hint(self) -> bool:
        buffer = self._buffer
        if not self._hint or buffer.cursor != len(buffer):
            return False
        buffer.insert(self._hint)
        self._hint = ""
        return True

    # -----------------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------------

    # -- movement -----------------------------------------------------------

    def _cursor_left(self, event: KeyEvent) -> None:
        self._buffer.move_cursor(Unit.CHAR, Direction.BACKWARD)

    def _cursor_right(self, event: KeyEvent) -> None:
        if not self._accept_hint():
            self._buffer.move_cursor(Unit.CHAR, Direction.FORWARD)

    def _cursor_word_left(self, event: KeyEvent) -> None:
        self._buffer.move_cursor(Unit.WORD, Direction.BACKWARD)

    def _cursor_word_right(self, event: KeyEvent) -> None:
        self._buffer.move_cursor(Unit.WORD, Direction.FORWARD)

    def _cursor_line_start(self, event: KeyEvent) -> None:
        self._buffer.move_cursor(Unit.LINE, Direction.BACKWARD)

    def _cursor_line_end(self, event: KeyEvent) -> None:
        if not self._accept_hint():
            self._buffer.move_cursor(Unit.LINE, Direction.FORWARD)

    def _cursor_up(self, event: KeyEvent) -> None:
        buffer = self._buffer
        if buffer.line_count > 1 and buffer.move_vertical(-1, self._config.tab_stop):
            return
        self._history_previous(event)

    def _cursor_down(self, event: KeyEvent) -> None:
        buffer = self._buffer
        if buffer.line_count > 1 and buffer.move_vertical(1, self._config.tab_stop):
            return
        self._history_next(event)

    # -- history ------------------------------------------------------------

    def _recall(self, text: str | None) -> None:
        self._history_moved = True
        if text is None:
            self._beep()
            return
        self._buffer.reset(text)

    def _history_previous(self, event: KeyEvent) -> None:
        self._recall(self._navigator.previous(self._buffer.text))

    def _history_next(self, event: KeyEvent) -> None:
        self._recall(self._navigator.next())

    def _history_first(self, event: KeyEvent) -> None:
        self._recall(self._navigator.first(self._buffer.text))

    def _history_last(self, event: KeyEvent) -> None:
        self._recall(self._navigator.last())

    def _reverse_search(self, event: KeyEvent) -> None:
        buffer = self._buffer
        self._search = _Search("", None, buffer.text, buffer.cursor)
        self._hint = ""

    def _handle_search_key(self, event: KeyEvent) -> bool:
        """Handle a key during reverse search; False ends the search and lets it run."""
        search = self._search
        assert search is not None
        key = event.key
        if key == "ctrl+r":
            self._search_step(older=True)
        elif key == "backspace":
            search.term = search.term[:-1]
            search.index = None
            self._search_step()
        elif key in ("ctrl+g", "escape"):
            self._buffer.swap_text(search.original_text, search.original_cursor)
            self._search = None
        elif event.is_printable:
            search.term += event.text
            self._search_step()
        else:
            self._end_search()
            return False
        return True

    def _search_step(self, *, older: bool = False) -> None:
        search = self._search
        assert search is not None
        if not search.term:
            search.index = None
            search.failed = False
            self._buffer.swap_text(search.original_text, search.original_cursor)
            return
        if search.index is None:
            start = len(self._history) - 1
        else:
            start = search.index - 1 if older else search.index
        found = self._history.search(search.term, start) if start >= 0 else None
        if found is None:
            search.failed = True
            self._beep()
            return
        search.failed = False
        search.index = found
        text = self._history[found]
        self._buffer.swap_text(text, text.find(search.term))

    def _end_search(self) -> None:
        search = self._search
        assert search is not None
        self._search = None
        buffer = self._buffer
        shown, cursor = buffer.text, buffer.cursor
        buffer.swap_text(search.original_text, search.original_cursor)
        buffer.set_text(shown, cursor)
        self._history_moved = True

    # -- deletion and kills -------------------------------------------------

    def _delete_char_backward(self, event: KeyEvent) -> None:
        buffer = self._buffer
        buffer.delete(buffer.prev_boundary(buffer.cursor), buffer.cursor)

    def _delete_char_forward(self, event: KeyEvent) -> None:
        buffer = self._buffer
        buffer.delete(buffer.cursor, buffer.next_boundary(buffer.cursor))

    def _delete_char_or_eof(self, event: KeyEvent) -> ReadLineResult | None:
        if self._buffer.is_empty:
            return self._finish(Err(ErrorKind.EOF))
        self._delete_char_forward(event)
        return None

    def _kill(self, start: int, end: int, *, backward: bool = False) -> None:
        text = self._buffer.delete(start, end)
        self._kill_ring.kill(text, backward=backward, accumulate=self._last_action == "kill")
        self._this_action = "kill"

    def _kill_to_line_end(self, event: KeyEvent) -> None:
        buffer = self._buffer
        end = buffer.line_end()
        if end == buffer.cursor and end < len(buffer):
            end += 1
        self._kill(buffer.cursor, end)

    def _kill_to_line_start(self, event: KeyEvent) -> None:
        buffer = self._buffer
        self._kill(buffer.line_start(), buffer.cursor, backward=True)

    def _kill_word_backward(self, event: KeyEvent) -> None:
        buffer = self._buffer
        span = buffer.selection_range()
        if span is not None:
            buffer.clear_selection()
            self._kill(*span)
            return
        if event.key == "ctrl+w":
            start = _whitespace_word_start(buffer.text, buffer.cursor)
        else:
            start = buffer.prev_word_start()
        self._kill(start, buffer.cursor, backward=True)

    def _kill_word_forward(self, event: KeyEvent) -> None:
        buffer = self._buffer
        self._kill(buffer.cursor, buffer.next_word_start())

    def _yank(self, event: KeyEvent) -> None:
        text = self._kill_ring.yank()
        if text is None:
            self._beep()
            return
        start = self._buffer.cursor
        self._buffer.insert(text)
        self._yank_span = (start, start + len(text))
        self._this_action = "yank"

    def _yank_pop(self, event: KeyEvent) -> None:
        if self._last_action != "yank" or self._yank_span is None:
            self._beep()
            return
        text = self._kill_ring.yank_pop() or ""
        start, end = self._yank_span
        self._buffer.replace(start, end, text)
        self._yank_span = (start, start + len(text))
        self._this_action = "yank"

    # -- editing ------------------------------------------------------------

    def _transpose_chars(self, event: KeyEvent) -> None:
        buffer = self._buffer
        pos = buffer.cursor
        if pos == buffer.line_end():
            pos = buffer.prev_boundary(pos)
        left_start = buffer.prev_boundary(pos)
        text = buffer.text
        if left_start == pos or pos >= len(text) or "\n" in (text[pos], text[left_start]):
            self._beep()
            return
        right_end = buffer.next_boundary(pos)
        buffer.replace(left_start, right_end, text[pos:right_end] + text[left_start:pos])

    def _change_word_case(self, transform: Callable[[str], str]) -> None:
        buffer = self._buffer
        start, end = buffer.cursor, buffer.next_word_start()
        if start == end:
            return
        buffer.replace(start, end, transform(buffer.text[start:end]))

    def _upcase_word(self, event: KeyEvent) -> None:
        self._change_word_case(str.upper)

    def _downcase_word(self, event: KeyEvent) -> None:
        self._change_word_case(str.lower)

    def _capitalize_word(self, event: KeyEvent) -> None:
        self._change_word_case(_capitalize)

    def _indent(self, event: KeyEvent) -> None:
        buffer = self._buffer
        size = self._config.indent_size
        if size:
            start = buffer.line_start()
            buffer.replace(start, start, " " * size, cursor=buffer.cursor + size)

    def _dedent(self, event: KeyEvent) -> None:
        buffer = self._buffer
        start = buffer.line_start()
        line = buffer.text[start : buffer.line_end()]
        count = min(self._config.indent_size, len(line) - len(line.lstrip(" ")))
        if count:
            buffer.replace(start, start + count, "", cursor=max(start, buffer.cursor - count))

    def _start_quoted_insert(self, event: KeyEvent) -> None:
        self._quoted_insert = True

    def _new_line(self, event: KeyEvent) -> None:
        self._buffer.insert("\n")

    def _set_mark(self, event: KeyEvent) -> None:
        self._buffer.set_selection(self._buffer.cursor)

    def _undo(self, event: KeyEvent) -> None:
        if not self._buffer.undo():
            self._beep()

    def _redo(self, event: KeyEvent) -> None:
        if not self._buffer.redo():
            self._beep()

    # -- session ------------------------------------------------------------

    def _validate(self) -> Validation:
        if self._validator is None:
            return Validation.valid()
        buffer = self._buffer
        try:
            validation = self._validator(buffer.text, buffer.cursor)
        except Exception:
            logger.exception("Validator failed")
            return Validation.valid()
        if not isinstance(validation, Validation):
            return Validation.valid()
        return validation

    def _submit(self, event: KeyEvent) -> ReadLineResult | None:
        validation = self._validate()
        if validation.result is ValidationResult.INVALID:
            self._status = validation.message or "Invalid input"
            return None
        if validation.result is ValidationResult.INCOMPLETE:
            self._buffer.insert("\n")
            return None
        return self._finish(Ok(self._buffer.text))

    def _abort(self, event: KeyEvent) -> None:
        if self._buffer.has_selection:
            self._buffer.clear_selection()
        else:
            self._beep()

    def _interrupt(self, event: KeyEvent) -> ReadLineResult:
        return self._finish(Err(ErrorKind.INTERRUPTED))

    def _clear_screen_action(self, event: KeyEvent) -> None:
        if self._renderer is not None:
            self._renderer.clear_screen()

    # -----------------------------------------------------------------------
    # Completion
    # -----------------------------------------------------------------------

    def _complete_forward(self, event: KeyEvent) -> None:
        self._complete(backward=False)

    def _complete_backward(self, event: KeyEvent) -> None:
        self._complete(backward=True)

    def _complete(self, *, backward: bool) -> None:
        buffer = self._buffer
        if not self._completion.has_completer:
            if not backward:
                buffer.insert("\t", typing=True)
            return

        candidates = self._completion.request(buffer.text, buffer.cursor)
        if not candidates:
            self._beep()
            return
        if len(candidates) == 1:
            only = candidates[0]
            with buffer.group():
                buffer.replace(only.start, only.end, only.replacement)
            return

        config = self._config
        self._this_action = "complete"
        if config.completion_type is CompletionType.LIST:
            prefix = common_prefix_candidate(buffer.text, candidates)
            if prefix is not None:
                buffer.replace(prefix.start, prefix.end, prefix.replacement)
            if config.completion_show_all_if_ambiguous or self._last_action == "complete":
                self._show_listing(candidates)
            elif prefix is None:
                self._beep()
            return

        if config.completion_show_all_if_ambiguous:
            self._show_listing(candidates)
        self._session = CompletionSession(candidates, buffer.text, buffer.cursor)
        text, cursor = self._session.step(-1 if backward else 1)
        buffer.swap_text(text, cursor)
        self._hint = ""

    def _handle_completing_key(self, event: KeyEvent) -> bool:
        """Handle a key while cycling; False means the key still has to run."""
        session = self._session
        assert session is not None
        key = event.key
        action = self._keybindings.resolve(key)
        if action in ("complete", "completeBackward"):
            text, cursor = session.step(-1 if action == "completeBackward" else 1)
            self._buffer.swap_text(text, cursor)
            self._this_action = "complete"
            return True
        if key in ("escape", "ctrl+g"):
            self._buffer.swap_text(session.original_text, session.original_cursor)
            self._session = None
            return True
        self._accept_completion()
        return action == "submit"

    def _accept_completion(self) -> None:
        session = self._session
        assert session is not None
        self._session = None
        candidate = session.current
        buffer = self._buffer
        buffer.swap_text(session.original_text, session.original_cursor)
        if candidate is not None:
            buffer.replace(candidate.start, candidate.end, candidate.replacement)

    def _candidate_grid(self, candidates: list[CompletionCandidate]) -> list[str]:
        displays = [c.display for c in candidates]
        styled = [self._highlight.style_candidate(d, self._config.completion_type) for d in displays]
        columns = self._terminal.columns if self._terminal is not None else 80
        return format_grid(displays, columns, styled)

    def _show_listing(self, candidates: list[CompletionCandidate]) -> None:
        """List *candidates* under the prompt, a page at a time."""
        if self._renderer is None:
            return
        limit = self._config.completion_prompt_limit
        page, rest = candidates[:limit], candidates[limit:]
        self._renderer.write_below(self._candidate_grid(page))
        if rest:
            self._listing = rest
            self._renderer.show_message(MORE_PROMPT.format(len(rest)))

    def _handle_more_key(self, event: KeyEvent) -> None:
        renderer = self._renderer
        rest = self._listing
        assert renderer is not None and rest is not None
        key = event.key
        if key in ("y", "Y", "space"):
            renderer.clear_message()
            limit = self._config.completion_prompt_limit
            page, rest = rest[:limit], rest[limit:]
            renderer.write_lines(self._candidate_grid(page))
            if rest:
                self._listing = rest
                renderer.show_message(MORE_PROMPT.format(len(rest)))
                return
        elif key in ("n", "N", "q", "escape", "ctrl+g", "ctrl+c"):
            renderer.clear_message()
        else:
            self._beep()
            return
        self._listing = None
        self._refresh(CmdKind.FORCED_REFRESH)

    # -----------------------------------------------------------------------
    # Vi command mode
    # -----------------------------------------------------------------------

    def _enter_vi_command_mode(self, event: KeyEvent | None = None) -> None:
        buffer = self._buffer
        self._vi_mode = ViMode.COMMAND
        self._vi_parser.reset()
        if buffer.cursor > buffer.line_start():
            buffer.move_cursor(Unit.CHAR, Direction.BACKWARD)
        buffer.break_coalescing()

    def _enter_vi_insert_mode(self) -> None:
        self._vi_mode = ViMode.INSERT
        self._buffer.break_coalescing()

    def _handle_vi_key(self, event: KeyEvent) -> ReadLineResult | None:
        try:
            command = self._vi_parser.feed(event.key)
        except ViParseError as e:
            logger.debug("Vi: %s", e)
            self._beep()
            return None
        if command is None:
            return None

        with self._buffer.group():
            result = self._run_vi_command(command, event)
        if result is None and self._vi_mode is ViMode.COMMAND:
            buffer = self._buffer
            if buffer.cursor == buffer.line_end() and buffer.cursor > buffer.line_start():
                buffer.set_cursor(buffer.prev_boundary(buffer.cursor))
        return result

    def _run_vi_command(self, command: ViCommand, event: KeyEvent) -> ReadLineResult | None:
        buffer = self._buffer
        if command.operator is not None:
            span = self._vi_span(command)
            if span is None:
                self._beep()
                return None
            start, end = span
            if command.operator == "y":
                self._kill_ring.kill(buffer.text[start:end])
                buffer.set_cursor(start)
                return None
            self._kill_ring.kill(buffer.delete(start, end))
            if command.operator == "c":
                self._enter_vi_insert_mode()
            return None

        if command.is_motion:
            target = self._vi_target(command)
            if target is None:
                self._beep()
            else:
                buffer.set_cursor(target)
            return None
        return self._run_vi_edit(command, event)

    def _vi_target(self, command: ViCommand, *, operator: bool = False) -> int | None:
        """Where motion *command* moves the cursor (the span end under an operator)."""
        buffer = self._buffer
        key, n = command.key, command.repeat
        pos = buffer.cursor
        line_start, line_end = buffer.line_start(), buffer.line_end()

        if key in ("h", "left", "backspace"):
            for _ in range(n):
                if pos <= line_start:
                    break
                pos = buffer.prev_boundary(pos)
            return pos
        if key in ("l", "right", "space"):
            for _ in range(n):
                if pos >= line_end:
                    break
                pos = buffer.next_boundary(pos)
            return pos
        if key in ("0", "home"):
            return line_start
        if key == "^":
            line = buffer.text[line_start:line_end]
            return line_start + len(line) - len(line.lstrip())
        if key in ("$", "end"):
            return line_end
        if key in ("w", "W"):
            if operator and command.operator == "c" and buffer.char_after(pos).strip():
                # cw changes to the end of the word, like ce
                for _ in range(n):
                    pos = buffer.word_end(pos, big=key == "W")
                return pos
            for _ in range(n):
                pos = buffer.next_word_start(pos, big=key == "W")
            return pos
        if key in ("b", "B"):
            for _ in range(n):
                pos = buffer.prev_word_start(pos, big=key == "B")
            return pos
        if key in ("e", "E"):
            # Land on the last character of the word; an operator includes it
            for _ in range(n):
                pos = buffer.prev_boundary(buffer.word_end(buffer.next_boundary(pos), big=key == "E"))
            return buffer.next_boundary(pos) if operator else pos
        if key in ("f", "t", "F", "T"):
            return self._vi_find(command, line_start, line_end, operator)
        return None

    def _vi_find(self, command: ViCommand, line_start: int, line_end: int, operator: bool) -> int | None:
        text = self._buffer.text
        char = command.argument or ""
        pos = self._buffer.cursor
        if command.key in ("f", "t"):
            for _ in range(command.repeat):
                pos = text.find(char, pos + 1, line_end)
                if pos < 0:
                    return None
            target = pos - 1 if command.key == "t" else pos
            return target + 1 if operator else target
        for _ in range(command.repeat):
            pos = text.rfind(char, line_start, pos)
            if pos < 0:
                return None
        return pos + 1 if command.key == "T" else pos

    def _vi_span(self, command: ViCommand) -> tuple[int, int] | None:
        buffer = self._buffer
        if command.key == LINE:
            start, end = buffer.line_start(), buffer.line_end()
            for _ in range(command.repeat - 1):
                if end >= len(buffer):
                    break
                end = buffer.line_end(end + 1)
            if command.operator == "d":
                if end < len(buffer):
                    end += 1
                elif start > 0:
                    start -= 1
            return start, end
        target = self._vi_target(command, operator=True)
        if target is None:
            return None
        pos = buffer.cursor
        return min(pos, target), max(pos, target)

    def _run_vi_edit(self, command: ViCommand, event: KeyEvent) -> ReadLineResult | None:
        buffer = self._buffer
        key, n = command.key, command.repeat
        pos = buffer.cursor
        line_start, line_end = buffer.line_start(), buffer.line_end()

        def forward(count: int) -> int:
            end = pos
            for _ in range(count):
                if end >= line_end:
                    break
                end = buffer.next_boundary(end)
            return end

        if key == "i":
            self._enter_vi_insert_mode()
        elif key == "a":
            buffer.set_cursor(forward(1))
            self._enter_vi_insert_mode()
        elif key == "I":
            line = buffer.text[line_start:line_end]
            buffer.set_cursor(line_start + len(line) - len(line.lstrip()))
            self._enter_vi_insert_mode()
        elif key == "A":
            buffer.set_cursor(line_end)
            self._enter_vi_insert_mode()
        elif key in ("x", "delete"):
            self._kill_ring.kill(buffer.delete(pos, forward(n)))
        elif key == "X":
            start = pos
            for _ in range(n):
                if start <= line_start:
                    break
                start = buffer.prev_boundary(start)
            self._kill_ring.kill(buffer.delete(start, pos))
        elif key in ("D", "C"):
            self._kill_ring.kill(buffer.delete(pos, line_end))
            if key == "C":
                buffer.set_cursor(pos)
                self._enter_vi_insert_mode()
        elif key == "s":
            self._kill_ring.kill(buffer.delete(pos, forward(n)))
            self._enter_vi_insert_mode()
        elif key == "S":
            self._kill_ring.kill(buffer.delete(line_start, line_end))
            self._enter_vi_insert_mode()
        elif key in ("p", "P"):
            text = self._kill_ring.yank()
            if not text:
                self._beep()
                return None
            at = forward(1) if key == "p" else pos
            buffer.insert(text * n, at=at)
            buffer.set_cursor(buffer.prev_boundary(buffer.cursor))
        elif key == "u":
            for _ in range(n):
                if not buffer.undo():
                    self._beep()
                    break
        elif key == "ctrl+r":
            for _ in range(n):
                if not buffer.redo():
                    self._beep()
                    break
        elif key == "r":
            end, steps = pos, 0
            while steps < n and end < line_end:
                end = buffer.next_boundary(end)
                steps += 1
            if steps < n:
                self._beep()
                return None
            replacement = (command.argument or "") * n
            buffer.replace(pos, end, replacement, cursor=pos + len(replacement) - len(command.argument or ""))
        elif key == "~":
            end = forward(n)
            buffer.replace(pos, end, buffer.text[pos:end].swapcase())
        elif key in ("j", "down"):
            self._cursor_down(event)
        elif key in ("k", "up"):
            self._cursor_up(event)
        elif key in ("enter", "ctrl+j"):
            return self._submit(event)
        elif key == "ctrl+d":
            if buffer.is_empty:
                return self._finish(Err(ErrorKind.EOF))
            self._beep()
        elif key == "ctrl+c":
            return self._interrupt(event)
        elif key == "ctrl+l":
            self._clear_screen_action(event)
        return None
