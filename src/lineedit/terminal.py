"""Terminal abstraction: raw mode, blocking reads with a deadline, signals.

Provides a ``Terminal`` protocol and ``PosixTerminal``, which manages raw
mode via :mod:`tty`/:mod:`termios`, bracketed paste, and SIGINT/SIGWINCH
observation.  Signals never run editor code: the handlers only set a flag
and poke a wake-up pipe so that a blocked :meth:`PosixTerminal.read`
returns and the read loop can look at :meth:`~PosixTerminal.take_resize`
and :meth:`~PosixTerminal.take_interrupt`.
"""

from __future__ import annotations

import errno
import logging
import os
import re
import select
import signal
import sys
import termios
import threading
import time
import tty
from typing import Any, Protocol

from lineedit.config import Behavior, EditorConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
BRACKETED_PASTE_DISABLE = "\x1b[?2004l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

_CURSOR_POSITION_QUERY = "\x1b[6n"
_CURSOR_POSITION_RE = re.compile(rb"\x1b\[(\d+);(\d+)R")
_CURSOR_QUERY_TIMEOUT = 0.1

UNSUPPORTED_TERMS = frozenset({"dumb", "cons25", "emacs"})


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface the editor uses for terminal I/O."""

    @property
    def is_tty(self) -> bool: ...

    @property
    def is_output_tty(self) -> bool: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def enable_raw_mode(self) -> None: ...

    def disable_raw_mode(self) -> None: ...

    def read(self, timeout: float | None) -> bytes | None:
        """Return available bytes, ``b""`` at end of input, or ``None``.

        ``None`` means the timeout elapsed or a signal arrived.  A timeout of
        ``None`` blocks until one of those happens.
        """
        ...

    def write(self, data: str) -> None: ...

    def flush(self) -> None: ...

    def take_resize(self) -> bool: ...

    def take_interrupt(self) -> bool: ...

    def observe_signals(self) -> None: ...

    def restore_signals(self) -> None: ...

    def cursor_column(self) -> int | None: ...


def is_unsupported_term(term: str | None = None) -> bool:
    """Terminals that cannot take cursor movement sequences."""
    if term is None:
        term = os.environ.get("TERM", "")
    return term.lower() in UNSUPPORTED_TERMS


# ---------------------------------------------------------------------------
# PosixTerminal implementation
# ---------------------------------------------------------------------------


class PosixTerminal:
    """Terminal backed by a pair of file descriptors (stdin/stdout by default).

    Args:
        input_fd: Descriptor keys are read from.
        output_fd: Descriptor the prompt is drawn on.
        enable_signals: Keep ``ISIG`` in raw mode so that the tty turns
            Ctrl-C into SIGINT; otherwise Ctrl-C arrives as a key.
        bracketed_paste: Ask the terminal to wrap pastes in markers.
        owns_fds: Close the descriptors in :meth:`close`.
    """

    def __init__(
        self,
        input_fd: int | None = None,
        output_fd: int | None = None,
        *,
        enable_signals: bool = False,
        bracketed_paste: bool = True,
        owns_fds: bool = False,
    ) -> None:
        self._in = sys.stdin.fileno() if input_fd is None else input_fd
        self._out = sys.stdout.fileno() if output_fd is None else output_fd
        self._enable_signals = enable_signals
        self._bracketed_paste = bracketed_paste
        self._owns_fds = owns_fds
        self._original_termios: list[Any] | None = None
        self._pending_output: list[str] = []
        # Bytes read while waiting for a cursor position report
        self._pushback = b""

        self._resized = False
        self._interrupted = False
        self._prev_handlers: dict[int, Any] = {}
        self._prev_wakeup_fd: int | None = None
        self._wakeup_r: int | None = None
        self._wakeup_w: int | None = None

    # -- properties ---------------------------------------------------------

    @property
    def input_fd(self) -> int:
        return self._in

    @property
    def is_tty(self) -> bool:
        """Input is an interactive terminal that understands cursor movement."""
        return os.isatty(self._in) and not is_unsupported_term()

    @property
    def is_output_tty(self) -> bool:
        return os.isatty(self._out)

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self._out).columns or 80
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(self._out).lines or 24
        except (ValueError, OSError):
            return 24

    # -- raw mode -----------------------------------------------------------

    def enable_raw_mode(self) -> None:
        """Enter raw mode, install signal observers and enable paste markers."""
        if self._original_termios is not None:
            return
        original = termios.tcgetattr(self._in)
        try:
            tty.setraw(self._in, termios.TCSADRAIN)
            if self._enable_signals:
                attrs = termios.tcgetattr(self._in)
                attrs[3] |= termios.ISIG
                termios.tcsetattr(self._in, termios.TCSADRAIN, attrs)
        except (OSError, termios.error):
            termios.tcsetattr(self._in, termios.TCSADRAIN, original)
            raise
        self._original_termios = original
        self.observe_signals()
        if self._bracketed_paste:
            self.write(BRACKETED_PASTE_ENABLE)
            self.flush()

    def disable_raw_mode(self) -> None:
        """Restore the saved terminal attributes and signal handlers."""
        if self._original_termios is None:
            return
        try:
            if self._bracketed_paste:
                self.write(BRACKETED_PASTE_DISABLE)
                self.flush()
        finally:
            try:
                termios.tcsetattr(self._in, termios.TCSADRAIN, self._original_termios)
            finally:
                self._original_termios = None
                self.restore_signals()

    # -- input --------------------------------------------------------------

    def read(self, timeout: float | None) -> bytes | None:
        if self._pushback:
            data, self._pushback = self._pushback, b""
            return data

        watched = [self._in]
        if self._wakeup_r is not None:
            watched.append(self._wakeup_r)
        try:
            ready, _, _ = select.select(watched, [], [], timeout)
        except InterruptedError:
            return None
        if self._wakeup_r is not None and self._wakeup_r in ready:
            self._drain_wakeup()
        if self._in not in ready:
            return None
        try:
            return os.read(self._in, 4096)
        except InterruptedError:
            return None

    def cursor_column(self) -> int | None:
        """Ask the terminal for the cursor column (0-based) with ``ESC[6n``.

        Returns None when the terminal does not answer in time.  Bytes that
        arrive before the report are kept for the next :meth:`read`.
        """
        self.write(_CURSOR_POSITION_QUERY)
        self.flush()
        deadline = time.monotonic() + _CURSOR_QUERY_TIMEOUT
        received = b""
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            ready, _, _ = select.select([self._in], [], [], remaining)
            if not ready:
                break
            chunk = os.read(self._in, 1024)
            if not chunk:
                break
            received += chunk
            match = _CURSOR_POSITION_RE.search(received)
            if match:
                self._pushback += received[: match.start()] + received[match.end() :]
                return int(match.group(2)) - 1
        self._pushback += received
        logger.debug("No cursor position report received")
        return None

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        """Queue *data*; nothing reaches the terminal before :meth:`flush`."""
        self._pending_output.append(data)

    def flush(self) -> None:
        if not self._pending_output:
            return
        payload = "".join(self._pending_output).encode("utf-8", errors="replace")
        self._pending_output.clear()
        view = memoryview(payload)
        while view:
            try:
                written = os.write(self._out, view)
            except InterruptedError:
                continue
            view = view[written:]

    # -- signals ------------------------------------------------------------

    def take_resize(self) -> bool:
        resized, self._resized = self._resized, False
        return resized

    def take_interrupt(self) -> bool:
        interrupted, self._interrupted = self._interrupted, False
        return interrupted

    def _on_signal(self, signum: int, frame: object) -> None:
        if signum == signal.SIGWINCH:
            self._resized = True
        elif signum == signal.SIGINT:
            self._interrupted = True

    def observe_signals(self) -> None:
        """Turn SIGINT and SIGWINCH into flags until :meth:`restore_signals`.

        A signal wakes a blocked :meth:`read`, which then returns None.
        Calling this again while observing does nothing.
        """
        if self._prev_handlers:
            return
        # Python only delivers signals to the main thread
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, resize and interrupt signals are not observed")
            return
        self._wakeup_r, self._wakeup_w = os.pipe()
        os.set_blocking(self._wakeup_r, False)
        os.set_blocking(self._wakeup_w, False)
        self._prev_wakeup_fd = signal.set_wakeup_fd(self._wakeup_w, warn_on_full_buffer=False)
        for signum in (signal.SIGWINCH, signal.SIGINT):
            self._prev_handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, self._on_signal)

    def restore_signals(self) -> None:
        for signum, handler in self._prev_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._prev_handlers.clear()
        if self._wakeup_w is None:
            return
        signal.set_wakeup_fd(self._prev_wakeup_fd if self._prev_wakeup_fd is not None else -1)
        self._prev_wakeup_fd = None
        for fd in (self._wakeup_r, self._wakeup_w):
            if fd is not None:
                os.close(fd)
        self._wakeup_r = self._wakeup_w = None

    def _drain_wakeup(self) -> None:
        assert self._wakeup_r is not None
        try:
            while os.read(self._wakeup_r, 512):
                pass
        except BlockingIOError:
            pass

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        self.disable_raw_mode()
        if self._owns_fds:
            for fd in {self._in, self._out}:
                try:
                    os.close(fd)
                except OSError as e:
                    if e.errno != errno.EBADF:
                        raise


def open_terminal(config: EditorConfig) -> PosixTerminal:
    """Terminal for *config*: stdin/stdout, or ``/dev/tty`` with PREFER_TERM.

    ``/dev/tty`` is only used when stdin is not a terminal and it can be
    opened; otherwise stdin/stdout are used as-is.
    """
    kwargs = {
        "enable_signals": config.enable_signals,
        "bracketed_paste": config.enable_bracketed_paste,
    }
    if config.behavior is Behavior.PREFER_TERM and not sys.stdin.isatty():
        try:
            fd = os.open("/dev/tty", os.O_RDWR | os.O_NOCTTY)
        except OSError as e:
            logger.debug("Cannot open /dev/tty (%s), using stdio", e)
        else:
            return PosixTerminal(fd, fd, owns_fds=True, **kwargs)
    return PosixTerminal(**kwargs)
