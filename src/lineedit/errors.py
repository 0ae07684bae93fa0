"""Error taxonomy and the ``read_line`` result type.

``Editor.read_line`` never raises for the outcomes a prompt normally has
(end of input, Ctrl-C, a broken terminal); it returns an :class:`Ok` or
:class:`Err` record instead.  Exceptions are reserved for programming
errors and for history I/O, which is reported separately.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


class ErrorKind(enum.Enum):
    """Why a ``read_line`` call ended without a line."""

    EOF = "eof"
    INTERRUPTED = "interrupted"
    UNKNOWN = "unknown"


_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.EOF: "Reached end of file",
    ErrorKind.INTERRUPTED: "Received interrupt signal",
    ErrorKind.UNKNOWN: "Unknown error",
}


def default_message(kind: ErrorKind, detail: str | None = None) -> str:
    """Return the human-readable message for *kind*.

    ``UNKNOWN`` errors carry their detail after a colon, e.g.
    ``"Unknown error: [Errno 5] Input/output error"``.
    """
    base = _DEFAULT_MESSAGES[kind]
    if kind is ErrorKind.UNKNOWN and detail:
        return f"{base}: {detail}"
    return base


class ReadLineError(Exception):
    """Raised by :meth:`Err.unwrap` for callers that prefer exceptions."""

    def __init__(self, kind: ErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or default_message(kind)
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ok:
    """A line was accepted."""

    text: str

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> str:
        return self.text


@dataclass(frozen=True)
class Err:
    """The read ended without a line."""

    kind: ErrorKind
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", default_message(self.kind))

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> str:
        raise ReadLineError(self.kind, self.message)


ReadLineResult = Union[Ok, Err]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """An :class:`~lineedit.config.EditorConfig` field holds an invalid value."""


class HistoryError(Exception):
    """Base class for history persistence failures."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)


class HistoryIoError(HistoryError):
    """The history file could not be read or written."""


class HistoryParseError(HistoryError):
    """The history file exists but its contents are corrupt."""

    def __init__(self, message: str, path: str | None = None, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, path)


class EditorDisposedError(RuntimeError):
    """The editor was used after :meth:`~lineedit.editor.Editor.dispose`."""


class ReentrantCallError(RuntimeError):
    """A callback tried to re-enter the editor during an active read."""
