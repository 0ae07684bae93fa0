"""Inline hints shown after the cursor."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence, Union


class Hinter(Protocol):
    def hint(self, line: str, pos: int, history: Sequence[str]) -> str | None: ...


HinterFunc = Callable[[str, int, Sequence[str]], Optional[str]]
AnyHinter = Union[Hinter, HinterFunc]


class HistoryHinter:
    """Suggest the rest of the newest history entry that extends the line.

    Only offered while the cursor sits at the end of a non-empty line.
    """

    def hint(self, line: str, pos: int, history: Sequence[str]) -> str | None:
        if not line or pos < len(line):
            return None
        for i in range(len(history) - 1, -1, -1):
            entry = history[i]
            if entry.startswith(line) and entry != line:
                return entry[len(line) :]
        return None
