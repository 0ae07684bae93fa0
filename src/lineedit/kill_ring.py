"""Ring buffer for Emacs-style kill/yank operations."""

from __future__ import annotations

from collections import deque

DEFAULT_KILL_RING_SIZE = 60


class KillRing:
    """Bounded ring of killed (deleted) text.

    Consecutive kills accumulate into one entry: text killed forwards is
    appended, text killed backwards is prepended, so ``C-k`` twice or
    ``C-w`` twice yank back as a single block.  The newest entry is at the
    right end of the ring.
    """

    def __init__(self, max_size: int = DEFAULT_KILL_RING_SIZE) -> None:
        self._ring: deque[str] = deque(maxlen=max(max_size, 1))

    def kill(self, text: str, *, backward: bool = False, accumulate: bool = False) -> None:
        """Record killed *text*.

        Args:
            text: The deleted text; empty kills are ignored.
            backward: The text was deleted before the cursor.
            accumulate: Merge into the newest entry (the previous command
                was also a kill).
        """
        if not text:
            return
        if accumulate and self._ring:
            last = self._ring.pop()
            self._ring.append(text + last if backward else last + text)
        else:
            self._ring.append(text)

    def yank(self) -> str | None:
        """Newest entry, without modifying the ring."""
        return self._ring[-1] if self._ring else None

    def yank_pop(self) -> str | None:
        """Rotate the ring one step and return the new newest entry."""
        if not self._ring:
            return None
        self._ring.rotate(1)
        return self._ring[-1]

    def clear(self) -> None:
        self._ring.clear()

    def __len__(self) -> int:
        return len(self._ring)
