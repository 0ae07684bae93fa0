"""Vi command-mode parsing: counts, operators and motions.

Keys are fed one at a time.  The parser answers with a complete
:class:`ViCommand`, ``None`` while more keys are needed, or raises
:class:`ViParseError` when the sequence cannot form a command.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Keys that move the cursor and can follow an operator
MOTIONS = frozenset(
    {"h", "l", "0", "^", "$", "w", "b", "e", "W", "B", "E", "left", "right", "home", "end", "space", "backspace"}
)

OPERATORS = frozenset({"d", "c", "y"})

# Commands that stand alone (no operator allowed in front of them)
COMMANDS = frozenset(
    {
        "i",
        "a",
        "I",
        "A",
        "x",
        "X",
        "D",
        "C",
        "s",
        "S",
        "p",
        "P",
        "u",
        "ctrl+r",
        "~",
        "j",
        "k",
        "up",
        "down",
        "enter",
        "ctrl+j",
        "ctrl+d",
        "ctrl+c",
        "ctrl+l",
        "ctrl+g",
        "escape",
        "delete",
    }
)

# Commands that read one more character as their argument
NEEDS_ARGUMENT = frozenset({"r", "f", "F", "t", "T"})

# The whole line, used for doubled operators (``dd``, ``cc``, ``yy``)
LINE = "line"


class ViParseError(ValueError):
    """The key sequence is not a Vi command."""


@dataclass
class ViCommand:
    key: str
    count: int | None = None
    operator: str | None = None
    argument: str | None = None

    @property
    def repeat(self) -> int:
        return self.count or 1

    @property
    def is_motion(self) -> bool:
        return self.key in MOTIONS or self.key in ("f", "F", "t", "T") or self.key == LINE


@dataclass
class _Draft:
    count_digits: list[str] = field(default_factory=list)
    operator: str | None = None
    # Count typed between the operator and the motion (``d3w``)
    motion_digits: list[str] = field(default_factory=list)
    awaiting_argument: str | None = None


class ViCommandParser:
    """Incremental parser for one command-mode command."""

    def __init__(self) -> None:
        self._draft = _Draft()

    @property
    def pending(self) -> bool:
        d = self._draft
        return bool(d.count_digits or d.operator or d.motion_digits or d.awaiting_argument)

    def reset(self) -> None:
        self._draft = _Draft()

    def feed(self, key: str) -> ViCommand | None:
        try:
            return self._feed(key)
        except ViParseError:
            self.reset()
            raise

    def _feed(self, key: str) -> ViCommand | None:
        d = self._draft

        if d.awaiting_argument is not None:
            if len(key) != 1 and key != "space":
                raise ViParseError(f"{d.awaiting_argument} needs a character, got {key}")
            return self._finish(d.awaiting_argument, argument=" " if key == "space" else key)

        digits = d.motion_digits if d.operator else d.count_digits
        if key.isdigit() and len(key) == 1 and (key != "0" or digits):
            digits.append(key)
            return None

        if key in NEEDS_ARGUMENT:
            if key == "r" and d.operator:
                raise ViParseError("r cannot follow an operator")
            d.awaiting_argument = key
            return None

        if d.operator:
            if key == d.operator:
                return self._finish(LINE)
            if key in MOTIONS:
                return self._finish(key)
            raise ViParseError(f"{key} is not a motion")

        if key in OPERATORS:
            d.operator = key
            return None
        if key in MOTIONS or key in COMMANDS:
            return self._finish(key)
        raise ViParseError(f"Unknown command {key}")

    def _finish(self, key: str, argument: str | None = None) -> ViCommand:
        d = self._draft
        count = None
        if d.count_digits or d.motion_digits:
            count = int("".join(d.count_digits) or "1") * int("".join(d.motion_digits) or "1")
        command = ViCommand(key=key, count=count, operator=d.operator, argument=argument)
        self.reset()
        return command
