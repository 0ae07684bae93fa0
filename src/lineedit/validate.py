"""Input validation run when Enter is pressed."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Protocol, Union


class ValidationResult(enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class Validation:
    """Outcome of validating the buffer.

    ``VALID`` accepts the line (the message, if any, is shown once),
    ``INVALID`` keeps editing and shows the message below the line, and
    ``INCOMPLETE`` inserts a newline so the user can keep typing.
    """

    result: ValidationResult
    message: str | None = None

    @classmethod
    def valid(cls, message: str | None = None) -> Validation:
        return cls(ValidationResult.VALID, message)

    @classmethod
    def invalid(cls, message: str | None = None) -> Validation:
        return cls(ValidationResult.INVALID, message)

    @classmethod
    def incomplete(cls) -> Validation:
        return cls(ValidationResult.INCOMPLETE)

    @property
    def is_valid(self) -> bool:
        return self.result is ValidationResult.VALID


class Validator(Protocol):
    def validate(self, line: str, pos: int) -> Validation: ...


ValidatorFunc = Callable[[str, int], Validation]
AnyValidator = Union[Validator, ValidatorFunc]

_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = set(_PAIRS.values())


class MatchingBracketValidator:
    """Incomplete while brackets are open, invalid on a stray closer."""

    def validate(self, line: str, pos: int) -> Validation:
        stack: list[str] = []
        for ch in line:
            if ch in _PAIRS:
                stack.append(_PAIRS[ch])
            elif ch in _CLOSERS:
                if not stack:
                    return Validation.invalid(f"Unmatched closing bracket {ch!r}")
                expected = stack.pop()
                if ch != expected:
                    return Validation.invalid(f"Mismatched brackets: expected {expected!r}, found {ch!r}")
        if stack:
            return Validation.incomplete()
        return Validation.valid()
