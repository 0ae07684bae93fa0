"""Tests for lineedit.hint and lineedit.validate -- hinters and validators."""

from __future__ import annotations

from lineedit.hint import HistoryHinter
from lineedit.validate import MatchingBracketValidator, Validation, ValidationResult


class TestHistoryHinter:
    """Hints come from the newest matching history entry."""

    def test_newest_match_wins(self) -> None:
        history = ["git status", "git stash", "ls"]
        assert HistoryHinter().hint("git st", 6, history) == "ash"

    def test_exact_match_is_skipped(self) -> None:
        assert HistoryHinter().hint("ls", 2, ["ls -la", "ls"]) == " -la"

    def test_only_at_end_of_line(self) -> None:
        assert HistoryHinter().hint("git st", 3, ["git status"]) is None

    def test_empty_line(self) -> None:
        assert HistoryHinter().hint("", 0, ["anything"]) is None

    def test_no_match(self) -> None:
        assert HistoryHinter().hint("zz", 2, ["git"]) is None


class TestValidation:
    """Result constructors."""

    def test_constructors(self) -> None:
        assert Validation.valid().is_valid
        assert Validation.invalid("nope") == Validation(ValidationResult.INVALID, "nope")
        assert Validation.incomplete().result is ValidationResult.INCOMPLETE
        assert not Validation.incomplete().is_valid


class TestMatchingBracketValidator:
    """Bracket balance decides between valid, incomplete and invalid."""

    def test_balanced(self) -> None:
        assert MatchingBracketValidator().validate("f(a[1], {b})", 0).is_valid

    def test_open_brackets_are_incomplete(self) -> None:
        result = MatchingBracketValidator().validate("if (x", 0)
        assert result.result is ValidationResult.INCOMPLETE

    def test_stray_closer(self) -> None:
        result = MatchingBracketValidator().validate("a)", 0)
        assert result == Validation.invalid("Unmatched closing bracket ')'")

    def test_mismatch(self) -> None:
        result = MatchingBracketValidator().validate("(]", 0)
        assert result == Validation.invalid("Mismatched brackets: expected ')', found ']'")
