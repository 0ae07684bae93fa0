"""Tests for lineedit.hooks -- object-or-callable hook resolution."""

from __future__ import annotations

import pytest

from lineedit.completion import CompletionEngine, WordCompleter
from lineedit.hooks import resolve_hook


class Both:
    def complete(self, line: str, pos: int) -> list[str]:
        return ["method"]

    def __call__(self, line: str, pos: int) -> list[str]:
        return ["call"]


class TestResolveHook:
    """The method wins over the object being callable."""

    def test_none_removes(self) -> None:
        assert resolve_hook(None, "hint") is None

    def test_method_preferred(self) -> None:
        hook = resolve_hook(Both(), "complete")
        assert hook is not None
        assert hook("", 0) == ["method"]

    def test_plain_callable(self) -> None:
        def hint(line: str, pos: int, history: object) -> str:
            return "x"

        assert resolve_hook(hint, "hint") is hint

    def test_non_callable_attribute_is_ignored(self) -> None:
        class Odd:
            hint = "not a function"

        with pytest.raises(TypeError, match=r"hint\(\)"):
            resolve_hook(Odd(), "hint")

    def test_completion_engine_uses_same_rules(self) -> None:
        engine = CompletionEngine(Both())
        assert [c.replacement for c in engine.request("", 0)] == ["method"]
        engine.set_completer(WordCompleter(["word"]))
        assert [c.replacement for c in engine.request("w", 1)] == ["word"]
