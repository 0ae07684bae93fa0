"""Tests for lineedit.cli -- argument parsing and the demo REPLs."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from lineedit import cli
from lineedit.config import EditorConfig
from lineedit.editor import Editor
from lineedit.validate import ValidationResult

from .virtual_terminal import ScriptedTerminal


@pytest.fixture()
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in ("LINEEDIT_CONFIG", "LINEEDIT_EDIT_MODE", "LINEEDIT_KEY_SEQ_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"keySeqTimeout": 0, "bellStyle": "none"}))
    return path


def use_terminal(monkeypatch: pytest.MonkeyPatch, terminal: ScriptedTerminal) -> list[Editor]:
    """Make ``cli.main`` build its editor on *terminal*."""
    editors: list[Editor] = []

    def factory(config: EditorConfig) -> Editor:
        editor = Editor(config, terminal=terminal)
        editors.append(editor)
        return editor

    monkeypatch.setattr(cli, "Editor", factory)
    return editors


class TestParseArgs:
    """Command-line options."""

    def test_defaults(self) -> None:
        args = cli.parse_args([])
        assert args.example == "default"
        assert not args.vi
        assert args.history is None

    def test_options(self) -> None:
        args = cli.parse_args(["validate", "--vi", "--history", "h.txt", "-v"])
        assert args.example == "validate"
        assert args.vi
        assert args.history == "h.txt"
        assert args.verbose

    def test_unknown_example(self) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args(["nope"])


class TestValidateNumber:
    def test_results(self) -> None:
        assert cli._validate_number("42", 2).is_valid
        assert cli._validate_number("", 0).message == "Enter a number"
        assert cli._validate_number("4x", 2).result is ValidationResult.INVALID


class TestMain:
    """The demos run end to end on a scripted terminal."""

    def test_minimal(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        use_terminal(monkeypatch, ScriptedTerminal(["a\nb\n"], is_tty=False))
        assert cli.main(["minimal", "--config", str(config_path)]) == 0
        assert capsys.readouterr().out == "Line: a\nLine: b\n"

    def test_default_saves_history(
        self,
        tmp_path: Path,
        config_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        history = tmp_path / "history.txt"
        use_terminal(monkeypatch, ScriptedTerminal(["ls -la\r"]))
        assert cli.main(["default", "--config", str(config_path), "--history", str(history)]) == 0
        assert capsys.readouterr().out == "Line: ls -la\n^D\n"
        assert "ls -la" in history.read_text()

    def test_password(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        terminal = ScriptedTerminal(["hunter2\r"])
        use_terminal(monkeypatch, terminal)
        assert cli.main(["password", "--config", str(config_path)]) == 0
        assert capsys.readouterr().out == "Read 7 characters\n"
        assert "hunter2" not in terminal.output

    def test_validate_rejects_until_number(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        terminal = ScriptedTerminal(["x\r", "\x7f12\r"])
        use_terminal(monkeypatch, terminal)
        assert cli.main(["validate", "--config", str(config_path)]) == 0
        assert capsys.readouterr().out == "Number: 12\n"
        assert "Not a number: 'x'" in terminal.plain_output

    def test_vi_flag(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        editors = use_terminal(monkeypatch, ScriptedTerminal(["x\n"], is_tty=False))
        assert cli.main(["minimal", "--vi", "--config", str(config_path)]) == 0
        assert editors[0].config.edit_mode.value == "vi"

    def test_bad_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"editMode": "nano"}))
        assert cli.main(["minimal", "--config", str(path)]) == 2
        assert "edit_mode must be one of" in capsys.readouterr().err
