"""Tests for lineedit.config and lineedit.errors -- settings and results."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from lineedit.config import (
    DEFAULT_KEY_SEQ_TIMEOUT_MS,
    BellStyle,
    CompletionType,
    EditMode,
    EditorConfig,
    HistoryDuplicates,
    config_from_dict,
    config_to_dict,
    get_config_path,
    load_config,
    save_config,
)
from lineedit.errors import ConfigError, Err, ErrorKind, HistoryParseError, Ok, ReadLineError, default_message


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("LINEEDIT_CONFIG", "LINEEDIT_CONFIG_DIR", "LINEEDIT_EDIT_MODE", "LINEEDIT_KEY_SEQ_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


class TestEditorConfig:
    """Defaults and validation."""

    def test_defaults(self) -> None:
        config = EditorConfig()
        assert config.max_history_size == 100
        assert config.history_duplicates is HistoryDuplicates.IGNORE_CONSECUTIVE
        assert config.completion_type is CompletionType.CIRCULAR
        assert config.edit_mode is EditMode.EMACS
        assert config.tab_stop == 8
        assert config.key_seq_timeout is None
        assert config.effective_key_seq_timeout == DEFAULT_KEY_SEQ_TIMEOUT_MS

    def test_replace_returns_new_snapshot(self) -> None:
        config = EditorConfig()
        changed = config.replace(edit_mode=EditMode.VI)
        assert changed.edit_mode is EditMode.VI
        assert config.edit_mode is EditMode.EMACS

    def test_replace_validates(self) -> None:
        with pytest.raises(ConfigError):
            EditorConfig().replace(tab_stop=0)
        with pytest.raises(ConfigError):
            EditorConfig().replace(edit_mode="vi")
        with pytest.raises(ConfigError):
            EditorConfig().replace(no_such_field=1)

    def test_bool_is_not_an_integer(self) -> None:
        with pytest.raises(ConfigError):
            EditorConfig(max_history_size=True)

    def test_key_seq_timeout_range(self) -> None:
        assert EditorConfig(key_seq_timeout=-1).effective_key_seq_timeout == -1
        assert EditorConfig(key_seq_timeout=0).effective_key_seq_timeout == 0
        with pytest.raises(ConfigError):
            EditorConfig(key_seq_timeout=-2)


class TestDictConversion:
    """camelCase mappings in and out."""

    def test_from_dict(self) -> None:
        config = config_from_dict({"editMode": "vi", "maxHistorySize": 5, "bellStyle": "NONE"})
        assert config.edit_mode is EditMode.VI
        assert config.max_history_size == 5
        assert config.bell_style is BellStyle.NONE

    def test_snake_case_and_dashes(self) -> None:
        config = config_from_dict({"history_duplicates": "ignore-all"})
        assert config.history_duplicates is HistoryDuplicates.IGNORE_ALL

    def test_unknown_keys_ignored(self) -> None:
        assert config_from_dict({"colour": "red"}) == config_from_dict({})

    def test_bad_enum_value(self) -> None:
        with pytest.raises(ConfigError, match="edit_mode must be one of emacs, vi"):
            config_from_dict({"editMode": "nano"})

    def test_to_dict(self) -> None:
        data = config_to_dict(EditorConfig(edit_mode=EditMode.VI))
        assert data["editMode"] == "vi"
        assert data["keySeqTimeout"] is None
        assert config_from_dict(data).edit_mode is EditMode.VI


class TestLoadConfig:
    """Reading the JSON file and environment overrides."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "none.json") == config_from_dict({})

    def test_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"completionType": "list", "tabStop": 4}))
        config = load_config(path)
        assert config.completion_type is CompletionType.LIST
        assert config.tab_stop == 4

    def test_bad_json_is_ignored(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(path).edit_mode is EditMode.EMACS
        assert "Error reading config" in caplog.text

    def test_non_object_is_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        assert load_config(path).max_history_size == 100

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"editMode": "emacs"}))
        monkeypatch.setenv("LINEEDIT_EDIT_MODE", "vi")
        monkeypatch.setenv("LINEEDIT_KEY_SEQ_TIMEOUT", "25")
        config = load_config(path)
        assert config.edit_mode is EditMode.VI
        assert config.key_seq_timeout == 25

    def test_bad_env_timeout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEEDIT_KEY_SEQ_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            load_config(tmp_path / "none.json")

    def test_config_path_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEEDIT_CONFIG_DIR", str(tmp_path))
        assert get_config_path() == tmp_path / "config.json"
        monkeypatch.setenv("LINEEDIT_CONFIG", str(tmp_path / "other.json"))
        assert get_config_path() == tmp_path / "other.json"

    def test_save_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.json"
        save_config(EditorConfig(indent_size=4, auto_add_history=True), path)
        config = load_config(path)
        assert config.indent_size == 4
        assert config.auto_add_history


class TestResults:
    """Ok and Err records."""

    def test_ok(self) -> None:
        result = Ok("line")
        assert result.ok
        assert result.unwrap() == "line"

    def test_err_default_message(self) -> None:
        result = Err(ErrorKind.EOF)
        assert not result.ok
        assert result.message == "Reached end of file"
        with pytest.raises(ReadLineError) as info:
            result.unwrap()
        assert info.value.kind is ErrorKind.EOF

    def test_unknown_carries_detail(self) -> None:
        assert default_message(ErrorKind.UNKNOWN, "boom") == "Unknown error: boom"
        assert default_message(ErrorKind.INTERRUPTED, "ignored") == "Received interrupt signal"

    def test_history_parse_error_message(self) -> None:
        error = HistoryParseError("Bad entry", "/tmp/h", line=3)
        assert str(error) == "Bad entry (line 3): /tmp/h"
        assert error.line == 3
        assert error.path == "/tmp/h"
