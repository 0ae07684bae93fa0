"""Editor configuration snapshot and its JSON persistence.

An :class:`EditorConfig` is immutable once built.  Editors swap single
fields through :meth:`EditorConfig.replace`, which re-validates the new
snapshot.  ``load_config`` reads ``~/.lineedit/config.json`` (or the file
named by ``LINEEDIT_CONFIG``) using camelCase keys, e.g.::

    {"editMode": "vi", "maxHistorySize": 500, "keySeqTimeout": 50}
"""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lineedit.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".lineedit"
CONFIG_FILE_NAME = "config.json"

# Applied when key_seq_timeout is left unset.
DEFAULT_KEY_SEQ_TIMEOUT_MS = 500


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class HistoryDuplicates(enum.Enum):
    ALWAYS_ADD = "always_add"
    IGNORE_CONSECUTIVE = "ignore_consecutive"
    IGNORE_ALL = "ignore_all"


class CompletionType(enum.Enum):
    """How ambiguous completions are presented."""

    CIRCULAR = "circular"
    LIST = "list"


class EditMode(enum.Enum):
    EMACS = "emacs"
    VI = "vi"


class BellStyle(enum.Enum):
    AUDIBLE = "audible"
    NONE = "none"
    VISIBLE = "visible"

    @classmethod
    def default(cls) -> BellStyle:
        return cls.NONE if sys.platform == "win32" else cls.AUDIBLE


class ColorMode(enum.Enum):
    """ENABLED colours only on a capable tty, FORCED always, DISABLED never."""

    ENABLED = "enabled"
    FORCED = "forced"
    DISABLED = "disabled"


class Behavior(enum.Enum):
    """Where input comes from when stdin is not a terminal."""

    STDIO = "stdio"
    PREFER_TERM = "prefer_term"


# ---------------------------------------------------------------------------
# Config snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EditorConfig:
    """Immutable editor settings."""

    max_history_size: int = 100
    history_duplicates: HistoryDuplicates = HistoryDuplicates.IGNORE_CONSECUTIVE
    history_ignore_space: bool = False
    completion_type: CompletionType = CompletionType.CIRCULAR
    completion_show_all_if_ambiguous: bool = False
    completion_prompt_limit: int = 100
    key_seq_timeout: int | None = None
    edit_mode: EditMode = EditMode.EMACS
    auto_add_history: bool = False
    bell_style: BellStyle = field(default_factory=BellStyle.default)
    color_mode: ColorMode = ColorMode.ENABLED
    behavior: Behavior = Behavior.STDIO
    tab_stop: int = 8
    indent_size: int = 2
    check_cursor_position: bool = False
    enable_bracketed_paste: bool = True
    enable_synchronized_output: bool = True
    enable_signals: bool = False

    def __post_init__(self) -> None:
        _check_enum(self, "history_duplicates", HistoryDuplicates)
        _check_enum(self, "completion_type", CompletionType)
        _check_enum(self, "edit_mode", EditMode)
        _check_enum(self, "bell_style", BellStyle)
        _check_enum(self, "color_mode", ColorMode)
        _check_enum(self, "behavior", Behavior)

        _check_int(self, "max_history_size")
        _check_int(self, "completion_prompt_limit", low=1)
        _check_int(self, "tab_stop", low=1, high=255)
        _check_int(self, "indent_size", low=0, high=255)
        if self.key_seq_timeout is not None:
            _check_int(self, "key_seq_timeout", low=-1)

    @property
    def effective_key_seq_timeout(self) -> int:
        """Timeout in milliseconds with the default filled in (-1 = forever)."""
        if self.key_seq_timeout is None:
            return DEFAULT_KEY_SEQ_TIMEOUT_MS
        return self.key_seq_timeout

    def replace(self, **changes: Any) -> EditorConfig:
        """Return a validated copy with *changes* applied."""
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as e:
            raise ConfigError(str(e)) from e


def _check_enum(config: EditorConfig, name: str, enum_type: type[enum.Enum]) -> None:
    value = getattr(config, name)
    if not isinstance(value, enum_type):
        raise ConfigError(f"{name} must be a {enum_type.__name__}, got {value!r}")


def _check_int(config: EditorConfig, name: str, *, low: int | None = None, high: int | None = None) -> None:
    value = getattr(config, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if low is not None and value < low:
        raise ConfigError(f"{name} must be >= {low}, got {value}")
    if high is not None and value > high:
        raise ConfigError(f"{name} must be <= {high}, got {value}")


# ---------------------------------------------------------------------------
# JSON conversion
# ---------------------------------------------------------------------------

_JSON_KEYS: dict[str, str] = {
    "maxHistorySize": "max_history_size",
    "historyDuplicates": "history_duplicates",
    "historyIgnoreSpace": "history_ignore_space",
    "completionType": "completion_type",
    "completionShowAllIfAmbiguous": "completion_show_all_if_ambiguous",
    "completionPromptLimit": "completion_prompt_limit",
    "keySeqTimeout": "key_seq_timeout",
    "editMode": "edit_mode",
    "autoAddHistory": "auto_add_history",
    "bellStyle": "bell_style",
    "colorMode": "color_mode",
    "behavior": "behavior",
    "tabStop": "tab_stop",
    "indentSize": "indent_size",
    "checkCursorPosition": "check_cursor_position",
    "enableBracketedPaste": "enable_bracketed_paste",
    "enableSynchronizedOutput": "enable_synchronized_output",
    "enableSignals": "enable_signals",
}

_ENUM_FIELDS: dict[str, type[enum.Enum]] = {
    "history_duplicates": HistoryDuplicates,
    "completion_type": CompletionType,
    "edit_mode": EditMode,
    "bell_style": BellStyle,
    "color_mode": ColorMode,
    "behavior": Behavior,
}


def _coerce_enum(name: str, value: Any) -> enum.Enum:
    enum_type = _ENUM_FIELDS[name]
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower().replace("-", "_")
        for member in enum_type:
            if member.value == normalized or member.name.lower() == normalized:
                return member
    choices = ", ".join(m.value for m in enum_type)
    raise ConfigError(f"{name} must be one of {choices}, got {value!r}")


def config_from_dict(data: dict[str, Any], base: EditorConfig | None = None) -> EditorConfig:
    """Build a config from a camelCase (or snake_case) mapping.

    Unknown keys are ignored.  Values are validated; enum fields accept
    their string values (``"vi"``, ``"ignore_all"``...).
    """
    changes: dict[str, Any] = {}
    snake_names = set(_JSON_KEYS.values())
    for key, value in data.items():
        name = _JSON_KEYS.get(key, key)
        if name not in snake_names:
            logger.debug("Ignoring unknown config key %r", key)
            continue
        if name in _ENUM_FIELDS:
            value = _coerce_enum(name, value)
        changes[name] = value
    return (base or EditorConfig()).replace(**changes)


def config_to_dict(config: EditorConfig) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, name in _JSON_KEYS.items():
        value = getattr(config, name)
        result[key] = value.value if isinstance(value, enum.Enum) else value
    return result


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def get_config_dir() -> Path:
    return Path(os.environ.get("LINEEDIT_CONFIG_DIR", Path.home() / CONFIG_DIR_NAME))


def get_config_path() -> Path:
    explicit = os.environ.get("LINEEDIT_CONFIG")
    if explicit:
        return Path(explicit)
    return get_config_dir() / CONFIG_FILE_NAME


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    edit_mode = os.environ.get("LINEEDIT_EDIT_MODE")
    if edit_mode:
        overrides["editMode"] = edit_mode
    timeout = os.environ.get("LINEEDIT_KEY_SEQ_TIMEOUT")
    if timeout:
        try:
            overrides["keySeqTimeout"] = int(timeout)
        except ValueError:
            raise ConfigError(f"LINEEDIT_KEY_SEQ_TIMEOUT must be an integer, got {timeout!r}") from None
    return overrides


def load_config(path: str | os.PathLike[str] | None = None) -> EditorConfig:
    """Load settings from *path* (or the default location) plus env overrides.

    A missing file gives the defaults.  A file that cannot be read or is
    not a JSON object is logged and ignored.  Invalid values raise
    :class:`ConfigError`.
    """
    config_path = Path(path) if path is not None else get_config_path()
    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            loaded = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Error reading config %s: %s", config_path, e)
        else:
            if isinstance(loaded, dict):
                data = loaded
            else:
                logger.warning("Config %s is not a JSON object, ignoring it", config_path)
    data.update(_env_overrides())
    return config_from_dict(data)


def save_config(config: EditorConfig, path: str | os.PathLike[str] | None = None) -> None:
    config_path = Path(path) if path is not None else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config_to_dict(config), indent=2), encoding="utf-8")
