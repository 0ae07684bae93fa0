"""Key bindings: which editor action each key id triggers.

Emacs mode and Vi insert mode are flat ``key -> action`` maps.  Vi command
mode is parsed key by key in :mod:`lineedit.vi` because its commands take
counts and motions.
"""

from __future__ import annotations

from typing import Literal

from lineedit.config import EditMode
from lineedit.keys import KeyId, normalize_key_id

EditorAction = Literal[
    # Cursor movement
    "cursorLeft",
    "cursorRight",
    "cursorWordLeft",
    "cursorWordRight",
    "cursorLineStart",
    "cursorLineEnd",
    "cursorUp",
    "cursorDown",
    # History
    "historyPrevious",
    "historyNext",
    "historyFirst",
    "historyLast",
    "reverseSearch",
    # Deletion
    "deleteCharBackward",
    "deleteCharForward",
    "deleteCharOrEof",
    # Kill ring
    "killToLineEnd",
    "killToLineStart",
    "killWordBackward",
    "killWordForward",
    "yank",
    "yankPop",
    # Editing
    "transposeChars",
    "upcaseWord",
    "downcaseWord",
    "capitalizeWord",
    "indent",
    "dedent",
    "quotedInsert",
    "newLine",
    "setMark",
    # Undo
    "undo",
    "redo",
    # Completion
    "complete",
    "completeBackward",
    # Session
    "submit",
    "abort",
    "interrupt",
    "clearScreen",
    "viCommandMode",
]

KeybindingsConfig = dict[EditorAction, KeyId | list[KeyId]]

DEFAULT_EMACS_KEYBINDINGS: dict[EditorAction, KeyId | list[KeyId]] = {
    # Cursor movement
    "cursorLeft": ["left", "ctrl+b"],
    "cursorRight": ["right", "ctrl+f"],
    "cursorWordLeft": ["alt+left", "ctrl+left", "alt+b"],
    "cursorWordRight": ["alt+right", "ctrl+right", "alt+f"],
    "cursorLineStart": ["home", "ctrl+a"],
    "cursorLineEnd": ["end", "ctrl+e"],
    "cursorUp": ["up", "ctrl+p"],
    "cursorDown": ["down", "ctrl+n"],
    # History
    "historyPrevious": "pageUp",
    "historyNext": "pageDown",
    "historyFirst": "alt+<",
    "historyLast": "alt+>",
    "reverseSearch": "ctrl+r",
    # Deletion
    "deleteCharBackward": ["backspace", "ctrl+h"],
    "deleteCharForward": "delete",
    "deleteCharOrEof": "ctrl+d",
    # Kill ring
    "killToLineEnd": "ctrl+k",
    "killToLineStart": "ctrl+u",
    "killWordBackward": ["ctrl+w", "alt+backspace"],
    "killWordForward": ["alt+d", "alt+delete"],
    "yank": "ctrl+y",
    "yankPop": "alt+y",
    # Editing
    "transposeChars": "ctrl+t",
    "upcaseWord": "alt+u",
    "downcaseWord": "alt+l",
    "capitalizeWord": "alt+c",
    "indent": "alt+}",
    "dedent": "alt+{",
    "quotedInsert": "ctrl+v",
    "newLine": ["alt+enter", "shift+enter"],
    "setMark": "ctrl+space",
    # Undo
    "undo": ["ctrl+_", "ctrl+x ctrl+u"],
    "redo": "alt+_",
    # Completion
    "complete": "tab",
    "completeBackward": "shift+tab",
    # Session
    "submit": ["enter", "ctrl+j"],
    "abort": "ctrl+g",
    "interrupt": "ctrl+c",
    "clearScreen": "ctrl+l",
}

_VI_INSERT_OVERRIDES: dict[EditorAction, KeyId | list[KeyId]] = {
    "cursorWordLeft": "ctrl+left",
    "cursorWordRight": "ctrl+right",
    "killWordBackward": "ctrl+w",
    "viCommandMode": "escape",
}

# Emacs actions that only make sense through meta keys
_META_ONLY: frozenset[str] = frozenset(
    {
        "historyFirst",
        "historyLast",
        "killWordForward",
        "yankPop",
        "upcaseWord",
        "downcaseWord",
        "capitalizeWord",
        "indent",
        "dedent",
        "redo",
        "setMark",
    }
)


def _vi_insert_defaults() -> dict[EditorAction, KeyId | list[KeyId]]:
    bindings = {action: keys for action, keys in DEFAULT_EMACS_KEYBINDINGS.items() if action not in _META_ONLY}
    bindings.update(_VI_INSERT_OVERRIDES)
    return bindings


DEFAULT_VI_INSERT_KEYBINDINGS = _vi_insert_defaults()


class KeybindingsManager:
    """Resolves key ids to actions for one edit mode.

    User overrides replace the default keys of an action.  A binding may be
    a two-key chord written with a space (``"ctrl+x ctrl+u"``); the first
    key is then reported by :meth:`is_prefix`.
    """

    def __init__(self, edit_mode: EditMode = EditMode.EMACS, config: KeybindingsConfig | None = None) -> None:
        self._edit_mode = edit_mode
        self._config: KeybindingsConfig = dict(config or {})
        self._action_to_keys: dict[EditorAction, list[KeyId]] = {}
        self._key_to_action: dict[str, EditorAction] = {}
        self._prefixes: set[str] = set()
        self._build_maps()

    @property
    def edit_mode(self) -> EditMode:
        return self._edit_mode

    def set_edit_mode(self, edit_mode: EditMode) -> None:
        self._edit_mode = edit_mode
        self._build_maps()

    def set_config(self, config: KeybindingsConfig) -> None:
        self._config = dict(config)
        self._build_maps()

    def _build_maps(self) -> None:
        defaults = DEFAULT_EMACS_KEYBINDINGS if self._edit_mode is EditMode.EMACS else DEFAULT_VI_INSERT_KEYBINDINGS
        self._action_to_keys.clear()
        for action, keys in list(defaults.items()) + list(self._config.items()):
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = [_normalize_chord(k) for k in key_array]

        self._key_to_action.clear()
        self._prefixes.clear()
        for action, keys in self._action_to_keys.items():
            for key in keys:
                self._key_to_action[key] = action
                if " " in key:
                    self._prefixes.add(key.split(" ", 1)[0])

    def get_keys(self, action: EditorAction) -> list[KeyId]:
        return self._action_to_keys.get(action, [])

    def is_prefix(self, key: KeyId) -> bool:
        return key in self._prefixes

    def resolve(self, key: KeyId, prefix: KeyId | None = None) -> EditorAction | None:
        """Action bound to *key* (after the chord *prefix*, if any)."""
        chord = f"{prefix} {key}" if prefix else key
        return self._key_to_action.get(chord)


def _normalize_chord(keys: str) -> str:
    return " ".join(normalize_key_id(k) for k in keys.split(" ") if k)
