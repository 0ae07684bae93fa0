"""lineedit: interactive line editing with history, completion and hints."""

# Configuration
from lineedit.config import (
    Behavior,
    BellStyle,
    ColorMode,
    CompletionType,
    EditMode,
    EditorConfig,
    HistoryDuplicates,
    load_config,
    save_config,
)

# Completion
from lineedit.completion import (
    CompletionCandidate,
    Completer,
    FilenameCompleter,
    WordCompleter,
)

# Editor
from lineedit.editor import Editor, EditorState, ViMode

# Errors and results
from lineedit.errors import (
    ConfigError,
    EditorDisposedError,
    Err,
    ErrorKind,
    HistoryError,
    HistoryIoError,
    HistoryParseError,
    Ok,
    ReadLineError,
    ReadLineResult,
    ReentrantCallError,
)

# Highlighting
from lineedit.highlight import CmdKind, Highlighter, PasswordHighlighter, SimpleHighlighter

# Hints
from lineedit.hint import Hinter, HistoryHinter

# History
from lineedit.history import History

# Keys and bindings
from lineedit.keymap import (
    DEFAULT_EMACS_KEYBINDINGS,
    DEFAULT_VI_INSERT_KEYBINDINGS,
    EditorAction,
    KeybindingsConfig,
)
from lineedit.keys import Key, KeyEvent

# Terminal
from lineedit.terminal import PosixTerminal, Terminal

# Validation
from lineedit.validate import MatchingBracketValidator, Validation, ValidationResult, Validator

__all__ = [
    # Configuration
    "Behavior",
    "BellStyle",
    "ColorMode",
    "CompletionType",
    "EditMode",
    "EditorConfig",
    "HistoryDuplicates",
    "load_config",
    "save_config",
    # Completion
    "CompletionCandidate",
    "Completer",
    "FilenameCompleter",
    "WordCompleter",
    # Editor
    "Editor",
    "EditorState",
    "ViMode",
    # Errors and results
    "ConfigError",
    "EditorDisposedError",
    "Err",
    "ErrorKind",
    "HistoryError",
    "HistoryIoError",
    "HistoryParseError",
    "Ok",
    "ReadLineError",
    "ReadLineResult",
    "ReentrantCallError",
    # Highlighting
    "CmdKind",
    "Highlighter",
    "PasswordHighlighter",
    "SimpleHighlighter",
    # Hints
    "Hinter",
    "HistoryHinter",
    # History
    "History",
    # Keys and bindings
    "DEFAULT_EMACS_KEYBINDINGS",
    "DEFAULT_VI_INSERT_KEYBINDINGS",
    "EditorAction",
    "Key",
    "KeyEvent",
    "KeybindingsConfig",
    # Terminal
    "PosixTerminal",
    "Terminal",
    # Validation
    "MatchingBracketValidator",
    "Validation",
    "ValidationResult",
    "Validator",
]
