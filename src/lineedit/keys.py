"""Key identifiers and the terminal escape sequences that produce them.

Keys are named with plain strings such as ``"a"``, ``"ctrl+a"``,
``"alt+b"``, ``"shift+up"`` or ``"f5"``.  Modifiers always appear in the
order ``ctrl+shift+alt+``.  :func:`normalize_key_id` turns user-written
names (``"C-a"``, ``"Ctrl+A"``, ``"M-b"``, ``"Esc"``) into that form.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyId = str

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

# ---------------------------------------------------------------------------
# Key helper object
# ---------------------------------------------------------------------------


class Key:
    """Named key constants and modifier combinators."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    # Pseudo keys produced by the decoder
    paste = "paste"
    unknown = "unknown"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def shift(key: str) -> str:
        return f"shift+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"


@dataclass(frozen=True)
class KeyEvent:
    """One logical key press.

    ``text`` holds the characters a printable key inserts, the whole
    payload of a bracketed paste, or the raw bytes of an unrecognized
    escape sequence.
    """

    key: KeyId
    text: str = ""

    @property
    def is_printable(self) -> bool:
        return bool(self.text) and self.key not in (Key.paste, Key.unknown) and self.text.isprintable()


# ---------------------------------------------------------------------------
# Escape sequence tables
# ---------------------------------------------------------------------------

# Unmodified legacy sequences (xterm, vt220, rxvt)
LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[4~": "end",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1bOP": "f1",
    "\x1bOQ": "f2",
    "\x1bOR": "f3",
    "\x1bOS": "f4",
    "\x1b[11~": "f1",
    "\x1b[12~": "f2",
    "\x1b[13~": "f3",
    "\x1b[14~": "f4",
    "\x1b[15~": "f5",
    "\x1b[17~": "f6",
    "\x1b[18~": "f7",
    "\x1b[19~": "f8",
    "\x1b[20~": "f9",
    "\x1b[21~": "f10",
    "\x1b[23~": "f11",
    "\x1b[24~": "f12",
    "\x1b[Z": "shift+tab",
    BRACKETED_PASTE_START: "paste-start",
}

# Final letters of ``CSI 1;<mod> <letter>`` and tilde codes of ``CSI <n>;<mod> ~``
_CSI_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

_CSI_TILDE_KEYS: dict[int, str] = {
    2: "insert",
    3: "delete",
    5: "pageUp",
    6: "pageDown",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}

# xterm modifier parameter -> key id prefix
MODIFIER_PREFIXES: dict[int, str] = {
    2: "shift+",
    3: "alt+",
    4: "shift+alt+",
    5: "ctrl+",
    6: "ctrl+shift+",
    7: "ctrl+alt+",
    8: "ctrl+shift+alt+",
}


def _modified_sequences() -> dict[str, str]:
    table: dict[str, str] = {}
    for mod, prefix in MODIFIER_PREFIXES.items():
        for letter, name in _CSI_LETTER_KEYS.items():
            table[f"\x1b[1;{mod}{letter}"] = prefix + name
        for code, name in _CSI_TILDE_KEYS.items():
            table[f"\x1b[{code};{mod}~"] = prefix + name
        for letter in "PQRS":
            table[f"\x1bO{mod}{letter}"] = prefix + _CSI_LETTER_KEYS[letter]
    return table


def build_sequence_table() -> dict[str, str]:
    """Return every known escape sequence mapped to its key id."""
    table = dict(LEGACY_KEY_SEQUENCES)
    table.update(_modified_sequences())
    return table


_SEQUENCES = build_sequence_table()


# ---------------------------------------------------------------------------
# Single character keys
# ---------------------------------------------------------------------------

_CTRL_SYMBOLS: dict[str, str] = {
    "\x00": "ctrl+space",
    "\x1c": "ctrl+\\",
    "\x1d": "ctrl+]",
    "\x1e": "ctrl+^",
    "\x1f": "ctrl+_",
}


def char_key(ch: str) -> KeyId:
    """Key id for a single character received outside an escape sequence."""
    if ch == "\r" or ch == "\n":
        return "enter"
    if ch == "\t":
        return "tab"
    if ch == "\x7f" or ch == "\x08":
        return "backspace"
    if ch == " ":
        return "space"
    if ch == ESC:
        return "escape"
    if ch in _CTRL_SYMBOLS:
        return _CTRL_SYMBOLS[ch]
    if 1 <= ord(ch) <= 26:
        return "ctrl+" + chr(ord(ch) + ord("a") - 1)
    return ch


def meta_key(ch: str) -> KeyId:
    """Key id for ``ESC`` followed by *ch* (the Alt/Meta convention)."""
    if ch == ESC:
        return "alt+escape"
    if ch == "\r" or ch == "\n":
        return "alt+enter"
    if ch == "\t":
        return "alt+tab"
    if ch == " ":
        return "alt+space"
    if ch == "\x7f" or ch == "\x08":
        return "alt+backspace"
    if 1 <= ord(ch) <= 26:
        return "ctrl+alt+" + chr(ord(ch) + ord("a") - 1)
    if ch.isupper():
        return "shift+alt+" + ch.lower()
    return "alt+" + ch


def char_event(ch: str) -> KeyEvent:
    key = char_key(ch)
    text = ch if (ch == " " or key == ch) else ""
    return KeyEvent(key, text)


def parse_key(data: str) -> KeyId | None:
    """Return the key id for one complete chunk of input, or ``None``."""
    if not data:
        return None
    if data in _SEQUENCES:
        return _SEQUENCES[data]
    if len(data) == 1:
        return char_key(data)
    if len(data) == 2 and data[0] == ESC:
        return meta_key(data[1])
    return None


# ---------------------------------------------------------------------------
# Key id normalization
# ---------------------------------------------------------------------------

_MODIFIER_ALIASES: dict[str, str] = {
    "c": "ctrl",
    "ctrl": "ctrl",
    "control": "ctrl",
    "shift": "shift",
    "m": "alt",
    "meta": "alt",
    "alt": "alt",
    "option": "alt",
}

_KEY_ALIASES: dict[str, str] = {
    "esc": "escape",
    "return": "enter",
    "ret": "enter",
    "del": "delete",
    "bs": "backspace",
    "pgup": "pageUp",
    "pageup": "pageUp",
    "pgdn": "pageDown",
    "pagedown": "pageDown",
    "spc": "space",
}

_MODIFIER_ORDER = ("ctrl", "shift", "alt")


def normalize_key_id(key_id: str) -> KeyId:
    """Canonicalize a user-written key name.

    Accepts ``+`` or ``-`` separators and Emacs-style prefixes, so
    ``"C-x"``, ``"Ctrl+X"`` and ``"ctrl+x"`` all become ``"ctrl+x"``.
    A single character is returned untouched, including ``"-"`` and ``"+"``.
    """
    if len(key_id) <= 1:
        return key_id

    parts: list[str] = []
    rest = key_id
    while True:
        for sep in ("+", "-"):
            head, found, tail = rest.partition(sep)
            if found and tail and head.lower() in _MODIFIER_ALIASES:
                parts.append(_MODIFIER_ALIASES[head.lower()])
                rest = tail
                break
        else:
            break

    base = rest
    if len(base) > 1:
        lowered = base.lower()
        base = _KEY_ALIASES.get(lowered, lowered)
    elif "ctrl" in parts or "alt" in parts:
        if "alt" in parts and base.isupper():
            parts.append("shift")
        base = base.lower()

    mods = [m for m in _MODIFIER_ORDER if m in parts]
    return "".join(m + "+" for m in mods) + base
