"""Key and button name resolution: evdev codes and X11 keysyms."""

from __future__ import annotations

from evdev import ecodes
from Xlib import XK

_SPECIAL_KEYSYM_BY_BASE: dict[str, str] = {
    "ENTER": "Return",
    "ESC": "Escape",
    "SPACE": "space",
    "TAB": "Tab",
    "BACKSPACE": "BackSpace",
    "MINUS": "minus",
    "EQUAL": "equal",
    "LEFTBRACE": "bracketleft",
    "RIGHTBRACE": "bracketright",
    "SEMICOLON": "semicolon",
    "APOSTROPHE": "apostrophe",
    "GRAVE": "grave",
    "BACKSLASH": "backslash",
    "COMMA": "comma",
    "DOT": "period",
    "SLASH": "slash",
    "LEFTSHIFT": "Shift_L",
    "RIGHTSHIFT": "Shift_R",
    "LEFTCTRL": "Control_L",
    "RIGHTCTRL": "Control_R",
    "LEFTALT": "Alt_L",
    "RIGHTALT": "Alt_R",
    "LEFTMETA": "Super_L",
    "RIGHTMETA": "Super_R",
    "CAPSLOCK": "Caps_Lock",
    "DELETE": "Delete",
    "INSERT": "Insert",
    "HOME": "Home",
    "END": "End",
    "PAGEUP": "Page_Up",
    "PAGEDOWN": "Page_Down",
    "UP": "Up",
    "DOWN": "Down",
    "LEFT": "Left",
    "RIGHT": "Right",
    "PRINT": "Print",
    "PAUSE": "Pause",
}

_BUTTON_ALIASES: dict[str, str] = {
    "left": "BTN_LEFT",
    "right": "BTN_RIGHT",
    "middle": "BTN_MIDDLE",
    "side": "BTN_SIDE",
    "extra": "BTN_EXTRA",
}


def keysymNameFromKeyBase_get(base: str) -> str | None:
    """
    Map an evdev KEY_* base token to an X11 keysym name.

    Args:
        base: Key name without KEY_ prefix.

    Returns:
        X11 keysym name or None when unsupported.
    """
    if base in _SPECIAL_KEYSYM_BY_BASE:
        return _SPECIAL_KEYSYM_BY_BASE[base]
    if len(base) == 1 and base.isalpha():
        return base.lower()
    if base.isdigit():
        return base
    if base.startswith("F") and base[1:].isdigit():
        return base
    return None


def keycodeFromName_get(name: str) -> int:
    """
    Resolve an evdev keycode from a name such as "ENTER", "KEY_A" or "28".

    Args:
        name: Key name, with or without KEY_ prefix, or a decimal code.

    Returns:
        evdev keycode.

    Raises:
        ValueError: If the name is unknown.
    """
    token = name.strip()
    if token.isdigit():
        return int(token)
    key_name = token.upper()
    if not key_name.startswith("KEY_"):
        key_name = f"KEY_{key_name}"
    code = ecodes.ecodes.get(key_name)
    if not isinstance(code, int):
        raise ValueError(f"Unknown key: {name}")
    return code


def buttonFromName_get(name: str) -> int:
    """
    Resolve an evdev button code from "left", "right", "middle", "BTN_*" or a number.

    Raises:
        ValueError: If the name is unknown.
    """
    token = name.strip()
    if token.isdigit():
        return int(token)
    button_name = _BUTTON_ALIASES.get(token.lower(), token.upper())
    if not button_name.startswith("BTN_"):
        button_name = f"BTN_{button_name}"
    code = ecodes.ecodes.get(button_name)
    if not isinstance(code, int):
        raise ValueError(f"Unknown pointer button: {name}")
    return code


def keysymFromName_get(name: str) -> int:
    """
    Resolve an X11 keysym from a keysym name ("Return", "a") or an
    evdev-style key name ("ENTER", "KEY_A").

    Raises:
        ValueError: If no keysym matches.
    """
    token = name.strip()
    keysym: int = XK.string_to_keysym(token)
    if keysym != 0:
        return keysym

    base = token.upper()
    if base.startswith("KEY_"):
        base = base[4:]
    keysym_name = keysymNameFromKeyBase_get(base)
    if keysym_name is not None:
        keysym = XK.string_to_keysym(keysym_name)
        if keysym != 0:
            return keysym
    raise ValueError(f"Unknown keysym: {name}")
