"""Key and pointer-button name resolution."""

from rdportal.keys.keysym_mapping import (
    buttonFromName_get,
    keycodeFromName_get,
    keysymFromName_get,
)

__all__ = [
    "buttonFromName_get",
    "keycodeFromName_get",
    "keysymFromName_get",
]
