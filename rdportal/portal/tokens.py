"""Handle tokens and parent-window identifiers"""

from __future__ import annotations

import random
import re
import string
from dataclasses import dataclass

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
_TOKEN_PREFIX = "rdportal_"
_TOKEN_RANDOM_LENGTH = 10
_random = random.SystemRandom()


@dataclass(frozen=True)
class HandleToken:
    """
    Name for a request or session-to-be.

    The portal uses it as the last element of the request or session object
    path, so it must be a valid object-path element: ASCII letters, digits
    and underscores only.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _TOKEN_PATTERN.match(self.value):
            raise ValueError(f"Invalid handle token: {self.value!r}")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def generate(cls) -> "HandleToken":
        """Return a fresh random token with the rdportal prefix."""
        alphabet = string.ascii_letters + string.digits
        suffix = "".join(_random.choice(alphabet) for _ in range(_TOKEN_RANDOM_LENGTH))
        return cls(_TOKEN_PREFIX + suffix)


class TokenRegistry:
    """Tracks tokens naming operations that are still pending on one connection."""

    def __init__(self) -> None:
        self._in_use: set[str] = set()

    def token_acquire(self, token: HandleToken | None) -> HandleToken:
        """
        Reserve a token, generating one when none is given.

        Args:
            token: Caller-supplied token, or None.

        Returns:
            The reserved token.

        Raises:
            ValueError: If the caller-supplied token is already reserved.
        """
        if token is None:
            token = HandleToken.generate()
            while token.value in self._in_use:
                token = HandleToken.generate()
        elif token.value in self._in_use:
            raise ValueError(f"Handle token {token.value!r} is already in use")
        self._in_use.add(token.value)
        return token

    def token_release(self, token: HandleToken) -> None:
        self._in_use.discard(token.value)

    def inUse_check(self, token: HandleToken) -> bool:
        return token.value in self._in_use


@dataclass(frozen=True)
class WindowIdentifier:
    """
    Parent window handle passed to dialogs the portal shows.

    The empty identifier means "no parent window".
    """

    value: str = ""

    def __post_init__(self) -> None:
        if self.value and not (self.value.startswith("x11:") or self.value.startswith("wayland:")):
            raise ValueError(f"Invalid window identifier: {self.value!r}")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def fromX11_create(cls, xid: int) -> "WindowIdentifier":
        """Build an identifier from an X11 window id."""
        return cls(f"x11:{xid:x}")

    @classmethod
    def fromWayland_create(cls, handle: str) -> "WindowIdentifier":
        """Build an identifier from an exported xdg-foreign handle."""
        if not handle:
            raise ValueError("Wayland handle must not be empty")
        return cls(f"wayland:{handle}")
