"""Exception hierarchy for the presence hub."""

from __future__ import annotations


class PresenceError(Exception):
    """Base class for errors raised by the hub core."""


class DimensionMismatch(PresenceError, ValueError):
    """Two face descriptors of different lengths were compared or mixed."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"descriptor has {actual} dimensions, expected {expected}"
        )
        self.expected = expected
        self.actual = actual


class Unauthorized(PresenceError):
    """The shared-secret credential was missing or wrong."""


class ProtocolError(PresenceError):
    """An inbound frame could not be decoded into a known message."""
