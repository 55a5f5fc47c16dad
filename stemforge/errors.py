from __future__ import annotations


class StemforgeError(Exception):
    """Base error for the stemforge library."""


class InvalidSpecError(StemforgeError):
    """Raised when a track or ambient payload cannot be parsed or validated."""


class UnknownPresetError(StemforgeError, KeyError):
    """Raised when a named instrument preset does not exist."""
