"""Exception hierarchy for sfplay."""

from __future__ import annotations


class SfplayError(Exception):
    """Base class for all sfplay errors."""


class InstrumentLoadError(SfplayError):
    """The default instrument could not be loaded; nothing can sound."""

    def __init__(self, identity: str, message: str = ""):
        self.identity = identity
        super().__init__(message or f"could not load instrument '{identity}'")


class InstrumentNotFoundError(SfplayError, FileNotFoundError):
    """A sample bank has no samples for the requested instrument."""


class InvalidMidiFileError(SfplayError, ValueError):
    """The file is not a readable .mid/.midi file."""


class TransportError(SfplayError):
    """A transport command was issued in a state that does not allow it."""
