"""Shared data models and constants."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional

NUM_CHANNELS = 16
NUM_PROGRAMS = 128
NUM_PITCHES = 128
PERCUSSION_CHANNEL = 9  # channel 10 in 1-based MIDI terms
MAX_VELOCITY = 127


@dataclass(frozen=True)
class LoadedInstrument:
    """A decoded sample set for one instrument identity.

    ``samples`` maps MIDI pitch -> float32 array shaped (frames, channels).
    ``identity`` is what was actually loaded, so a fallback alias reports the
    default instrument here.
    """

    identity: str
    samples: dict = field(default_factory=dict, compare=False, repr=False)
    sample_rate: int = 44100

    @property
    def pitches(self) -> list[int]:
        return sorted(self.samples)


@dataclass(frozen=True)
class ChannelState:
    channel: int
    instrument: str


@dataclass(frozen=True)
class ActiveNote:
    """A sounding note and the engine handle needed to silence it."""

    channel: int
    pitch: int
    handle: Any


class TransportState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


# -- router notifications ----------------------------------------------------

@dataclass(frozen=True)
class PlaybackEnded:
    """The event stream reached its end marker."""


@dataclass(frozen=True)
class LoadFailed:
    identity: str
    fallback: Optional[str] = None
    fatal: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class TriggerFailed:
    channel: int
    pitch: int
    identity: str
    error: str
