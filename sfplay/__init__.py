"""sfplay - General MIDI file player routing events onto sample banks."""

from sfplay.cache import InstrumentCache
from sfplay.models import LoadedInstrument, TransportState, NUM_CHANNELS
from sfplay.programs import DEFAULT_IDENTITY, identity_for
from sfplay.router import MidiRouter
from sfplay.session import PlaybackSession

__all__ = [
    "DEFAULT_IDENTITY",
    "InstrumentCache",
    "LoadedInstrument",
    "MidiRouter",
    "NUM_CHANNELS",
    "PlaybackSession",
    "TransportState",
    "identity_for",
]
