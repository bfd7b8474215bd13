"""Timed MIDI events and the mido-backed stream reader.

Each event kind is a frozen dataclass with a closed set of fields. ``tick``
is the absolute tick in the merged stream and ``time`` the absolute position
in seconds with tempo changes applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from sfplay.deps import HAS_MIDO, mido
from sfplay.errors import InvalidMidiFileError

MIDI_EXTENSIONS = (".mid", ".midi")
DEFAULT_TEMPO = 500_000  # microseconds per beat (120 BPM)


@dataclass(frozen=True)
class NoteOn:
    channel: int
    pitch: int
    velocity: int
    tick: int = 0
    time: float = 0.0


@dataclass(frozen=True)
class NoteOff:
    channel: int
    pitch: int
    velocity: int = 0
    tick: int = 0
    time: float = 0.0


@dataclass(frozen=True)
class ProgramChange:
    channel: int
    program: int
    tick: int = 0
    time: float = 0.0


@dataclass(frozen=True)
class ControlChange:
    channel: int
    control: int
    value: int
    tick: int = 0
    time: float = 0.0


@dataclass(frozen=True)
class PitchBend:
    channel: int
    value: int  # -8192..8191
    tick: int = 0
    time: float = 0.0


@dataclass(frozen=True)
class SetTempo:
    tempo: int  # microseconds per beat
    tick: int = 0
    time: float = 0.0

    @property
    def bpm(self) -> float:
        return 60_000_000 / self.tempo


@dataclass(frozen=True)
class EndOfStream:
    tick: int = 0
    time: float = 0.0


@dataclass(frozen=True)
class OtherEvent:
    """Any message the router has no use for (sysex, text, aftertouch...)."""

    kind: str
    tick: int = 0
    time: float = 0.0


MidiEvent = Union[NoteOn, NoteOff, ProgramChange, ControlChange, PitchBend,
                  SetTempo, EndOfStream, OtherEvent]


def event_from_message(msg, tick: int = 0, time: float = 0.0) -> MidiEvent:
    """Convert a ``mido.Message`` or ``mido.MetaMessage`` to a MidiEvent."""
    kind = msg.type
    if kind == "note_on":
        return NoteOn(msg.channel, msg.note, msg.velocity, tick, time)
    if kind == "note_off":
        return NoteOff(msg.channel, msg.note, msg.velocity, tick, time)
    if kind == "program_change":
        return ProgramChange(msg.channel, msg.program, tick, time)
    if kind == "control_change":
        return ControlChange(msg.channel, msg.control, msg.value, tick, time)
    if kind == "pitchwheel":
        return PitchBend(msg.channel, msg.pitch, tick, time)
    if kind == "set_tempo":
        return SetTempo(msg.tempo, tick, time)
    if kind == "end_of_track":
        return EndOfStream(tick, time)
    return OtherEvent(kind, tick, time)


def validate_midi_path(path) -> Path:
    """Check that ``path`` names an existing .mid/.midi file."""
    p = Path(path).expanduser()
    if p.suffix.lower() not in MIDI_EXTENSIONS:
        raise InvalidMidiFileError(f'Invalid file type: "{p.suffix or p.name}".')
    if not p.is_file():
        raise InvalidMidiFileError(f"no such file: {p}")
    return p


def events_from_midifile(mid) -> list[MidiEvent]:
    """Flatten a ``mido.MidiFile`` into one time-ordered event list.

    Track end markers are dropped and a single EndOfStream closes the list.
    """
    events: list[MidiEvent] = []
    tempo = DEFAULT_TEMPO
    tick = 0
    seconds = 0.0
    for msg in mido.merge_tracks(mid.tracks):
        if msg.time:
            tick += msg.time
            seconds += mido.tick2second(msg.time, mid.ticks_per_beat, tempo)
        if msg.type == "end_of_track":
            continue
        if msg.type == "set_tempo":
            tempo = msg.tempo
        events.append(event_from_message(msg, tick, seconds))
    events.append(EndOfStream(tick, seconds))
    return events


def read_events(path) -> list[MidiEvent]:
    if not HAS_MIDO:
        raise RuntimeError("mido not installed")
    p = validate_midi_path(path)
    try:
        mid = mido.MidiFile(str(p))
    except (OSError, EOFError, KeyError, ValueError) as exc:
        raise InvalidMidiFileError(f"Error reading the MIDI file {p.name}: {exc}") from exc
    return events_from_midifile(mid)
