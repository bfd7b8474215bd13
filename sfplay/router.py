"""MIDI output router: dispatches timed events to the sample player.

One router exists per loaded file. It owns that file's channel table and
active-note registry and shares the process-wide instrument cache. The
router never renders audio; it only calls ``player.trigger`` and
``player.stop`` and publishes notifications to its subscribers.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sfplay.cache import InstrumentCache
from sfplay.channels import ChannelTable
from sfplay.errors import InstrumentLoadError
from sfplay.events import (
    ControlChange,
    EndOfStream,
    MidiEvent,
    NoteOff,
    NoteOn,
    PitchBend,
    ProgramChange,
)
from sfplay.models import (
    LoadFailed,
    MAX_VELOCITY,
    NUM_CHANNELS,
    NUM_PITCHES,
    PlaybackEnded,
    TriggerFailed,
)
from sfplay.notes import ActiveNoteRegistry


logger = logging.getLogger(__name__)


def velocity_to_gain(velocity: int) -> float:
    """Map MIDI velocity 1-127 linearly onto a gain in (0, 1]."""
    return velocity / MAX_VELOCITY


class MidiRouter:
    """Routes one file's event stream onto the shared instrument bank.

    ``handle`` must be awaited once per event, in stream order. Only
    instrument loading suspends, and a note-on reads its channel's
    instrument before that suspension, so a later program change can never
    leak into an earlier note.
    """

    def __init__(self, cache: InstrumentCache, player,
                 percussion_identity: Optional[str] = None,
                 clock: Optional[Callable[[], float]] = None):
        self._cache = cache
        self._player = player
        self._clock = clock or (lambda: player.current_time)
        self.channels = ChannelTable(preload=cache.preload,
                                     percussion_identity=percussion_identity)
        self.notes = ActiveNoteRegistry(player.stop)
        self._listeners: list[Callable] = []
        self._reported_fallbacks: set[str] = set()
        self._closed = False
        self._failed = False

    # -- notifications -------------------------------------------------------

    def subscribe(self, callback: Callable):
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, notification):
        for callback in list(self._listeners):
            try:
                callback(notification)
            except Exception:
                logger.exception("notification listener failed on %s", notification)

    # -- state ---------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def failed(self) -> bool:
        """True once the default instrument failed; no note can sound."""
        return self._failed

    # -- dispatch ------------------------------------------------------------

    async def handle(self, event: MidiEvent):
        if self._closed:
            return
        match event:
            case NoteOn(velocity=0):
                self._note_off(event.channel, event.pitch)
            case NoteOn():
                await self._note_on(event)
            case NoteOff():
                self._note_off(event.channel, event.pitch)
            case ProgramChange():
                self.channels.on_program_change(event.channel, event.program)
            case EndOfStream():
                logger.debug("end of stream at tick %d", event.tick)
                self._notify(PlaybackEnded())
            case PitchBend():
                self.on_pitch_bend(event.channel, event.value)
            case ControlChange():
                self.on_control_change(event.channel, event.control, event.value)
            case _:
                pass

    # Extension points; pitch bend and controllers have no default effect.

    def on_pitch_bend(self, channel: int, value: int):
        pass

    def on_control_change(self, channel: int, control: int, value: int):
        pass

    # -- notes ---------------------------------------------------------------

    @staticmethod
    def _valid_note(channel, pitch) -> bool:
        return 0 <= channel < NUM_CHANNELS and 0 <= pitch < NUM_PITCHES

    def _valid_note_on(self, event: NoteOn) -> bool:
        return (self._valid_note(event.channel, event.pitch)
                and 0 < event.velocity <= MAX_VELOCITY)

    async def _note_on(self, event: NoteOn):
        if self._failed:
            return
        if not self._valid_note_on(event):
            logger.debug("ignoring out-of-range note %s", event)
            return

        identity = self.channels.instrument_for(event.channel)
        try:
            instrument = await self._cache.acquire(identity)
        except InstrumentLoadError as exc:
            self._failed = True
            self._notify(LoadFailed(identity, fatal=True, error=str(exc)))
            raise

        if self._closed:
            logger.debug("router closed while loading %s; note %d dropped",
                         identity, event.pitch)
            return

        if instrument.identity != identity and identity not in self._reported_fallbacks:
            self._reported_fallbacks.add(identity)
            self._notify(LoadFailed(identity, fallback=instrument.identity))

        gain = velocity_to_gain(event.velocity)
        try:
            handle = self._player.trigger(instrument, event.pitch, gain, self._clock())
        except Exception as exc:
            logger.warning("trigger failed for %s pitch %d on ch %d: %s",
                           instrument.identity, event.pitch, event.channel + 1, exc)
            self._notify(TriggerFailed(event.channel, event.pitch,
                                       instrument.identity, str(exc)))
            return
        self.notes.note_on(event.channel, event.pitch, handle)

    def _note_off(self, channel: int, pitch: int):
        if not self._valid_note(channel, pitch):
            return
        self.notes.note_off(channel, pitch)

    # -- lifecycle -----------------------------------------------------------

    def stop_all(self) -> int:
        return self.notes.stop_all()

    def rewind(self):
        """Silence everything and reset channels for a replay from the start."""
        self.stop_all()
        self.channels.initialize()

    def close(self):
        """Tear down: no note triggered after this point, loads or not."""
        self._closed = True
        stopped = self.stop_all()
        logger.debug("router closed (%d notes stopped)", stopped)
