"""Playback session: transport state machine and real-time event driver.

The session owns the audio device and the shared instrument cache. Each
loaded file gets its own router; replacing or unloading the file closes the
old router so none of its notes outlive the transport.

State machine::

    IDLE --load--> LOADING --> STOPPED --play--> PLAYING --pause--> PAUSED
                      |            ^                |  ^              |
                      +--error-----+ (to IDLE)      |  +-----play-----+
                                   +---stop/end-----+
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from sfplay.cache import InstrumentCache
from sfplay.device import AudioDevice
from sfplay.engine import SamplePlayer
from sfplay.errors import InstrumentLoadError, InvalidMidiFileError, TransportError
from sfplay.events import MidiEvent, read_events, validate_midi_path
from sfplay.models import LoadFailed, PlaybackEnded, TransportState, TriggerFailed
from sfplay.router import MidiRouter


logger = logging.getLogger(__name__)

# C4 then G4 on the default instrument
TEST_PITCHES = (60, 67)


class PlaybackSession:
    def __init__(self, loader, device: Optional[AudioDevice] = None,
                 player: Optional[SamplePlayer] = None,
                 percussion_identity: Optional[str] = None,
                 cache: Optional[InstrumentCache] = None):
        if player is None:
            player = device.player if device is not None else SamplePlayer()
        self.player = player
        self._device = device
        self.cache = cache or InstrumentCache(loader)
        self.percussion_identity = percussion_identity

        self._state = TransportState.IDLE
        self._listeners: list[Callable] = []
        self._router: Optional[MidiRouter] = None
        self._events: list[MidiEvent] = []
        self._task: Optional[asyncio.Task] = None
        self._index = 0
        self._position = 0.0
        self._started = 0.0

        self.file_name: Optional[str] = None
        self.error: Optional[str] = None
        self.load_failures: list[LoadFailed] = []

    # -- properties ----------------------------------------------------------

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def router(self) -> Optional[MidiRouter]:
        return self._router

    @property
    def device(self) -> AudioDevice:
        """The audio device, created on first use."""
        if self._device is None:
            self._device = AudioDevice(self.player)
        return self._device

    @property
    def duration(self) -> float:
        return self._events[-1].time if self._events else 0.0

    @property
    def position(self) -> float:
        if self._state is TransportState.PLAYING:
            return self._elapsed()
        return self._position

    def _elapsed(self) -> float:
        return asyncio.get_running_loop().time() - self._started

    # -- listeners -----------------------------------------------------------

    def add_listener(self, callback: Callable):
        """Receive router notifications and TransportState transitions."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _publish(self, item):
        for callback in list(self._listeners):
            try:
                callback(item)
            except Exception:
                logger.exception("[Session] listener failed on %s", item)

    def _set_state(self, state: TransportState):
        if state is self._state:
            return
        logger.info("[Session] %s -> %s", self._state.value, state.value)
        self._state = state
        self._publish(state)

    def _on_router_notification(self, notification):
        if isinstance(notification, LoadFailed):
            self.load_failures.append(notification)
            if not notification.fatal:
                logger.warning("[Session] %s unavailable; playing %s instead",
                               notification.identity, notification.fallback)
        elif isinstance(notification, TriggerFailed):
            logger.warning("[Session] dropped note %d on ch %d: %s",
                           notification.pitch, notification.channel + 1,
                           notification.error)
        elif isinstance(notification, PlaybackEnded):
            logger.info("[Session] end of %s", self.file_name)
        self._publish(notification)

    # -- loading -------------------------------------------------------------

    async def load(self, path):
        """Load a MIDI file, replacing whatever was loaded before."""
        await self.unload()
        self.error = None
        try:
            p = validate_midi_path(path)
        except InvalidMidiFileError as exc:
            self.error = str(exc)
            raise

        self._set_state(TransportState.LOADING)
        self.file_name = p.name
        try:
            events = await asyncio.to_thread(read_events, p)
        except InvalidMidiFileError as exc:
            self.error = str(exc)
            self.file_name = None
            self._set_state(TransportState.IDLE)
            raise

        self._events = events
        self._index = 0
        self._position = 0.0
        self.load_failures = []
        self._router = MidiRouter(self.cache, self.player,
                                  percussion_identity=self.percussion_identity)
        self._router.subscribe(self._on_router_notification)
        self.cache.preload(self.cache.default_identity)
        logger.info("[Session] Loaded %s (%d events, %.1fs)",
                    self.file_name, len(events), self.duration)
        self._set_state(TransportState.STOPPED)

    async def unload(self):
        await self._cancel_driver()
        if self._router is not None:
            self._router.close()
            self._router.unsubscribe(self._on_router_notification)
            self._router = None
        if self._device is not None:
            self._device.suspend()
        self._events = []
        self._index = 0
        self._position = 0.0
        self.file_name = None
        self._set_state(TransportState.IDLE)

    # -- transport -----------------------------------------------------------

    async def play(self):
        if self._router is None:
            raise TransportError("Please load a MIDI file first.")
        if self._state is TransportState.PLAYING:
            return
        if self._router.failed:
            raise TransportError(self.error or "default instrument unavailable")
        self.device.resume()
        self.error = None
        self._started = asyncio.get_running_loop().time() - self._position
        self._set_state(TransportState.PLAYING)
        self._task = asyncio.ensure_future(self._drive())

    async def pause(self):
        if self._state is not TransportState.PLAYING:
            return
        await self._cancel_driver()
        self._router.stop_all()
        self._set_state(TransportState.PAUSED)

    async def stop(self):
        if self._router is None:
            return
        await self._cancel_driver()
        self._rewind()
        self._set_state(TransportState.STOPPED)

    async def play_test_notes(self, interval: float = 0.8) -> list:
        """Play the test notes on the default instrument to check the audio path.

        Works without a loaded file. Errors are recorded in ``error`` and
        re-raised.
        """
        self.error = None
        try:
            self.device.resume()
            instrument = await self.cache.acquire(self.cache.default_identity)
        except Exception as exc:
            self.error = f"Sound test error: {exc}"
            logger.error("[Session] %s", self.error)
            raise
        voices = []
        for i, pitch in enumerate(TEST_PITCHES):
            if i:
                await asyncio.sleep(interval)
            logger.info("[Session] test note %d on %s", pitch, instrument.identity)
            voices.append(self.player.trigger(instrument, pitch, 1.0,
                                              self.player.current_time))
        return voices

    async def wait_finished(self):
        """Wait until the current play-through ends, stops or is paused."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def close(self):
        """Unload, release the audio device and drop cached instruments."""
        await self.unload()
        if self._device is not None:
            self._device.teardown()
        self.cache.clear()

    # -- driver --------------------------------------------------------------

    def _rewind(self):
        self._router.rewind()
        self._index = 0
        self._position = 0.0

    async def _cancel_driver(self):
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        self._position = self._elapsed()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _drive(self):
        router = self._router
        try:
            while self._index < len(self._events):
                event = self._events[self._index]
                delay = event.time - self._elapsed()
                if delay > 0:
                    await asyncio.sleep(delay)
                await router.handle(event)
                # advanced only once handled, so a pause mid-load replays the event
                self._index += 1
        except InstrumentLoadError as exc:
            self.error = str(exc)
            logger.error("[Session] playback aborted: %s", exc)
        self._task = None
        self._rewind()
        self._set_state(TransportState.STOPPED)
