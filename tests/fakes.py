"""Test doubles for the sample bank, sample player and audio device."""

import asyncio
from dataclasses import dataclass

import numpy as np

from sfplay.errors import InstrumentNotFoundError
from sfplay.models import LoadedInstrument


def make_instrument(identity, pitches=(60,)):
    samples = {p: np.full((16, 2), 0.1, dtype=np.float32) for p in pitches}
    return LoadedInstrument(identity=identity, samples=samples)


class AsyncLoader:
    """Coroutine loader that records calls and can fail on demand."""

    def __init__(self, fail=(), delay=0.0):
        self.calls = []
        self.fail = set(fail)
        self.delay = delay

    async def load(self, identity):
        self.calls.append(identity)
        if self.delay:
            await asyncio.sleep(self.delay)
        if identity in self.fail:
            raise InstrumentNotFoundError(f"no samples for '{identity}'")
        return make_instrument(identity)


class SyncLoader:
    """Blocking loader, run by the cache in a worker thread."""

    def __init__(self, fail=()):
        self.calls = []
        self.fail = set(fail)

    def load(self, identity):
        self.calls.append(identity)
        if identity in self.fail:
            raise InstrumentNotFoundError(identity)
        return make_instrument(identity)


@dataclass(eq=False)
class FakeHandle:
    identity: str
    pitch: int
    gain: float
    start_time: float


class FakePlayer:
    def __init__(self, fail_trigger=False):
        self.current_time = 0.0
        self.active_voices = 0
        self.sample_rate = 44100
        self.fail_trigger = fail_trigger
        self.triggers = []
        self.stops = []

    def trigger(self, instrument, pitch, gain, start_time):
        if self.fail_trigger:
            raise RuntimeError("device rejected the call")
        handle = FakeHandle(instrument.identity, pitch, gain, start_time)
        self.triggers.append(handle)
        return handle

    def stop(self, handle):
        self.stops.append(handle)


class FakeDevice:
    def __init__(self, player):
        self.player = player
        self.resumed = 0
        self.torn_down = 0
        self.suspended = 0
        self.state = "closed"

    def resume(self):
        self.resumed += 1
        self.state = "running"

    def suspend(self):
        if self.state == "running":
            self.suspended += 1
            self.state = "suspended"

    def teardown(self):
        self.torn_down += 1
        self.state = "closed"
