"""Polyphonic sample player (the sounddevice output callback target)."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from sfplay.deps import HAS_PEDALBOARD, Pedalboard, np
from sfplay.models import LoadedInstrument


logger = logging.getLogger(__name__)

_voice_ids = itertools.count(1)


@dataclass(eq=False)
class Voice:
    """One triggered sample; the handle returned by ``SamplePlayer.trigger``."""

    identity: str
    pitch: int
    gain: float
    data: np.ndarray = field(repr=False)  # (frames, output_channels)
    start_frame: int = 0
    pos: int = 0
    release_level: Optional[float] = None  # set once stopped; fades to 0
    done: bool = False
    id: int = field(default_factory=lambda: next(_voice_ids))

    @property
    def releasing(self) -> bool:
        return self.release_level is not None


class SamplePlayer:
    """
    Mixes triggered voices into a stereo output block.

    Per render call:
      1. Start voices whose start time falls inside the block
      2. Apply gain and, for stopped voices, the release fade
      3. Apply master effects chain
      4. Apply master gain and clip
    """

    def __init__(self, sample_rate: int = 44100, output_channels: int = 2,
                 release: float = 0.2, max_voices: int = 128):
        self.sample_rate = sample_rate
        self.output_channels = output_channels
        self.release = release
        self.max_voices = max_voices

        self.master_effects: list = []  # pedalboard plugin instances
        self.master_gain: float = 1.0

        self._voices: list[Voice] = []
        self._frame = 0
        self._pitched: dict[tuple[str, int], np.ndarray] = {}
        self._lock = threading.Lock()

    # -- clock ---------------------------------------------------------------

    @property
    def current_time(self) -> float:
        """Seconds of audio rendered so far."""
        return self._frame / self.sample_rate

    @property
    def active_voices(self) -> int:
        with self._lock:
            return sum(1 for v in self._voices if not v.done)

    # -- samples -------------------------------------------------------------

    def _sample_for(self, instrument: LoadedInstrument, pitch: int) -> np.ndarray:
        key = (instrument.identity, pitch)
        cached = self._pitched.get(key)
        if cached is not None:
            return cached

        if not instrument.samples:
            raise ValueError(f"instrument '{instrument.identity}' has no samples")
        source_pitch = min(instrument.samples, key=lambda p: (abs(p - pitch), p))
        data = np.asarray(instrument.samples[source_pitch], dtype=np.float32)
        if data.ndim == 1:
            data = data[:, None]

        rate = 2.0 ** ((pitch - source_pitch) / 12.0)
        rate *= instrument.sample_rate / self.sample_rate
        if abs(rate - 1.0) > 1e-6 and len(data) > 1:
            positions = np.arange(0.0, len(data) - 1, rate)
            src = np.arange(len(data))
            data = np.column_stack([
                np.interp(positions, src, data[:, c]) for c in range(data.shape[1])
            ]).astype(np.float32)

        # match the output channel layout
        if data.shape[1] == 1 and self.output_channels == 2:
            data = np.column_stack([data, data])
        elif data.shape[1] > self.output_channels:
            data = data[:, :self.output_channels]

        self._pitched[key] = data
        return data

    # -- trigger / stop ------------------------------------------------------

    def trigger(self, instrument: LoadedInstrument, pitch: int, gain: float,
                start_time: Optional[float] = None) -> Voice:
        data = self._sample_for(instrument, pitch)
        start = self.current_time if start_time is None else start_time
        voice = Voice(
            identity=instrument.identity,
            pitch=pitch,
            gain=float(gain),
            data=data,
            start_frame=int(round(start * self.sample_rate)),
        )
        with self._lock:
            live = [v for v in self._voices if not v.done]
            if len(live) >= self.max_voices:
                # steal the oldest voice
                live[0].done = True
                logger.debug("[Audio] voice limit reached; dropped %s", live[0].identity)
            live.append(voice)
            self._voices = live
        return voice

    def stop(self, voice: Voice):
        with self._lock:
            if voice.done or voice.releasing:
                return
            if self.release <= 0:
                voice.done = True
            else:
                voice.release_level = 1.0

    def stop_all(self):
        with self._lock:
            for v in self._voices:
                v.done = True
            self._voices = []

    # -- rendering -----------------------------------------------------------

    def render(self, frames: int) -> np.ndarray:
        """Render the next ``frames`` frames as a (frames, channels) block."""
        mixed = np.zeros((frames, self.output_channels), dtype=np.float32)
        block_start = self._frame
        release_step = 1.0 / max(1, int(self.release * self.sample_rate))

        with self._lock:
            for v in self._voices:
                if v.done:
                    continue
                offset = max(0, v.start_frame - block_start)
                if offset >= frames:
                    continue
                chunk = v.data[v.pos:v.pos + frames - offset]
                n = len(chunk)
                if n:
                    env = np.full(n, v.gain, dtype=np.float32)
                    if v.releasing:
                        levels = v.release_level - release_step * np.arange(1, n + 1)
                        np.clip(levels, 0.0, 1.0, out=levels)
                        env *= levels.astype(np.float32)
                        v.release_level = float(levels[-1])
                        if v.release_level <= 0.0:
                            v.done = True
                    mixed[offset:offset + n] += chunk * env[:, None]
                v.pos += n
                if v.pos >= len(v.data):
                    v.done = True
            self._voices = [v for v in self._voices if not v.done]

        self._frame += frames

        # Master effects
        if self.master_effects and HAS_PEDALBOARD:
            board = Pedalboard(self.master_effects)
            mt = mixed.T.copy()
            mt = board(mt, self.sample_rate, reset=False)
            mixed = mt.T

        mixed *= self.master_gain
        np.clip(mixed, -1.0, 1.0, out=mixed)
        return mixed

    def callback(self, outdata, frames: int, time_info, status):
        if status:
            logger.warning("[Audio] %s", status)
        outdata[:] = self.render(frames)
