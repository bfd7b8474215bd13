"""Audio output device lifecycle (sounddevice stream around a SamplePlayer)."""

from __future__ import annotations

import logging

from sfplay.deps import HAS_SOUNDDEVICE, sd
from sfplay.engine import SamplePlayer


logger = logging.getLogger(__name__)


class AudioDevice:
    """Process-wide audio output owned by the playback session.

    The stream is opened lazily: ``init`` creates it suspended, ``resume``
    starts it (initialising first if needed), ``suspend`` pauses output
    and drops sounding voices without releasing the device, and
    ``teardown`` closes it.
    """

    def __init__(self, player: SamplePlayer, output_device=None,
                 buffer_size: int = 512):
        self.player = player
        self.output_device = output_device
        self.buffer_size = buffer_size
        self._stream = None

    @property
    def state(self) -> str:
        if self._stream is None:
            return "closed"
        return "running" if self._stream.active else "suspended"

    def init(self):
        if self._stream is not None:
            return
        if not HAS_SOUNDDEVICE:
            raise RuntimeError("sounddevice not installed")
        self._stream = sd.OutputStream(
            samplerate=self.player.sample_rate,
            blocksize=self.buffer_size,
            channels=self.player.output_channels,
            dtype="float32",
            callback=self.player.callback,
            device=self.output_device,
        )
        logger.info(
            "[Audio] Opened sr=%d buf=%d ch=%d",
            self.player.sample_rate,
            self.buffer_size,
            self.player.output_channels,
        )

    def resume(self):
        self.init()
        if not self._stream.active:
            self._stream.start()
            logger.info("[Audio] Running")

    def suspend(self):
        if self._stream is not None and self._stream.active:
            self._stream.stop()
            self.player.stop_all()
            logger.info("[Audio] Suspended")

    def teardown(self):
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            self.player.stop_all()
            logger.info("[Audio] Closed")
