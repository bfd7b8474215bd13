"""Per-channel instrument assignment (16 MIDI channels)."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sfplay.models import ChannelState, NUM_CHANNELS, PERCUSSION_CHANNEL
from sfplay.programs import DEFAULT_IDENTITY, identity_for


logger = logging.getLogger(__name__)


class ChannelTable:
    """Holds the instrument identity currently assigned to each channel.

    ``preload`` is called with the new identity after every program change
    and must not block. ``percussion_identity`` pins channel 10 (index 9) to
    a fixed bank and makes it ignore program changes; by default every
    channel follows the GM table.
    """

    def __init__(self, preload: Optional[Callable[[str], object]] = None,
                 percussion_identity: Optional[str] = None):
        self._preload = preload
        self.percussion_identity = percussion_identity
        self._assigned: dict[int, str] = {}
        self.initialize()

    def initialize(self):
        self._assigned = {ch: DEFAULT_IDENTITY for ch in range(NUM_CHANNELS)}
        if self.percussion_identity:
            self._assigned[PERCUSSION_CHANNEL] = self.percussion_identity

    def on_program_change(self, channel: int, program) -> Optional[str]:
        if not 0 <= channel < NUM_CHANNELS:
            logger.debug("program change on invalid channel %s ignored", channel)
            return None
        if self.percussion_identity and channel == PERCUSSION_CHANNEL:
            logger.debug("ch %d pinned to %s; program %s ignored",
                         channel + 1, self.percussion_identity, program)
            return None

        identity = identity_for(program)
        prev = self._assigned.get(channel)
        self._assigned[channel] = identity
        if prev != identity:
            logger.info("ch %d: %s -> %s", channel + 1, prev, identity)
        if self._preload is not None:
            self._preload(identity)
        return identity

    def instrument_for(self, channel: int) -> str:
        return self._assigned.get(channel, DEFAULT_IDENTITY)

    def snapshot(self) -> list[ChannelState]:
        return [ChannelState(ch, self.instrument_for(ch)) for ch in range(NUM_CHANNELS)]
