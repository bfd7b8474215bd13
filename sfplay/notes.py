"""Registry of currently sounding notes, keyed by (channel, pitch)."""

from __future__ import annotations

import logging
from typing import Any, Callable

from sfplay.models import ActiveNote


logger = logging.getLogger(__name__)


class ActiveNoteRegistry:
    """At most one sounding note per (channel, pitch).

    ``stop`` is the sample engine's stop call; it is invoked for every handle
    the registry lets go of.
    """

    def __init__(self, stop: Callable[[Any], None]):
        self._stop = stop
        self._notes: dict[tuple[int, int], ActiveNote] = {}

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, key) -> bool:
        return key in self._notes

    def active(self) -> list[ActiveNote]:
        return list(self._notes.values())

    def note_on(self, channel: int, pitch: int, handle):
        prev = self._notes.pop((channel, pitch), None)
        if prev is not None:
            logger.debug("retrigger ch %d pitch %d; stopping previous voice",
                         channel + 1, pitch)
            self._release(prev)
        self._notes[(channel, pitch)] = ActiveNote(channel, pitch, handle)

    def note_off(self, channel: int, pitch: int) -> bool:
        note = self._notes.pop((channel, pitch), None)
        if note is None:
            logger.debug("note off ch %d pitch %d: not sounding", channel + 1, pitch)
            return False
        self._release(note)
        return True

    def stop_all(self) -> int:
        notes = list(self._notes.values())
        self._notes.clear()
        for note in notes:
            self._release(note)
        if notes:
            logger.debug("stopped %d active notes", len(notes))
        return len(notes)

    def _release(self, note: ActiveNote):
        try:
            self._stop(note.handle)
        except Exception as exc:
            logger.warning("stop failed for ch %d pitch %d: %s",
                           note.channel + 1, note.pitch, exc)
