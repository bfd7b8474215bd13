"""Sample bank loader.

A bank is a directory with one sub-directory per instrument identity, laid out
like the midi-js-soundfonts banks::

    <root>/acoustic_grand_piano-mp3/A0.mp3
    <root>/acoustic_grand_piano-mp3/Bb0.mp3
    ...
    <root>/violin-mp3/C4.mp3

Note files are named with flats (``Db4``, ``Eb4``...) and scientific octave
numbers where MIDI 60 is ``C4``. Not every pitch needs a file; the engine
repitches the nearest sample for missing notes.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from sfplay.deps import HAS_PEDALBOARD, AudioFile, np
from sfplay.errors import InstrumentNotFoundError
from sfplay.models import LoadedInstrument, NUM_PITCHES


logger = logging.getLogger(__name__)

NOTE_NAMES = ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B")

_SHARP_TO_FLAT = {"C#": "Db", "D#": "Eb", "F#": "Gb", "G#": "Ab", "A#": "Bb"}
_NOTE_RE = re.compile(r"^([A-Ga-g][#b]?)(-?\d+)$")

SUPPORTED_FORMATS = ("mp3", "ogg", "wav", "flac")


def note_name(pitch: int) -> str:
    """MIDI pitch -> bank file stem, e.g. 60 -> ``C4``, 70 -> ``Bb4``."""
    if not 0 <= pitch < NUM_PITCHES:
        raise ValueError(f"pitch must be 0-{NUM_PITCHES - 1}")
    return f"{NOTE_NAMES[pitch % 12]}{pitch // 12 - 1}"


def parse_note_name(name: str) -> Optional[int]:
    """Bank file stem -> MIDI pitch, or None if the stem is not a note."""
    m = _NOTE_RE.match(name.strip())
    if not m:
        return None
    letter, octave = m.group(1), int(m.group(2))
    letter = letter[0].upper() + letter[1:]
    letter = _SHARP_TO_FLAT.get(letter, letter)
    if letter == "Cb":
        idx, octave = 11, octave - 1
    elif letter == "Fb":
        idx = 4
    elif letter in NOTE_NAMES:
        idx = NOTE_NAMES.index(letter)
    else:
        return None
    pitch = (octave + 1) * 12 + idx
    if not 0 <= pitch < NUM_PITCHES:
        return None
    return pitch


class SampleBank:
    """Loads :class:`LoadedInstrument` sample sets from a bank directory.

    ``load`` is blocking (disk IO plus decoding); the instrument cache runs it
    in a worker thread.
    """

    def __init__(self, root, fmt: str = "mp3", sample_rate: int = 44100):
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"format must be one of {', '.join(SUPPORTED_FORMATS)}")
        self.root = Path(root).expanduser()
        self.fmt = fmt
        self.sample_rate = sample_rate

    def instrument_dir(self, identity: str) -> Path:
        return self.root / f"{identity}-{self.fmt}"

    def available(self) -> list[str]:
        """Instrument identities that have a directory in this bank."""
        if not self.root.is_dir():
            return []
        suffix = f"-{self.fmt}"
        return sorted(
            p.name[: -len(suffix)]
            for p in self.root.iterdir()
            if p.is_dir() and p.name.endswith(suffix)
        )

    def load(self, identity: str) -> LoadedInstrument:
        if not HAS_PEDALBOARD:
            raise RuntimeError("pedalboard not installed")
        directory = self.instrument_dir(identity)
        if not directory.is_dir():
            raise InstrumentNotFoundError(f"no samples for '{identity}' in {self.root}")

        samples: dict[int, np.ndarray] = {}
        for path in sorted(directory.glob(f"*.{self.fmt}")):
            pitch = parse_note_name(path.stem)
            if pitch is None:
                logger.debug("skipping %s (not a note name)", path.name)
                continue
            samples[pitch] = self._decode(path)

        if not samples:
            raise InstrumentNotFoundError(f"'{directory}' contains no note samples")

        logger.info("loaded %s: %d samples from %s", identity, len(samples), directory)
        return LoadedInstrument(identity=identity, samples=samples,
                                sample_rate=self.sample_rate)

    def _decode(self, path: Path) -> np.ndarray:
        """Decode one note file to float32 (frames, channels) at bank rate."""
        with AudioFile(str(path)) as f:
            if f.samplerate != self.sample_rate:
                with f.resampled_to(self.sample_rate) as r:
                    audio = r.read(r.frames)
            else:
                audio = f.read(f.frames)
        # pedalboard returns (channels, frames)
        return np.ascontiguousarray(audio.T, dtype=np.float32)
