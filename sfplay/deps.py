"""Graceful optional dependency imports.

Every other module imports availability flags from here so the try/except
blocks live in exactly one place.
"""

from __future__ import annotations

# -- pedalboard (sample decoding, master effects) ---------------------------

try:
    from pedalboard import Pedalboard, Reverb
    from pedalboard.io import AudioFile
    HAS_PEDALBOARD = True
except ImportError:
    Pedalboard = None  # type: ignore[assignment,misc]
    Reverb = None  # type: ignore[assignment,misc]
    AudioFile = None  # type: ignore[assignment,misc]
    HAS_PEDALBOARD = False

# -- mido (MIDI file reading) -----------------------------------------------

try:
    import mido
    HAS_MIDO = True
except ImportError:
    mido = None  # type: ignore[assignment]
    HAS_MIDO = False

# -- sounddevice (real-time audio I/O) --------------------------------------

try:
    import sounddevice as sd
    HAS_SOUNDDEVICE = True
except (ImportError, OSError):  # OSError: PortAudio library missing
    sd = None  # type: ignore[assignment]
    HAS_SOUNDDEVICE = False

# -- numpy (always required) ------------------------------------------------

import numpy as np
