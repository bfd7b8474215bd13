"""
Pytest fixtures for sfplay tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fakes import AsyncLoader, FakeDevice, FakePlayer  # noqa: E402


@pytest.fixture
def loader():
    return AsyncLoader()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def device(player):
    return FakeDevice(player)


@pytest.fixture
def write_midi(tmp_path):
    """Write a one-track MIDI file from a list of mido messages."""
    import mido

    def _write(messages, name="song.mid", ticks_per_beat=480):
        mid = mido.MidiFile(ticks_per_beat=ticks_per_beat)
        track = mido.MidiTrack()
        track.extend(messages)
        mid.tracks.append(track)
        path = tmp_path / name
        mid.save(str(path))
        return path

    return _write
