"""Tests for the SamplePlayer voice mixer."""

import numpy as np
import pytest

from sfplay.engine import SamplePlayer
from sfplay.models import LoadedInstrument


def constant_instrument(identity="test_piano", pitches=(60,), frames=1000,
                        value=0.5, channels=1, sample_rate=1000):
    samples = {p: np.full((frames, channels), value, dtype=np.float32) for p in pitches}
    return LoadedInstrument(identity=identity, samples=samples, sample_rate=sample_rate)


class TestTrigger:
    def test_voice_is_mixed_with_gain(self):
        player = SamplePlayer(sample_rate=1000, release=0.0)
        player.trigger(constant_instrument(), 60, 0.5, 0.0)
        block = player.render(10)
        assert block.shape == (10, 2)
        assert np.allclose(block, 0.25)

    def test_mono_sample_is_duplicated_to_stereo(self):
        player = SamplePlayer(sample_rate=1000)
        player.trigger(constant_instrument(channels=1), 60, 1.0, 0.0)
        block = player.render(4)
        assert np.allclose(block[:, 0], block[:, 1])

    def test_start_time_offsets_voice(self):
        player = SamplePlayer(sample_rate=1000)
        player.trigger(constant_instrument(), 60, 1.0, start_time=0.005)
        block = player.render(10)
        assert np.allclose(block[:5], 0.0)
        assert np.allclose(block[5:], 0.5)

    def test_voice_ends_with_sample(self):
        player = SamplePlayer(sample_rate=1000)
        player.trigger(constant_instrument(frames=8), 60, 1.0, 0.0)
        block = player.render(16)
        assert np.allclose(block[:8], 0.5)
        assert np.allclose(block[8:], 0.0)
        assert player.active_voices == 0

    def test_clock_advances_with_rendering(self):
        player = SamplePlayer(sample_rate=1000)
        assert player.current_time == 0.0
        player.render(250)
        assert player.current_time == pytest.approx(0.25)

    def test_missing_pitch_is_repitched_from_nearest(self):
        player = SamplePlayer(sample_rate=1000)
        inst = constant_instrument(pitches=(60,), frames=1200)
        voice = player.trigger(inst, 72, 1.0, 0.0)
        # an octave up plays twice as fast
        assert len(voice.data) == pytest.approx(600, abs=1)

    def test_empty_instrument_raises(self):
        player = SamplePlayer(sample_rate=1000)
        with pytest.raises(ValueError):
            player.trigger(LoadedInstrument("empty"), 60, 1.0, 0.0)

    def test_master_gain_and_clipping(self):
        player = SamplePlayer(sample_rate=1000)
        for _ in range(4):
            player.trigger(constant_instrument(value=0.5), 60, 1.0, 0.0)
        block = player.render(4)
        assert np.allclose(block, 1.0)

    def test_voice_limit_steals_oldest(self):
        player = SamplePlayer(sample_rate=1000, max_voices=2)
        first = player.trigger(constant_instrument(), 60, 1.0, 0.0)
        player.trigger(constant_instrument(), 60, 1.0, 0.0)
        player.trigger(constant_instrument(), 60, 1.0, 0.0)
        assert first.done
        assert player.active_voices == 2


class TestStop:
    def test_stop_without_release_silences_immediately(self):
        player = SamplePlayer(sample_rate=1000, release=0.0)
        voice = player.trigger(constant_instrument(), 60, 1.0, 0.0)
        player.render(4)
        player.stop(voice)
        assert np.allclose(player.render(4), 0.0)
        assert player.active_voices == 0

    def test_release_fades_out(self):
        player = SamplePlayer(sample_rate=1000, release=0.01)
        voice = player.trigger(constant_instrument(value=1.0), 60, 1.0, 0.0)
        player.render(4)
        player.stop(voice)
        block = player.render(20)[:, 0]
        assert block[0] < 1.0
        assert np.all(np.diff(block[:10]) <= 0)
        assert np.allclose(block[10:], 0.0)
        assert player.active_voices == 0

    def test_stop_twice_is_harmless(self):
        player = SamplePlayer(sample_rate=1000, release=0.01)
        voice = player.trigger(constant_instrument(), 60, 1.0, 0.0)
        player.stop(voice)
        player.stop(voice)
        assert voice.releasing

    def test_stop_all(self):
        player = SamplePlayer(sample_rate=1000)
        for pitch in (60, 62):
            player.trigger(constant_instrument(pitches=(pitch,)), pitch, 1.0, 0.0)
        player.stop_all()
        assert player.active_voices == 0
        assert np.allclose(player.render(4), 0.0)


class TestCallback:
    def test_callback_fills_outdata(self):
        player = SamplePlayer(sample_rate=1000)
        player.trigger(constant_instrument(), 60, 1.0, 0.0)
        out = np.zeros((8, 2), dtype=np.float32)
        player.callback(out, 8, None, None)
        assert np.allclose(out, 0.5)
