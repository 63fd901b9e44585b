"""
Tests for waveform synthesis.
"""

import numpy as np
import pytest

from booth_transitions.audio.waveform import WAVEFORM_SAMPLES, compute_waveform, placeholder_waveform


class TestComputeWaveform:
    """Decoded audio is reduced to a fixed number of normalised buckets."""

    @pytest.mark.parametrize("length", [0, 1, 50, 199, 200, 201, 44100])
    def test_always_200_buckets(self, length):
        audio = np.random.randn(length).astype(np.float32)
        waveform = compute_waveform(audio)
        assert waveform.shape == (WAVEFORM_SAMPLES,)

    def test_normalised(self):
        audio = np.random.randn(2, 10000).astype(np.float32) * 0.1
        waveform = compute_waveform(audio)
        assert waveform.max() == pytest.approx(1.0)
        assert waveform.min() >= 0.0

    def test_silence_is_flat_zero(self):
        waveform = compute_waveform(np.zeros(5000, dtype=np.float32))
        assert not waveform.any()

    def test_uses_first_channel(self):
        left = np.concatenate([np.zeros(1000), np.ones(1000)]).astype(np.float32)
        right = np.ones(2000, dtype=np.float32)
        waveform = compute_waveform(np.stack([left, right]), buckets=2)
        assert waveform.tolist() == [0.0, 1.0]

    def test_envelope_follows_loudness(self):
        ramp = np.linspace(0, 1, 20000, dtype=np.float32)
        waveform = compute_waveform(ramp, buckets=10)
        assert all(np.diff(waveform) > 0)


class TestPlaceholderWaveform:
    """Presets get a deterministic placeholder seeded from their id."""

    def test_deterministic(self):
        assert placeholder_waveform("winter-theme") == placeholder_waveform("winter-theme")

    def test_depends_on_seed(self):
        assert placeholder_waveform("winter-theme") != placeholder_waveform("render-bash")

    def test_length_and_range(self):
        values = placeholder_waveform("snowflow")
        assert len(values) == WAVEFORM_SAMPLES
        assert all(0.0 < v < 1.0 for v in values)
