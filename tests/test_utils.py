"""
Tests for audio decoding helpers, logging processors and settings.
"""

import numpy as np
import pytest
import soundfile as sf

from booth_transitions.config import Settings, frames_for_duration
from booth_transitions.generation.worker import TransitionJobSettings
from booth_transitions.utils.audio import decode_audio_bytes, get_audio_duration, load_audio
from booth_transitions.utils.logging import binary_payload_processor, numpy_to_python_processor


class TestAudioFiles:
    """WAV round trip through soundfile and librosa."""

    @pytest.fixture
    def stereo_wav(self, tmp_path):
        sr = 22050
        t = np.linspace(0, 1.0, sr, endpoint=False)
        tone = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
        path = tmp_path / "tone.wav"
        sf.write(str(path), np.stack([tone, tone * 0.5]).T, sr)
        return path

    def test_load_keeps_channels(self, stereo_wav):
        audio, sr = load_audio(str(stereo_wav))
        assert audio.shape[0] == 2
        assert get_audio_duration(audio, sr) == pytest.approx(1.0, abs=0.01)

    def test_decode_bytes(self, stereo_wav):
        audio, sr = decode_audio_bytes(stereo_wav.read_bytes(), suffix=".wav")
        assert sr == 22050
        assert get_audio_duration(audio, sr) == pytest.approx(1.0, abs=0.01)

    def test_duration_of_mono(self):
        assert get_audio_duration(np.zeros(44100), 44100) == 1.0


class TestLoggingProcessors:
    """Event dicts are made log-friendly."""

    def test_numpy_values(self):
        event = numpy_to_python_processor(None, "info", {"peak": np.float32(0.5), "n": np.int64(3)})
        assert event == {"peak": 0.5, "n": 3}
        assert type(event["n"]) is int

    def test_bytes_are_summarised(self):
        event = binary_payload_processor(None, "info", {"frame": b"\x00" * 12, "event": "Loaded"})
        assert event == {"frame": "<12 bytes>", "event": "Loaded"}


class TestSettings:
    """Defaults and derived values."""

    def test_frames(self):
        assert frames_for_duration(5) == 81
        assert frames_for_duration(3) == 49

    def test_defaults(self):
        settings = Settings()
        assert settings.max_generation_attempts == 2
        assert settings.waveform_buckets == 200
        assert settings.offset_snap_seconds == 0.25
        assert settings.frames == frames_for_duration(settings.clip_duration_seconds)

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CLIP_DURATION_SECONDS", "3")
        monkeypatch.setenv("VIDEO_FPS", "16")
        job_settings = TransitionJobSettings.from_settings(Settings())
        assert job_settings.frames == 49
        assert job_settings.fps == 16
