"""Music selection module"""

from booth_transitions.audio.controller import AudioTrackController
from booth_transitions.audio.offset import OffsetSelector, clamp_offset
from booth_transitions.audio.presets import TRANSITION_MUSIC_PRESETS, find_preset, parse_duration
from booth_transitions.audio.transcoder import HttpTranscoder, Transcoder
from booth_transitions.audio.waveform import WAVEFORM_SAMPLES, compute_waveform, placeholder_waveform

__all__ = [
    "AudioTrackController",
    "OffsetSelector",
    "clamp_offset",
    "TRANSITION_MUSIC_PRESETS",
    "find_preset",
    "parse_duration",
    "HttpTranscoder",
    "Transcoder",
    "WAVEFORM_SAMPLES",
    "compute_waveform",
    "placeholder_waveform",
]
