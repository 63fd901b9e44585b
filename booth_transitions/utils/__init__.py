"""Utility modules"""

from booth_transitions.utils.audio import decode_audio_bytes, get_audio_duration, load_audio
from booth_transitions.utils.logging import setup_logging

__all__ = [
    "decode_audio_bytes",
    "get_audio_duration",
    "load_audio",
    "setup_logging",
]
