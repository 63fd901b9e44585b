"""
Audio file utilities for decoding uploaded music
"""

import os
import subprocess
import tempfile
from pathlib import Path
from typing import Tuple

import numpy as np
import librosa
import structlog

logger = structlog.get_logger()


def ensure_wav_format(audio_path: str) -> str:
    """
    Convert audio file to WAV format if necessary.

    This avoids warnings from librosa/pysoundfile when loading M4A/AAC files.
    Uses ffmpeg for conversion.

    Args:
        audio_path: Path to the audio file

    Returns:
        Path to the WAV file (original path if already WAV, or converted path)
    """
    path = Path(audio_path)

    if path.suffix.lower() == '.wav':
        return audio_path

    wav_path = path.with_suffix('.wav')
    if wav_path.exists():
        logger.debug("Using existing WAV file", wav_path=str(wav_path))
        return str(wav_path)

    logger.info("Converting to WAV", source=path.name)

    try:
        subprocess.run(
            [
                'ffmpeg', '-i', audio_path,
                '-acodec', 'pcm_s16le',  # PCM 16-bit
                '-ar', '44100',           # 44.1kHz
                '-y',                     # Overwrite if exists
                '-loglevel', 'error',     # Only show errors
                str(wav_path)
            ],
            check=True,
            capture_output=True,
            text=True
        )
        return str(wav_path)

    except subprocess.CalledProcessError as e:
        logger.warning(
            "FFmpeg conversion failed, using original file",
            error=e.stderr,
            file=audio_path
        )
        return audio_path
    except FileNotFoundError:
        logger.warning(
            "FFmpeg not found, using original file",
            file=audio_path
        )
        return audio_path


def load_audio(file_path: str, target_sr: int = 22050) -> Tuple[np.ndarray, int]:
    """
    Load an audio file keeping its channels.

    Args:
        file_path: Path to the audio file
        target_sr: Target sample rate

    Returns:
        Tuple of (audio_data shaped (channels, samples), sample_rate)
    """
    wav_path = ensure_wav_format(file_path)

    try:
        audio, sr = librosa.load(wav_path, sr=target_sr, mono=False)
    except Exception as e:
        logger.error("Failed to load audio", file_path=file_path, error=str(e))
        raise

    if audio.ndim == 1:
        audio = audio[np.newaxis, :]

    logger.info(
        "Audio loaded",
        duration=audio.shape[1] / sr,
        channels=audio.shape[0],
        sample_rate=sr,
    )
    return audio, sr


def decode_audio_bytes(data: bytes, suffix: str = ".m4a", target_sr: int = 22050) -> Tuple[np.ndarray, int]:
    """
    Decode in-memory audio (M4A, MP3, WAV) to PCM.

    Args:
        data: Encoded audio bytes
        suffix: File extension hinting the container
        target_sr: Target sample rate

    Returns:
        Tuple of (audio_data shaped (channels, samples), sample_rate)
    """
    with tempfile.TemporaryDirectory(prefix="booth-audio-") as tmp_dir:
        source = os.path.join(tmp_dir, f"source{suffix}")
        with open(source, "wb") as handle:
            handle.write(data)
        return load_audio(source, target_sr=target_sr)


def get_audio_duration(audio: np.ndarray, sample_rate: int) -> float:
    """
    Get duration of audio in seconds.

    Args:
        audio: Audio data, 1-D or (channels, samples)
        sample_rate: Sample rate

    Returns:
        Duration in seconds
    """
    return audio.shape[-1] / sample_rate
