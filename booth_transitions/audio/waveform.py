"""
Waveform synthesis for the music offset picker.

Decoded tracks are reduced to a fixed number of buckets of mean absolute
amplitude, normalised to [0, 1]. Preset tracks cannot be decoded locally,
so they get a deterministic placeholder seeded from the preset id; it is
only a visual affordance and carries no audio information.
"""

import math
from typing import List

import numpy as np

WAVEFORM_SAMPLES = 200


def compute_waveform(audio: np.ndarray, buckets: int = WAVEFORM_SAMPLES) -> np.ndarray:
    """
    Downsample PCM audio into a normalised amplitude envelope.

    Args:
        audio: PCM samples, 1-D or shaped (channels, samples); only the
            first channel is used
        buckets: Number of output values

    Returns:
        float32 array of exactly `buckets` values in [0, 1]
    """
    samples = np.asarray(audio, dtype=np.float32)
    if samples.ndim > 1:
        samples = samples[0]

    if samples.size == 0:
        return np.zeros(buckets, dtype=np.float32)

    magnitudes = np.abs(samples)
    edges = np.linspace(0, magnitudes.size, buckets + 1).astype(int)
    waveform = np.zeros(buckets, dtype=np.float32)
    for i in range(buckets):
        start, end = edges[i], edges[i + 1]
        if end <= start:
            # Fewer samples than buckets: reuse the nearest sample
            end = min(start + 1, magnitudes.size)
            start = end - 1
        waveform[i] = magnitudes[start:end].mean()

    peak = float(waveform.max())
    if peak > 0:
        waveform /= peak
    return waveform


def placeholder_waveform(seed: str, buckets: int = WAVEFORM_SAMPLES) -> List[float]:
    """
    Deterministic pseudo-waveform for tracks that cannot be decoded.

    Args:
        seed: Usually the preset id
        buckets: Number of output values

    Returns:
        List of `buckets` floats in (0, 1)
    """
    values = []
    for i in range(buckets):
        char_code = ord(seed[i % len(seed)]) if seed else 0
        noise = math.sin(i * 0.1 + char_code) * 0.3 + 0.5
        envelope = math.sin((i / buckets) * math.pi) * 0.3 + 0.7
        values.append(noise * envelope)
    return values
