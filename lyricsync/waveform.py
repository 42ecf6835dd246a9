"""
Waveform Envelope Module.

Reduces a decoded audio buffer to a fixed number of peak amplitudes for
display next to the lyrics.
"""

import logging
from typing import List

import numpy as np

from lyricsync.audio_analysis import SampleBuffer, _check_buffer
from lyricsync.config import WAVEFORM_POINTS

__all__ = ["reduce_waveform"]

logger = logging.getLogger("lyricsync.waveform")


def reduce_waveform(buffer: SampleBuffer, points: int = WAVEFORM_POINTS) -> List[float]:
    """
    Reduce a sample buffer to a peak amplitude envelope.

    The buffer is split into `points` contiguous chunks of len // points
    samples, the last chunk taking any remainder. Each chunk contributes its
    maximum absolute amplitude, so short transients stay visible even at low
    point counts. When the buffer is shorter than `points`, each chunk holds
    at most one sample and chunks past the end read as 0.0.

    Args:
        buffer: Decoded mono audio
        points: Number of envelope values to produce

    Returns:
        List of exactly `points` floats in [0, 1], in chronological order

    Raises:
        ValueError: If points is not positive
        DecodeFailure: If the buffer is empty or contains non-finite samples
    """
    if points <= 0:
        raise ValueError("points must be > 0")
    _check_buffer(buffer)

    amplitudes = np.abs(buffer.samples)
    n = amplitudes.size
    step = max(1, n // points)

    envelope: List[float] = []
    for i in range(points):
        start = min(i * step, n)
        end = n if i == points - 1 else min(start + step, n)
        if end <= start:
            envelope.append(0.0)
            continue
        envelope.append(float(min(1.0, amplitudes[start:end].max())))

    logger.debug(f"Reduced {n} samples to {points} points ({step} samples per point)")
    return envelope
