"""
Audio Tempo Analysis Module.

This module handles decoding audio files into sample buffers and estimating
a single BPM (beats per minute) for the track. The BPM drives lyric line
interpolation in the sync scheduler.
"""

from dataclasses import dataclass, field
from typing import List
import logging

import librosa
import numpy as np
from pathlib import Path
from scipy import signal as scipy_signal

from lyricsync.config import (
    LOWPASS_CUTOFF_HZ,
    LOWPASS_ORDER,
    PEAK_THRESHOLD_RATIO,
    PEAK_LOCKOUT_SECONDS,
    PEAK_LOOKAHEAD,
    MIN_CANDIDATE_BPM,
    MAX_CANDIDATE_BPM,
    TEMPO_GROUP_TOLERANCE,
    OCTAVE_LOW_BPM,
    OCTAVE_HIGH_BPM,
    UNKNOWN_BPM,
    WAVEFORM_POINTS,
)
from lyricsync.errors import DecodeFailure, InsufficientSignal

__all__ = [
    "SampleBuffer",
    "TempoGroup",
    "AudioAnalysis",
    "load_audio",
    "estimate_tempo",
    "analyze_audio",
]

logger = logging.getLogger("lyricsync.audio_analysis")


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Decoded mono audio.

    Attributes:
        samples: 1-D float array, amplitudes roughly in [-1.0, 1.0]
        sample_rate: Samples per second
    """
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if int(self.sample_rate) <= 0:
            raise DecodeFailure(f"Invalid sample rate: {self.sample_rate}")
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim != 1:
            raise DecodeFailure(f"Expected mono samples, got shape {samples.shape}")
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    def __len__(self) -> int:
        return int(self.samples.size)

    @property
    def duration(self) -> float:
        return len(self) / self.sample_rate


@dataclass
class TempoGroup:
    """Candidate tempos that agree within the grouping tolerance."""
    tempo: float
    count: int = 1


@dataclass
class AudioAnalysis:
    """
    Everything the host persists for a song after import.

    Attributes:
        bpm: Estimated BPM, 0 when unknown
        waveform: Amplitude envelope for display
        duration: Audio duration in seconds
    """
    bpm: int
    waveform: List[float] = field(default_factory=list)
    duration: float = 0.0


def load_audio(audio_path: str, sr: int | None = None) -> SampleBuffer:
    """
    Decode an audio file into a mono SampleBuffer.

    Args:
        audio_path: Path to the audio file
        sr: Target sample rate (None to use file's native rate)

    Returns:
        SampleBuffer with the mixed-down samples

    Raises:
        FileNotFoundError: If audio file doesn't exist
        DecodeFailure: If the file can't be decoded or decodes to nothing
    """
    path = Path(audio_path)
    if not path.exists():
        raise FileNotFoundError(f"Audio not found: {audio_path}")

    try:
        y, sr_loaded = librosa.load(str(path), sr=sr, mono=True)
    except Exception as e:
        raise DecodeFailure(f"Could not decode audio {audio_path}: {e}") from e

    buffer = SampleBuffer(samples=y, sample_rate=int(sr_loaded))
    _check_buffer(buffer)
    logger.info(f"Loaded {buffer.duration:.1f}s of audio at {buffer.sample_rate} Hz")
    return buffer


def _check_buffer(buffer: SampleBuffer) -> None:
    if len(buffer) == 0:
        raise DecodeFailure("Audio buffer is empty")
    if not np.all(np.isfinite(buffer.samples)):
        raise DecodeFailure("Audio buffer contains non-finite samples")


def lowpass(samples: np.ndarray, sample_rate: int, cutoff_hz: float | None) -> np.ndarray:
    """
    Band-limit samples to the low end where percussive energy sits.

    Returns the input unchanged when cutoff_hz is None or not below Nyquist.
    """
    nyquist = sample_rate / 2.0
    if cutoff_hz is None or cutoff_hz <= 0 or cutoff_hz >= nyquist:
        return samples
    sos = scipy_signal.butter(LOWPASS_ORDER, cutoff_hz, btype="low", fs=sample_rate, output="sos")
    return scipy_signal.sosfilt(sos, samples)


def find_peaks(samples: np.ndarray, threshold: float, lockout_samples: int) -> List[int]:
    """
    Find sample indices that rise above threshold.

    After each recorded peak the next lockout_samples samples are skipped, so
    the decay tail of one transient isn't counted twice.

    Args:
        samples: Signal to scan
        threshold: Absolute amplitude a sample must exceed
        lockout_samples: Samples to skip after each peak (at least 1)

    Returns:
        Peak indices in increasing order
    """
    above = np.flatnonzero(samples > threshold)
    lockout_samples = max(1, int(lockout_samples))

    peaks: List[int] = []
    pos = 0
    while pos < above.size:
        peak = int(above[pos])
        peaks.append(peak)
        # Jump to the first candidate past the lockout window
        pos = int(np.searchsorted(above, peak + lockout_samples, side="left"))
    return peaks


def group_intervals(
    peaks: List[int],
    sample_rate: int,
    lookahead: int = PEAK_LOOKAHEAD,
    min_bpm: float = MIN_CANDIDATE_BPM,
    max_bpm: float = MAX_CANDIDATE_BPM,
    tolerance: float = TEMPO_GROUP_TOLERANCE,
) -> List[TempoGroup]:
    """
    Turn peak-to-peak intervals into counted tempo groups.

    Each peak is paired with up to `lookahead` following peaks. Every pair
    yields a candidate tempo of 60 * sample_rate / interval; candidates outside
    (min_bpm, max_bpm) are dropped, the rest join the first group whose tempo
    is within tolerance or start a new one.

    Returns:
        Groups in order of first appearance
    """
    groups: List[TempoGroup] = []
    for index, peak in enumerate(peaks):
        for other in peaks[index + 1:index + 1 + lookahead]:
            interval = other - peak
            if interval <= 0:
                continue
            tempo = 60.0 * sample_rate / interval
            if not (min_bpm < tempo < max_bpm):
                continue

            for group in groups:
                if abs(group.tempo - tempo) < tolerance:
                    group.count += 1
                    break
            else:
                groups.append(TempoGroup(tempo=tempo))
    return groups


def normalize_octave(tempo: float, low: float = OCTAVE_LOW_BPM, high: float = OCTAVE_HIGH_BPM) -> int:
    """Fold a half- or double-time estimate into [low, high] and round it."""
    if tempo <= 0:
        return UNKNOWN_BPM
    while tempo < low:
        tempo *= 2
    while tempo > high:
        tempo /= 2
    return int(round(tempo))


def _select_group(groups: List[TempoGroup]) -> TempoGroup:
    if not groups:
        raise InsufficientSignal("No tempo candidates found")
    # max() keeps the first of equal counts
    return max(groups, key=lambda g: g.count)


def estimate_tempo(
    buffer: SampleBuffer,
    lowpass_hz: float | None = LOWPASS_CUTOFF_HZ,
    threshold_ratio: float = PEAK_THRESHOLD_RATIO,
    lockout_seconds: float = PEAK_LOCKOUT_SECONDS,
    lookahead: int = PEAK_LOOKAHEAD,
    min_bpm: float = MIN_CANDIDATE_BPM,
    max_bpm: float = MAX_CANDIDATE_BPM,
    tolerance: float = TEMPO_GROUP_TOLERANCE,
    octave_low: float = OCTAVE_LOW_BPM,
    octave_high: float = OCTAVE_HIGH_BPM,
) -> int:
    """
    Estimate the track tempo from raw samples.

    The signal is optionally low-passed, peaks above threshold_ratio of the
    signal maximum are picked with a lockout window, peak intervals are grouped
    into candidate tempos, and the most frequent group is folded into the
    octave band [octave_low, octave_high].

    Args:
        buffer: Decoded mono audio
        lowpass_hz: Low-pass cutoff in Hz, None to analyze the raw signal
        threshold_ratio: Peak threshold as a fraction of the signal max
        lockout_seconds: Time skipped after each peak
        lookahead: Number of following peaks each peak is paired with
        min_bpm: Lower (exclusive) bound on candidate tempos
        max_bpm: Upper (exclusive) bound on candidate tempos
        tolerance: Grouping tolerance in BPM
        octave_low: Lower bound of the octave band
        octave_high: Upper bound of the octave band

    Returns:
        Integer BPM, or 0 when fewer than two usable peaks were found

    Raises:
        DecodeFailure: If the buffer is empty or contains non-finite samples
    """
    _check_buffer(buffer)
    sr = buffer.sample_rate

    data = lowpass(buffer.samples, sr, lowpass_hz)
    peak_level = float(np.max(data))
    if peak_level <= 0:
        logger.info("Signal is silent, tempo unknown")
        return UNKNOWN_BPM

    lockout_samples = max(1, int(round(lockout_seconds * sr)))
    peaks = find_peaks(data, peak_level * threshold_ratio, lockout_samples)
    logger.debug(f"Found {len(peaks)} peaks above {threshold_ratio:.0%} of max")

    try:
        if len(peaks) < 2:
            raise InsufficientSignal(f"Only {len(peaks)} peak(s) found")
        groups = group_intervals(peaks, sr, lookahead, min_bpm, max_bpm, tolerance)
        best = _select_group(groups)
    except InsufficientSignal as e:
        logger.info(f"Tempo unknown: {e}")
        return UNKNOWN_BPM

    bpm = normalize_octave(best.tempo, octave_low, octave_high)
    logger.info(f"Estimated tempo {bpm} BPM (raw {best.tempo:.1f}, {best.count} votes, {len(groups)} groups)")
    return bpm


def analyze_audio(
    audio_path: str,
    points: int = WAVEFORM_POINTS,
    lowpass_hz: float | None = LOWPASS_CUTOFF_HZ,
) -> AudioAnalysis:
    """
    Decode an audio file and run both analyzers on it.

    This is a convenience function that combines load_audio, estimate_tempo
    and reduce_waveform into the single result the host stores with a song.

    Args:
        audio_path: Path to the audio file
        points: Number of waveform points
        lowpass_hz: Low-pass cutoff for tempo detection (None to disable)

    Returns:
        AudioAnalysis with BPM, waveform and duration

    Raises:
        FileNotFoundError: If audio file doesn't exist
        DecodeFailure: If the audio can't be decoded
    """
    from lyricsync.waveform import reduce_waveform

    logger.info(f"Analyzing {audio_path}")
    buffer = load_audio(audio_path)
    bpm = estimate_tempo(buffer, lowpass_hz=lowpass_hz)
    waveform = reduce_waveform(buffer, points=points)
    return AudioAnalysis(bpm=bpm, waveform=waveform, duration=buffer.duration)
