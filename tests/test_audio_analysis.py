"""
Tests for the tempo analysis module.
Uses synthetic click tracks so expected tempos are exact.
"""
import numpy as np
import pytest
from scipy.io import wavfile

from lyricsync.audio_analysis import (
    SampleBuffer,
    TempoGroup,
    analyze_audio,
    estimate_tempo,
    find_peaks,
    group_intervals,
    load_audio,
    normalize_octave,
)
from lyricsync.errors import DecodeFailure

SR = 22050


def click_track(bpm: float, seconds: float = 10.0, sr: int = SR) -> SampleBuffer:
    """Build a buffer with a single-sample click on every beat."""
    samples = np.zeros(int(seconds * sr), dtype=np.float32)
    interval = int(round(60.0 * sr / bpm))
    samples[::interval] = 1.0
    return SampleBuffer(samples=samples, sample_rate=sr)


def test_sample_buffer_duration():
    """Test that SampleBuffer reports its length and duration."""
    buffer = SampleBuffer(samples=np.zeros(44100), sample_rate=22050)
    assert len(buffer) == 44100
    assert buffer.duration == 2.0
    assert buffer.samples.dtype == np.float32


def test_sample_buffer_rejects_bad_sample_rate():
    """Test that a non-positive sample rate is a decode failure."""
    with pytest.raises(DecodeFailure):
        SampleBuffer(samples=np.zeros(10), sample_rate=0)


def test_find_peaks_respects_lockout():
    """Test that samples inside the lockout window are not counted again."""
    samples = np.zeros(300)
    samples[[0, 10, 100, 120, 250]] = 1.0
    assert find_peaks(samples, threshold=0.5, lockout_samples=50) == [0, 100, 250]


def test_find_peaks_below_threshold():
    """Test that nothing is found when no sample exceeds the threshold."""
    samples = np.full(100, 0.5)
    assert find_peaks(samples, threshold=0.5, lockout_samples=10) == []


def test_group_intervals_counts_candidates():
    """Test that peak pairs become counted tempo groups in first-seen order."""
    groups = group_intervals([0, 100, 200, 300], sample_rate=200)
    # intervals of 100 -> 120 BPM (3 pairs), 200 -> 60 BPM (2 pairs), 300 -> 40 BPM (excluded)
    assert [(round(g.tempo), g.count) for g in groups] == [(120, 3), (60, 2)]


def test_group_intervals_merges_within_tolerance():
    """Test that tempos closer than the tolerance share the first group."""
    # 60 * 1000 / 500 = 120.0, 60 * 1000 / 496 ~= 120.97
    groups = group_intervals([0, 500, 996], sample_rate=1000, lookahead=1)
    assert len(groups) == 1
    assert groups[0].tempo == 120.0
    assert groups[0].count == 2


def test_normalize_octave():
    """Test folding tempos into the 70-170 band."""
    assert normalize_octave(120.0) == 120
    assert normalize_octave(60.0) == 120
    assert normalize_octave(35.0) == 70
    assert normalize_octave(200.0) == 100
    assert normalize_octave(340.0) == 170
    assert normalize_octave(400.0) == 100
    assert normalize_octave(0.0) == 0


def test_tempo_group_defaults():
    """Test that a new TempoGroup starts with one vote."""
    assert TempoGroup(tempo=100.0).count == 1


@pytest.mark.parametrize("lowpass_hz", [None, 150.0])
def test_estimate_tempo_click_track(lowpass_hz):
    """Test that a 120 BPM click track is detected as 120 BPM."""
    assert estimate_tempo(click_track(120), lowpass_hz=lowpass_hz) == 120


def test_estimate_tempo_folds_half_time():
    """Test that 60 BPM clicks are folded up into the octave band."""
    assert estimate_tempo(click_track(60), lowpass_hz=None) == 120


def test_estimate_tempo_folds_double_time():
    """Test that 200 BPM clicks are folded down into the octave band."""
    assert estimate_tempo(click_track(200), lowpass_hz=None) == 100


def test_estimate_tempo_single_peak_is_unknown():
    """Test that one peak is not enough to estimate a tempo."""
    samples = np.zeros(SR * 4, dtype=np.float32)
    samples[SR] = 1.0
    assert estimate_tempo(SampleBuffer(samples, SR), lowpass_hz=None) == 0


def test_estimate_tempo_silence_is_unknown():
    """Test that a silent buffer returns 0 instead of raising."""
    silence = SampleBuffer(np.zeros(SR * 2, dtype=np.float32), SR)
    assert estimate_tempo(silence) == 0


def test_estimate_tempo_empty_buffer():
    """Test that an empty buffer is a decode failure."""
    with pytest.raises(DecodeFailure):
        estimate_tempo(SampleBuffer(np.zeros(0, dtype=np.float32), SR))


def test_estimate_tempo_non_finite_buffer():
    """Test that NaN samples are a decode failure."""
    samples = np.zeros(100, dtype=np.float32)
    samples[5] = np.nan
    with pytest.raises(DecodeFailure):
        estimate_tempo(SampleBuffer(samples, SR))


def test_estimate_tempo_noise_stays_in_band():
    """Test that any estimate for noise is either unknown or inside 70-170."""
    rng = np.random.default_rng(0)
    noise = SampleBuffer(rng.normal(0.0, 0.2, 8000 * 8).astype(np.float32), 8000)
    bpm = estimate_tempo(noise, lowpass_hz=None)
    assert isinstance(bpm, int)
    assert bpm == 0 or 70 <= bpm <= 170


def test_estimate_tempo_is_deterministic():
    """Test that analyzing the same buffer twice gives the same result."""
    buffer = click_track(96)
    assert estimate_tempo(buffer) == estimate_tempo(buffer)


def test_load_audio_missing_file():
    """Test that load_audio raises FileNotFoundError for missing file."""
    with pytest.raises(FileNotFoundError):
        load_audio("nonexistent_file.wav")


def test_load_audio_garbage_file(tmp_path):
    """Test that an undecodable file is a decode failure."""
    path = tmp_path / "broken.wav"
    path.write_bytes(b"dummy audio data")
    with pytest.raises(DecodeFailure):
        load_audio(str(path))


def test_analyze_audio_wav(tmp_path):
    """Test the full decode + tempo + waveform pipeline on a WAV file."""
    buffer = click_track(120, seconds=8.0)
    path = tmp_path / "clicks.wav"
    wavfile.write(str(path), SR, buffer.samples)

    analysis = analyze_audio(str(path), points=50)
    assert analysis.bpm == 120
    assert len(analysis.waveform) == 50
    assert analysis.duration == pytest.approx(8.0)
