"""
Smoke tests for config module.
Verifies that config values are valid and accessible.
"""
import math

from lyricsync import config


def test_tempo_config_values():
    """Verify tempo detection constants are consistent."""
    assert 0 < config.PEAK_THRESHOLD_RATIO < 1
    assert config.PEAK_LOCKOUT_SECONDS > 0
    assert isinstance(config.PEAK_LOOKAHEAD, int)
    assert config.PEAK_LOOKAHEAD > 0
    assert config.MIN_CANDIDATE_BPM < config.MAX_CANDIDATE_BPM
    # band must be at least an octave wide for folding to land inside it
    assert config.OCTAVE_LOW_BPM * 2 <= config.OCTAVE_HIGH_BPM
    assert config.UNKNOWN_BPM == 0


def test_scheduler_config_values():
    """Verify scheduler defaults."""
    assert config.DEFAULT_BAR_LENGTH in config.BAR_LENGTH_CHOICES
    assert all(isinstance(x, int) and x > 0 for x in config.BAR_LENGTH_CHOICES)
    assert math.isinf(config.NEVER_TIMESTAMP)
    assert config.WAVEFORM_POINTS == 100
