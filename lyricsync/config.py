"""
Configuration constants for LyricSync.

This module centralizes all configuration values and constants used across
the codebase, eliminating magic numbers and duplicate definitions.
"""

import math
from typing import Tuple

# Tempo detection defaults
LOWPASS_CUTOFF_HZ = 150.0  # Kick/bass region where rhythmic energy concentrates
LOWPASS_ORDER = 4
PEAK_THRESHOLD_RATIO = 0.75  # Peak must exceed 75% of the signal max
PEAK_LOCKOUT_SECONDS = 0.25  # Skip the decay tail of a transient
PEAK_LOOKAHEAD = 9  # Compare each peak with up to 9 following peaks
MIN_CANDIDATE_BPM = 40.0  # Exclusive bounds on plausible candidate tempos
MAX_CANDIDATE_BPM = 220.0
TEMPO_GROUP_TOLERANCE = 2.0  # Candidates closer than this share a group
OCTAVE_LOW_BPM = 70.0  # Octave normalization band
OCTAVE_HIGH_BPM = 170.0
UNKNOWN_BPM = 0  # Caller-visible "unknown tempo"

# Waveform defaults
WAVEFORM_POINTS = 100

# Sync scheduler defaults
DEFAULT_BAR_LENGTH = 8
BAR_LENGTH_CHOICES: Tuple[int, ...] = (1, 2, 4, 8, 16)
NEVER_TIMESTAMP = math.inf  # Schedule time for lines that can never be active

# Analysis jobs / API defaults
JOB_LOG_MAX_LINES = 1000
API_PORT = 5001  # Use 5001 to avoid conflict with macOS AirPlay on 5000
