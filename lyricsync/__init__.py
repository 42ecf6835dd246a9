"""
LyricSync - lyric line timing from user anchors and detected tempo.

Estimates a track's BPM and waveform envelope from decoded audio, and
computes which lyric line is active at any playback time from user-placed
sync anchors plus tempo-based interpolation.
"""

__version__ = "0.1.0"

__all__ = [
    "SampleBuffer",
    "AudioAnalysis",
    "load_audio",
    "estimate_tempo",
    "analyze_audio",
    "reduce_waveform",
    "SyncAnchor",
    "TempoConfig",
    "LineTiming",
    "build_schedule",
    "find_active_line",
    "resolve",
    "split_lyrics",
    "DecodeFailure",
    "AnalysisJobs",
]

from lyricsync.errors import DecodeFailure
from lyricsync.audio_analysis import (
    SampleBuffer,
    AudioAnalysis,
    load_audio,
    estimate_tempo,
    analyze_audio,
)
from lyricsync.waveform import reduce_waveform
from lyricsync.sync_scheduler import (
    SyncAnchor,
    TempoConfig,
    LineTiming,
    build_schedule,
    find_active_line,
    resolve,
    split_lyrics,
)
from lyricsync.analysis_jobs import AnalysisJobs

