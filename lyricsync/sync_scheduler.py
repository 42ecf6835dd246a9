"""
Lyrics Sync Scheduler Module.

This module turns a lyric document, user-placed sync anchors and a tempo
setting into a per-line timestamp schedule, and resolves which line is active
at a given playback time.

Anchors are ground truth. Lines after an anchor can be placed automatically
by assuming each line lasts `bar_length` bars at the song's BPM; lines that
can't be placed get a "never" timestamp and are never highlighted.
"""

import json
import math
import numbers
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from lyricsync.config import DEFAULT_BAR_LENGTH, NEVER_TIMESTAMP

__all__ = [
    "SyncAnchor",
    "TempoConfig",
    "LineTiming",
    "SyncResolution",
    "split_lyrics",
    "is_section_tag",
    "section_label",
    "section_of",
    "load_anchors",
    "build_schedule",
    "find_active_line",
    "resolve",
    "format_timestamp",
    "schedule_rows",
]

logger = logging.getLogger("lyricsync.sync_scheduler")


@dataclass(frozen=True)
class SyncAnchor:
    """
    A user-placed sync point.

    Attributes:
        line_index: Zero-based line number in the lyric document
        timestamp: Playback time in seconds
    """
    line_index: int
    timestamp: float


@dataclass
class TempoConfig:
    """
    Tempo settings used for interpolation.

    Attributes:
        bpm: Song tempo, None or 0 when unknown
        bar_length: Bars assumed between consecutive lines
        interpolation_enabled: Whether un-anchored lines get computed times
    """
    bpm: Optional[int] = None
    bar_length: int = DEFAULT_BAR_LENGTH
    interpolation_enabled: bool = False

    @property
    def seconds_per_line(self) -> Optional[float]:
        """Seconds between interpolated lines, or None when interpolation is inert."""
        if not self.interpolation_enabled:
            return None
        if not (_is_finite_number(self.bpm) and _is_finite_number(self.bar_length)):
            return None
        if self.bpm <= 0 or self.bar_length <= 0:
            return None
        return (60.0 / self.bpm) * self.bar_length


@dataclass(frozen=True)
class LineTiming:
    """Effective timestamp of one lyric line."""
    line_index: int
    timestamp: float
    is_interpolated: bool = False

    @property
    def never(self) -> bool:
        return self.timestamp == NEVER_TIMESTAMP


def _is_finite_number(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


# Keyed by line index, in line order; section tags have no entry
Schedule = Dict[int, LineTiming]


@dataclass
class SyncResolution:
    """Result of resolve(): the active line (None if no line yet) and the schedule."""
    active_line_index: Optional[int]
    schedule: Schedule


def split_lyrics(text: str) -> List[str]:
    """Split a lyric document into lines, keeping blank lines so indices match the editor."""
    return text.replace("\r\n", "\n").split("\n")


def is_section_tag(line: str) -> bool:
    """Check if a line is a section tag such as [Chorus]."""
    stripped = line.strip()
    return len(stripped) >= 2 and stripped.startswith("[") and stripped.endswith("]")


def section_label(line: str) -> str:
    """Return the text inside a section tag ("[Chorus]" -> "Chorus")."""
    return line.strip()[1:-1].strip()


def section_of(lines: List[str], line_index: int) -> Optional[str]:
    """
    Find the section a line belongs to.

    Returns:
        Label of the nearest section tag at or above line_index, or None
    """
    for i in range(min(line_index, len(lines) - 1), -1, -1):
        if is_section_tag(lines[i]):
            return section_label(lines[i])
    return None


def load_anchors(anchors_json_path: str) -> List[SyncAnchor]:
    """
    Load sync anchors from a JSON file.

    The file holds a list of {"line_index": int, "timestamp": float} objects.
    A later entry for the same line replaces an earlier one.

    Raises:
        FileNotFoundError: If anchors file doesn't exist
        ValueError: If JSON structure is invalid
    """
    path = Path(anchors_json_path)
    if not path.exists():
        raise FileNotFoundError(f"Anchors file not found: {anchors_json_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in anchors file: {e}") from e

    if not isinstance(data, list):
        raise ValueError("Anchors file must contain a JSON list")

    by_line: Dict[int, SyncAnchor] = {}
    for entry in data:
        try:
            anchor = SyncAnchor(line_index=int(entry["line_index"]), timestamp=float(entry["timestamp"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid anchor entry {entry!r}: {e}") from e
        by_line[anchor.line_index] = anchor

    logger.info(f"Loaded {len(by_line)} anchors from {anchors_json_path}")
    return sorted(by_line.values(), key=lambda a: a.line_index)


def build_schedule(lines: List[str], anchors: Iterable[SyncAnchor], config: TempoConfig) -> Schedule:
    """
    Compute the effective timestamp of every non-tag line.

    Lines are walked in order while carrying the most recent anchor seen.
    An anchored line takes its anchor's time exactly. Otherwise, when
    interpolation is active and an anchor has been seen, the line is placed
    at anchor time + (line - anchor line) * seconds per line. Every other
    line is scheduled at NEVER_TIMESTAMP.

    Args:
        lines: Lyric lines, as from split_lyrics
        anchors: Manual anchors; a later anchor for the same line wins
        config: Tempo settings

    Returns:
        Schedule keyed by line index, in line order
    """
    manual: Dict[int, float] = {}
    for anchor in anchors:
        if not isinstance(anchor.line_index, numbers.Integral) or not _is_finite_number(anchor.timestamp):
            logger.debug(f"Skipping malformed anchor {anchor!r}")
            continue
        manual[anchor.line_index] = anchor.timestamp

    seconds_per_line = config.seconds_per_line

    schedule: Schedule = {}
    last_anchor_index: Optional[int] = None
    last_anchor_time = 0.0

    for index, line in enumerate(lines):
        if is_section_tag(line):
            continue

        if index in manual:
            last_anchor_index = index
            last_anchor_time = manual[index]
            schedule[index] = LineTiming(index, last_anchor_time, is_interpolated=False)
        elif seconds_per_line is not None and last_anchor_index is not None:
            timestamp = last_anchor_time + (index - last_anchor_index) * seconds_per_line
            schedule[index] = LineTiming(index, timestamp, is_interpolated=True)
        else:
            schedule[index] = LineTiming(index, NEVER_TIMESTAMP, is_interpolated=False)

    return schedule


def find_active_line(schedule: Schedule, playback_time: float) -> Optional[int]:
    """
    Resolve the active line for a playback time.

    Scans from the last line backwards and returns the highest line index
    whose timestamp is <= playback_time. With out-of-order anchors this is
    still the highest qualifying index.

    Returns:
        Line index, or None if no line has started yet
    """
    for index in reversed(schedule):
        if schedule[index].timestamp <= playback_time:
            return index
    return None


def resolve(
    lines: List[str],
    anchors: Iterable[SyncAnchor],
    config: TempoConfig,
    playback_time: float,
) -> SyncResolution:
    """Build the schedule and find the active line in one call."""
    schedule = build_schedule(lines, anchors, config)
    return SyncResolution(
        active_line_index=find_active_line(schedule, playback_time),
        schedule=schedule,
    )


def format_timestamp(seconds: float) -> str:
    """Format seconds as m:ss.cc, or --:--.-- for lines that are never active."""
    if seconds == NEVER_TIMESTAMP or math.isnan(seconds):
        return "--:--.--"
    seconds = max(0.0, seconds)
    total = int(round(seconds * 100))
    mins = total // 6000
    secs = (total // 100) % 60
    hundredths = total % 100
    return f"{mins}:{secs:02d}.{hundredths:02d}"


def schedule_rows(lines: List[str], schedule: Schedule) -> List[Tuple[int, str, str, str]]:
    """Rows of (line index, time, flag, text) for printing a schedule."""
    rows = []
    for index, timing in schedule.items():
        flag = "~" if timing.is_interpolated else ("" if timing.never else "*")
        rows.append((index, format_timestamp(timing.timestamp), flag, lines[index]))
    return rows
