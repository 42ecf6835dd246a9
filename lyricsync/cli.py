"""
Command-Line Interface for LyricSync.

Provides a simple CLI for analyzing audio files (BPM and waveform) and for
printing the time schedule of a lyric document.
"""

import argparse
import sys
import logging
import json
from pathlib import Path

from tqdm import tqdm

from lyricsync.audio_analysis import analyze_audio
from lyricsync.config import BAR_LENGTH_CHOICES, DEFAULT_BAR_LENGTH, LOWPASS_CUTOFF_HZ, WAVEFORM_POINTS
from lyricsync.sync_scheduler import (
    TempoConfig,
    find_active_line,
    build_schedule,
    format_timestamp,
    load_anchors,
    schedule_rows,
    section_of,
    split_lyrics,
)

__all__ = ["main"]


# Configure logging with simple tags
class ModuleFormatter(logging.Formatter):
    """Custom formatter that extracts module name from logger name."""
    def format(self, record):
        # Extract module name from logger name (e.g., "lyricsync.audio_analysis" -> "tempo")
        logger_name = record.name
        if logger_name.startswith('lyricsync.'):
            module = logger_name.split('.')[-1]
            tag_map = {
                'audio_analysis': 'tempo',
                'waveform': 'waveform',
                'sync_scheduler': 'sync',
                'analysis_jobs': 'jobs',
                'cli': 'cli',
            }
            record.name = tag_map.get(module, module)
        return super().format(record)


logger = logging.getLogger("lyricsync.cli")


def setup_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ModuleFormatter("[%(name)s] %(message)s"))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=[handler])


def parse_args(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Namespace object with parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="LyricSync - BPM detection and lyric line scheduling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.required = True

    # Analyze subcommand
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Estimate BPM and waveform envelope for audio files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the BPM of a song
  python -m lyricsync.cli analyze --audio song.mp3

  # Analyze several files and save BPM and waveform to JSON
  python -m lyricsync.cli analyze \\
    --audio a.mp3 b.wav \\
    --points 200 \\
    --output analysis.json
        """
    )
    analyze_parser.add_argument(
        "--audio",
        required=True,
        nargs="+",
        help="Path(s) to input audio files (WAV, MP3, etc.)"
    )
    analyze_parser.add_argument(
        "--points",
        type=int,
        default=WAVEFORM_POINTS,
        help=f"Number of waveform points (default: {WAVEFORM_POINTS})"
    )
    analyze_parser.add_argument(
        "--no-lowpass",
        action="store_true",
        help=f"Detect tempo on the raw signal instead of below {LOWPASS_CUTOFF_HZ:.0f} Hz"
    )
    analyze_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path to output JSON file. If not provided, prints to terminal only"
    )

    # Schedule subcommand
    schedule_parser = subparsers.add_parser(
        "schedule",
        help="Print the time schedule of a lyric document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show anchored lines only
  python -m lyricsync.cli schedule --lyrics song.txt --anchors anchors.json

  # Interpolate un-anchored lines at 96 BPM, 4 bars per line, and show the line active at 1:05
  python -m lyricsync.cli schedule \\
    --lyrics song.txt \\
    --anchors anchors.json \\
    --bpm 96 --bar-length 4 --interpolate \\
    --time 65
        """
    )
    schedule_parser.add_argument(
        "--lyrics",
        required=True,
        help="Path to plain-text lyrics, one line per lyric line"
    )
    schedule_parser.add_argument(
        "--anchors",
        type=str,
        default=None,
        help="Path to JSON list of {line_index, timestamp} anchors"
    )
    schedule_parser.add_argument(
        "--bpm",
        type=int,
        default=None,
        help="Song tempo in BPM (0 or omitted = unknown)"
    )
    schedule_parser.add_argument(
        "--bar-length",
        type=int,
        choices=BAR_LENGTH_CHOICES,
        default=DEFAULT_BAR_LENGTH,
        help=f"Bars between consecutive lines (default: {DEFAULT_BAR_LENGTH})"
    )
    schedule_parser.add_argument(
        "--interpolate",
        action="store_true",
        help="Compute times for lines without an anchor"
    )
    schedule_parser.add_argument(
        "--time",
        type=float,
        default=None,
        help="Playback time in seconds; prints the line active at that time"
    )

    return parser.parse_args(argv)


def handle_analyze_command(args) -> None:
    """Handle the analyze subcommand."""
    for audio in args.audio:
        if not Path(audio).exists():
            raise FileNotFoundError(f"Audio file not found: {audio}")

    lowpass_hz = None if args.no_lowpass else LOWPASS_CUTOFF_HZ
    results = {}
    for audio in tqdm(args.audio, desc="Analyzing", ncols=80):
        analysis = analyze_audio(audio, points=args.points, lowpass_hz=lowpass_hz)
        results[audio] = analysis
        bpm_text = f"{analysis.bpm} BPM" if analysis.bpm else "unknown BPM"
        logger.info(f"{audio}: {bpm_text}, {analysis.duration:.1f}s")

    print("\n" + "=" * 70)
    print(f"{'BPM':<8} {'Duration':<12} {'File'}")
    print("-" * 70)
    for audio, analysis in results.items():
        print(f"{analysis.bpm or '?':<8} {format_timestamp(analysis.duration):<12} {audio}")
    print("=" * 70)

    if args.output:
        output_file = Path(args.output)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        json_data = {
            audio: {
                "bpm": analysis.bpm,
                "duration": analysis.duration,
                "waveform": analysis.waveform,
            }
            for audio, analysis in results.items()
        }
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(json_data, f, indent=2)
        print(f"\n✓ Results saved to JSON: {args.output}")


def handle_schedule_command(args) -> None:
    """Handle the schedule subcommand."""
    lyrics_path = Path(args.lyrics)
    if not lyrics_path.exists():
        raise FileNotFoundError(f"Lyrics file not found: {args.lyrics}")

    lines = split_lyrics(lyrics_path.read_text(encoding="utf-8"))
    anchors = load_anchors(args.anchors) if args.anchors else []
    config = TempoConfig(bpm=args.bpm, bar_length=args.bar_length, interpolation_enabled=args.interpolate)
    if args.interpolate and config.seconds_per_line is None:
        logger.warning("Interpolation requested but BPM is unknown; un-anchored lines stay unscheduled")

    schedule = build_schedule(lines, anchors, config)
    active = find_active_line(schedule, args.time) if args.time is not None else None

    print("\n" + "=" * 70)
    print(f"{'Line':<6} {'Time':<10} {'':<2} {'Section':<12} {'Text'}")
    print("-" * 70)
    for index, time_text, flag, text in schedule_rows(lines, schedule):
        marker = ">" if index == active else " "
        section = section_of(lines, index) or ""
        print(f"{marker}{index + 1:<5} {time_text:<10} {flag:<2} {section[:12]:<12} {text}")
    print("=" * 70)
    print("* anchored   ~ interpolated")

    if args.time is not None:
        if active is None:
            print(f"\nNo active line at {format_timestamp(args.time)}")
        else:
            print(f"\nActive line at {format_timestamp(args.time)}: {active + 1}. {lines[active]}")


def main(argv=None) -> None:
    """Main entry point for the CLI."""
    try:
        args = parse_args(argv)
        setup_logging(args.verbose)

        if args.command == "analyze":
            handle_analyze_command(args)
        elif args.command == "schedule":
            handle_schedule_command(args)
        else:
            logger.error(f"Unknown command: {args.command}")
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"ERROR: {repr(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
