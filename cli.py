#!/usr/bin/env python3
"""
Simple entry point script for LyricSync.

This allows running the CLI as: python cli.py analyze --audio ...
"""

from lyricsync.cli import main

if __name__ == "__main__":
    main()
