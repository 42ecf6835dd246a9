"""Exceptions raised by the analysis layer."""

__all__ = ["DecodeFailure", "InsufficientSignal"]


class DecodeFailure(ValueError):
    """Audio could not be decoded, or the decoded buffer is empty or malformed."""


class InsufficientSignal(Exception):
    """
    Too few usable peaks to estimate a tempo.

    Never escapes estimate_tempo: it is reported to callers as BPM 0.
    """
