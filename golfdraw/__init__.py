"""Monthly draw settlement engine for the golf charity sweepstakes."""

__version__ = "0.1.0"
