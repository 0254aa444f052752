"""Spaced-repetition revision scheduling for solved practice problems."""

__version__ = "1.0.0"
