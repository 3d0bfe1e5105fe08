"""Meter reading recognition from photos."""

__version__ = "1.0.0"
