"""Indicator and signal engine for a polling market dashboard."""

__version__ = "0.1.0"
