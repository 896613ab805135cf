"""Daybook: personal dashboard backed by linked Google accounts."""

__version__ = "0.1.0"
