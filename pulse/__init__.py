"""Pulse: multi-source AI news aggregation and digest reports."""

__version__ = "1.0.0"
