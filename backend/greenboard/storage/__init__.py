"""Storage layer for Greenboard - the marker file rewritten before each commit."""

from .marker import read_marker, write_marker

__all__ = ["read_marker", "write_marker"]
