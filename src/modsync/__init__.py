"""modsync: keep a local mod catalog mirrored from Steam Workshop, with translated metadata."""

__version__ = "0.1.0"
