"""Multi-author blog core."""

__version__ = "0.1.0"
