"""Console user interface."""

from .status_screen import SessionStatusScreen

__all__ = ["SessionStatusScreen"]
