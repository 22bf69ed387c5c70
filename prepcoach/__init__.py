"""prepcoach - live voice interview coach for placement preparation."""

__version__ = "0.1.0"
