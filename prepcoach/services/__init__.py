"""Services layer for prepcoach application logic."""

from .live_session import LiveAudioSession
from .session_publisher import SessionPublisher

__all__ = [
    "LiveAudioSession",
    "SessionPublisher",
]
