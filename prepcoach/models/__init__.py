"""Data models for the prepcoach application."""

from .audio import AudioStats, AudioFrame, EncodedAudioChunk
from .events import (
    AudioChunkEvent,
    InterruptedEvent,
    TranscriptEvent,
    TurnCompleteEvent,
    ClosedEvent,
    ErrorEvent,
    RemoteEvent,
    SessionEvent,
)
from .roles import JobRole
from .session import SessionState, SessionResult

__all__ = [
    "AudioStats",
    "AudioFrame",
    "EncodedAudioChunk",
    # Remote events
    "AudioChunkEvent",
    "InterruptedEvent",
    "TranscriptEvent",
    "TurnCompleteEvent",
    "ClosedEvent",
    "ErrorEvent",
    "RemoteEvent",
    "SessionEvent",
    "JobRole",
    "SessionState",
    "SessionResult",
]
