"""Event models for the live session: remote messages and status events."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, Dict, Union


@dataclass(frozen=True)
class AudioChunkEvent:
    """Audio from the remote model, still in transport encoding."""
    data: Union[bytes, str]  # raw PCM bytes or base64 text
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class InterruptedEvent:
    """The candidate started speaking while the model was talking."""


@dataclass(frozen=True)
class TranscriptEvent:
    """Incremental transcription of the model's spoken output."""
    text: str


@dataclass(frozen=True)
class TurnCompleteEvent:
    """The model finished its turn."""


@dataclass(frozen=True)
class ClosedEvent:
    """The remote closed the session normally."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class ErrorEvent:
    """The remote session failed."""
    message: str


RemoteEvent = Union[
    AudioChunkEvent,
    InterruptedEvent,
    TranscriptEvent,
    TurnCompleteEvent,
    ClosedEvent,
    ErrorEvent,
]


@dataclass
class SessionEvent:
    """Session lifecycle event published to status subscribers."""
    event_id: str
    event_type: str  # "state_changed", "error", "completed"
    state: str
    message: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
