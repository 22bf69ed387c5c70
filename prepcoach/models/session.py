"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionState(Enum):
    """Lifecycle of a live interview session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDED = "ended"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.ENDED, SessionState.FAILED)


@dataclass
class SessionResult:
    """Completion record for a live interview session."""
    session_id: str
    role: str
    state: SessionState
    start_time: Optional[datetime]
    end_time: datetime
    duration_seconds: float
    chunks_sent: int
    chunks_received: int
    chunks_dropped: int
    chunks_undecodable: int
    interruptions: int
    # Transcript of the last completed model turn, usually the closing assessment
    final_message: Optional[str] = None
    error: Optional[str] = None
