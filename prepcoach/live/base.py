"""Abstract base classes for remote conversational backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
import logging

from ..models.audio import EncodedAudioChunk
from ..models.events import RemoteEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[RemoteEvent], None]


@dataclass(frozen=True)
class LiveSessionConfig:
    """Parameters for opening a live conversational session."""
    model: str
    voice: str
    system_instruction: str
    response_modality: str = "AUDIO"
    transcribe_output: bool = True


class AbstractRemoteSession(ABC):
    """An open bidirectional session with the remote model."""

    @abstractmethod
    async def send(self, chunk: EncodedAudioChunk) -> None:
        """Send one chunk of encoded microphone audio.

        Args:
            chunk: Outbound audio in transport encoding
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Request the session to close without waiting for acknowledgement."""
        pass


class AbstractLiveBackend(ABC):
    """Abstract base class for live conversational backends."""

    @abstractmethod
    async def connect(self, config: LiveSessionConfig, on_event: EventCallback) -> AbstractRemoteSession:
        """Open a session and start delivering remote events.

        Args:
            config: Modality, voice and behavioural instruction for the session
            on_event: Called on the event loop for every remote event

        Returns:
            The open remote session

        Raises:
            ConnectionError: If the remote is unreachable or rejects the handshake
        """
        pass
