"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int


@dataclass
class AudioFrame:
    """A single block of captured samples with timestamp."""
    samples: np.ndarray  # float32, mono
    timestamp: float  # Time when this frame was captured
    frame_number: int


@dataclass(frozen=True)
class EncodedAudioChunk:
    """Outbound audio in transport encoding (16-bit little-endian PCM)."""
    data: bytes
    mime_type: str
    sample_rate: int
    sequence_number: int = 0

    @property
    def duration_seconds(self) -> float:
        # 2 bytes per mono sample
        return len(self.data) / (2 * self.sample_rate)
