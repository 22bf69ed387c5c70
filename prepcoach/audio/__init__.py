"""Audio capture, playback and transport encoding."""

from .capture import AudioCapture
from .output import AudioOutput, ScheduledBuffer
from .playback import PlaybackQueue
from .outbound import OutboundAudioQueue

__all__ = [
    'AudioCapture',
    'AudioOutput',
    'ScheduledBuffer',
    'PlaybackQueue',
    'OutboundAudioQueue',
]
