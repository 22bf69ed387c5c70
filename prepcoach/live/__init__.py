"""Remote conversational session backends."""

from .base import AbstractLiveBackend, AbstractRemoteSession, LiveSessionConfig
from .gemini_backend import GeminiLiveBackend, GeminiLiveSession
from .prompts import build_interview_instruction, build_session_config

__all__ = [
    "AbstractLiveBackend",
    "AbstractRemoteSession",
    "LiveSessionConfig",
    "GeminiLiveBackend",
    "GeminiLiveSession",
    "build_interview_instruction",
    "build_session_config",
]
