"""Exceptions raised by the live interview session."""


class LiveSessionError(Exception):
    """Base class for live session errors."""


class DeviceError(LiveSessionError):
    """Microphone or speaker unavailable, or access denied."""


class ConnectionError(LiveSessionError):
    """Remote session handshake failed or the transport broke mid-session."""


class DecodeError(LiveSessionError):
    """Inbound audio chunk could not be decoded."""


class SessionStateError(LiveSessionError):
    """Operation not allowed in the session's current state."""
