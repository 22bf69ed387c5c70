"""Live interview session: microphone to remote model, streamed replies to speaker."""

import asyncio
import uuid
import logging
from datetime import datetime
from typing import Optional, Callable, List, Union

from websockets.exceptions import ConnectionClosedOK

from ..audio.capture import AudioCapture
from ..audio.codec import encode_frame, decode_chunk
from ..audio.outbound import OutboundAudioQueue
from ..audio.output import AudioOutput
from ..audio.playback import PlaybackQueue
from ..config import PrepCoachConfig
from ..errors import (
    LiveSessionError,
    DeviceError,
    ConnectionError,
    DecodeError,
    SessionStateError,
)
from ..live.base import AbstractLiveBackend, AbstractRemoteSession
from ..live.prompts import build_session_config, role_label
from ..models.audio import AudioFrame
from ..models.events import (
    AudioChunkEvent,
    InterruptedEvent,
    TranscriptEvent,
    TurnCompleteEvent,
    ClosedEvent,
    ErrorEvent,
    RemoteEvent,
)
from ..models.roles import JobRole
from ..models.session import SessionState, SessionResult
from .session_publisher import SessionPublisher

logger = logging.getLogger(__name__)


class LiveAudioSession:
    """Mediates exactly one live voice interview.

    Lifecycle: IDLE -> CONNECTING -> ACTIVE -> ENDED, with CONNECTING and
    ACTIVE able to move to FAILED. ENDED and FAILED are terminal; a new
    interview needs a new LiveAudioSession.

    All state is mutated on the event loop that ran `start()`. The capture
    thread and the output render thread only hand work over with
    `call_soon_threadsafe`.
    """

    def __init__(self,
                 config: PrepCoachConfig,
                 backend: AbstractLiveBackend,
                 capture: Optional[AudioCapture] = None,
                 output: Optional[AudioOutput] = None,
                 publisher: Optional[SessionPublisher] = None,
                 on_complete: Optional[Callable[[SessionResult], None]] = None):
        """Initialize live session.

        Args:
            config: Application configuration
            backend: Remote conversational backend to connect to
            capture: Microphone capture (built from config if omitted)
            output: Speaker output (built from config if omitted)
            publisher: Status event publisher (built from config if omitted)
            on_complete: Called once with the SessionResult of an interview that went live
        """
        self.config = config
        self.backend = backend
        self.input_sample_rate = config.get('audio.input_sample_rate', 16000)

        self.capture = capture or AudioCapture(
            sample_rate=self.input_sample_rate,
            chunk_size=config.get('audio.chunk_size', 4096),
            channels=config.get('audio.channels', 1)
        )
        self.output = output or AudioOutput(
            sample_rate=config.get('audio.output_sample_rate', 24000),
            frames_per_buffer=config.get('audio.output_frames_per_buffer', 1024)
        )
        self.publisher = publisher or SessionPublisher(config.get('live.status_topic', 'live.session'))
        self.on_complete = on_complete

        self.session_id = uuid.uuid4().hex[:12]
        self.state = SessionState.IDLE
        self.role: Optional[str] = None
        self.status_message = "Ready to start interview"
        self.error: Optional[LiveSessionError] = None
        self.result: Optional[SessionResult] = None

        # Playback scheduling
        self.next_playback_time = 0.0
        self.playback_queue = PlaybackQueue()

        # Outbound audio
        self.outbound = OutboundAudioQueue(config.get('live.max_pending_chunks', 8))
        self.remote: Optional[AbstractRemoteSession] = None

        # Statistics
        self.start_time: Optional[datetime] = None
        self.chunks_sent = 0
        self.chunks_received = 0
        self.chunks_undecodable = 0
        self.interruptions = 0

        # Model transcript for the turn in progress
        self.final_message: Optional[str] = None
        self._turn_transcript: List[str] = []

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._sender_task: Optional[asyncio.Task] = None
        self._finished: Optional[asyncio.Event] = None
        self._went_live = False
        self._torn_down = False

    @property
    def is_finished(self) -> bool:
        return self._torn_down

    async def start(self, role: Union[JobRole, str]) -> None:
        """Open the microphone, connect the remote session and go live.

        Args:
            role: Target job role the interviewer is instructed to screen for

        Raises:
            SessionStateError: If this session was already started
            DeviceError: If the microphone or speaker is unavailable
            ConnectionError: If the remote session cannot be opened
        """
        if self.state is not SessionState.IDLE:
            raise SessionStateError(
                f"Session is {self.state.value}; create a new session to start another interview")

        session_config = build_session_config(self.config, role)
        self.role = role_label(role)
        self._loop = asyncio.get_running_loop()
        self._finished = asyncio.Event()
        self.start_time = datetime.now()
        self._set_state(SessionState.CONNECTING, "Connecting to AI Coach...")

        try:
            self.capture.request_access()
            self.output.open(dispatch=self._loop.call_soon_threadsafe)
            # Frames captured during the handshake wait in the bounded outbound queue
            self.capture.start_recording(self._on_capture_thread_frame, self._on_capture_thread_error)
        except DeviceError as e:
            self._fail(e, "Failed to access microphone or speaker.")
            raise

        try:
            remote = await self.backend.connect(session_config, self.on_remote_event)
        except ConnectionError as e:
            if self._torn_down:
                # Already stopped or failed while the handshake was in flight
                logger.info(f"Handshake failed after session {self.session_id} was torn down: {e}")
                if self.error is not None:
                    raise self.error
                return
            self._fail(e, "Failed to connect to the AI Coach. Please try again.")
            raise

        if self._torn_down:
            # Stopped or failed while the handshake was in flight
            remote.close()
            if self.error is not None:
                raise self.error
            return

        self.remote = remote
        self._went_live = True
        self._set_state(SessionState.ACTIVE, "Interview in progress. Speak clearly.")
        self._sender_task = self._loop.create_task(self._send_loop())

    def on_capture_frame(self, frame: AudioFrame) -> None:
        """Encode a captured frame and queue it for sending. Never blocks."""
        if self.state not in (SessionState.CONNECTING, SessionState.ACTIVE):
            return
        chunk = encode_frame(frame.samples, self.input_sample_rate, frame.frame_number)
        self.outbound.put(chunk)

    def on_remote_event(self, event: RemoteEvent) -> None:
        """Handle one message from the remote session."""
        if self.state is not SessionState.ACTIVE:
            logger.debug(f"Ignoring {type(event).__name__} in state {self.state.value}")
            return

        if isinstance(event, AudioChunkEvent):
            self._play_chunk(event)
        elif isinstance(event, InterruptedEvent):
            self._interrupt()
        elif isinstance(event, TranscriptEvent):
            self._turn_transcript.append(event.text)
        elif isinstance(event, TurnCompleteEvent):
            self._complete_turn()
        elif isinstance(event, ClosedEvent):
            logger.info(f"Remote closed the session: {event.reason or 'no reason given'}")
            self._teardown()
        elif isinstance(event, ErrorEvent):
            self._fail(ConnectionError(event.message), "Connection error. Please try again.")
        else:
            logger.warning(f"Unknown remote event: {event!r}")

    def stop(self) -> Optional[SessionResult]:
        """Tear the session down. Idempotent and safe from any state.

        Returns:
            The SessionResult, or None if the session was never started
        """
        if self.state is SessionState.IDLE:
            logger.debug("stop() called on a session that was never started")
            return None
        if self._torn_down:
            return self.result

        logger.info(f"Stopping live session {self.session_id}")
        return self._teardown()

    async def wait_finished(self) -> None:
        """Wait until the session has been torn down."""
        if self._finished is not None:
            await self._finished.wait()

    def _play_chunk(self, event: AudioChunkEvent) -> None:
        self.chunks_received += 1
        try:
            samples = decode_chunk(event.data, self.output.sample_rate, event.mime_type)
        except DecodeError as e:
            self.chunks_undecodable += 1
            logger.warning(f"Dropping undecodable audio chunk: {e}")
            return

        # Back-to-back after what is queued, but never in the past
        start_time = max(self.next_playback_time, self.output.current_time)
        buffer = self.output.schedule(samples, start_time, on_ended=self.playback_queue.discard)
        self.next_playback_time = buffer.end_time
        self.playback_queue.add(buffer)

    def _interrupt(self) -> None:
        stopped = self.playback_queue.stop_all()
        self.next_playback_time = self.output.current_time
        self.interruptions += 1
        self._turn_transcript.clear()
        logger.info(f"Interrupted: stopped {stopped} buffers, playback resumes at {self.next_playback_time:.3f}s")

    def _complete_turn(self) -> None:
        text = "".join(self._turn_transcript).strip()
        self._turn_transcript.clear()
        if text:
            self.final_message = text
            self.publisher.publish("transcript", self.state.value, text)

    async def _send_loop(self) -> None:
        while self.state is SessionState.ACTIVE:
            chunk = await self.outbound.get()
            try:
                await self.remote.send(chunk)
            except ConnectionClosedOK as e:
                # Remote closed normally before the receive side reported it
                self.on_remote_event(ClosedEvent(reason=str(e)))
                return
            except Exception as e:
                self.on_remote_event(ErrorEvent(message=f"Failed to send audio: {e}"))
                return
            self.chunks_sent += 1
            logger.debug(f"Sent chunk {chunk.sequence_number} ({chunk.duration_seconds:.3f}s)")

    def _on_capture_thread_frame(self, frame: AudioFrame) -> None:
        # Runs on the capture thread
        try:
            self._loop.call_soon_threadsafe(self.on_capture_frame, frame)
        except RuntimeError:
            logger.debug("Event loop closed, dropping captured frame")

    def _on_capture_thread_error(self, error: Exception) -> None:
        try:
            self._loop.call_soon_threadsafe(self._on_device_error, error)
        except RuntimeError:
            logger.debug(f"Event loop closed, device error not delivered: {error}")

    def _on_device_error(self, error: Exception) -> None:
        if self.state in (SessionState.CONNECTING, SessionState.ACTIVE):
            self._fail(error, "Microphone stopped working.")

    def _set_state(self, state: SessionState, message: str, event_type: str = "state_changed", **metadata) -> None:
        logger.info(f"Session {self.session_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.status_message = message
        self.publisher.publish(event_type, state.value, message, session_id=self.session_id, **metadata)

    def _fail(self, error: LiveSessionError, message: str) -> None:
        if self._torn_down:
            return
        logger.error(f"Session {self.session_id} failed: {error}")
        self.error = error
        self._set_state(SessionState.FAILED, message, event_type="error", error=str(error))
        self._teardown()

    def _teardown(self) -> SessionResult:
        self._torn_down = True

        steps = [
            ("capture", self.capture.release),
            ("playback", self.playback_queue.stop_all),
            ("remote", self._close_remote),
            ("output", self.output.close),
            ("sender", self._cancel_sender),
        ]
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.warning(f"Error during {name} teardown: {e}")

        if not self.state.is_terminal:
            self._set_state(SessionState.ENDED, "Interview ended.")

        self.result = self._build_result()
        if self._finished is not None:
            self._finished.set()

        self.publisher.publish("completed", self.state.value, self.status_message,
                               session_id=self.session_id, result=self.result)
        if self._went_live and self.on_complete:
            try:
                self.on_complete(self.result)
            except Exception as e:
                logger.warning(f"Error in session completion callback: {e}")
        return self.result

    def _close_remote(self) -> None:
        if self.remote is not None:
            self.remote.close()

    def _cancel_sender(self) -> None:
        cleared = self.outbound.clear()
        if cleared:
            logger.debug(f"Discarded {cleared} unsent audio chunks")
        if self._sender_task is not None and not self._sender_task.done():
            self._sender_task.cancel()

    def _build_result(self) -> SessionResult:
        end_time = datetime.now()
        duration = (end_time - self.start_time).total_seconds() if self.start_time else 0.0
        return SessionResult(
            session_id=self.session_id,
            role=self.role or "",
            state=self.state,
            start_time=self.start_time,
            end_time=end_time,
            duration_seconds=duration,
            chunks_sent=self.chunks_sent,
            chunks_received=self.chunks_received,
            chunks_dropped=self.outbound.dropped,
            chunks_undecodable=self.chunks_undecodable,
            interruptions=self.interruptions,
            final_message=self.final_message,
            error=str(self.error) if self.error else None,
        )
