"""Gemini Live backend for the voice interview session."""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import List, Optional

from google import genai
from google.genai import types
from websockets.exceptions import ConnectionClosedOK

from ..errors import ConnectionError
from ..models.audio import EncodedAudioChunk
from ..models.events import (
    AudioChunkEvent,
    InterruptedEvent,
    TranscriptEvent,
    TurnCompleteEvent,
    ClosedEvent,
    ErrorEvent,
    RemoteEvent,
)
from .base import AbstractLiveBackend, AbstractRemoteSession, LiveSessionConfig, EventCallback

logger = logging.getLogger(__name__)


def translate_message(message: types.LiveServerMessage) -> List[RemoteEvent]:
    """Map one LiveServerMessage to remote events, audio before interruption."""
    events: List[RemoteEvent] = []
    content = message.server_content
    if content is None:
        if message.go_away is not None:
            logger.warning(f"Gemini Live will close soon (time left: {message.go_away.time_left})")
        return events

    if content.model_turn and content.model_turn.parts:
        for part in content.model_turn.parts:
            if part.inline_data and part.inline_data.data:
                events.append(AudioChunkEvent(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type
                ))

    if content.output_transcription and content.output_transcription.text:
        events.append(TranscriptEvent(text=content.output_transcription.text))

    if content.interrupted:
        events.append(InterruptedEvent())

    if content.turn_complete:
        events.append(TurnCompleteEvent())

    return events


class GeminiLiveSession(AbstractRemoteSession):
    """Open Gemini Live session plus the task pumping its messages."""

    def __init__(self, exit_stack: AsyncExitStack, session, on_event: EventCallback):
        self._exit_stack = exit_stack
        self._session = session
        self._on_event = on_event
        self._receive_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self.is_closing = False

    def start(self) -> None:
        self._receive_task = asyncio.create_task(self._receive_loop())
        self._receive_task.set_name("GeminiLiveReceive")

    async def _receive_loop(self) -> None:
        try:
            while not self.is_closing:
                # receive() yields the messages of a single model turn
                async for message in self._session.receive():
                    for event in translate_message(message):
                        self._on_event(event)
        except ConnectionClosedOK as e:
            if not self.is_closing:
                logger.info(f"Gemini Live closed the session: {e}")
                self._on_event(ClosedEvent(reason=str(e)))
        except Exception as e:
            if not self.is_closing:
                logger.error(f"Gemini Live receive failed: {e}")
                self._on_event(ErrorEvent(message=str(e)))

    async def send(self, chunk: EncodedAudioChunk) -> None:
        await self._session.send_realtime_input(
            audio=types.Blob(data=chunk.data, mime_type=chunk.mime_type)
        )

    def close(self) -> None:
        if self.is_closing:
            return
        self.is_closing = True

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, Gemini Live connection not closed")
            return

        self._close_task = loop.create_task(self._exit_stack.aclose())
        self._close_task.add_done_callback(self._log_close_result)
        logger.info("Gemini Live session close requested")

    @staticmethod
    def _log_close_result(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error:
            logger.warning(f"Error closing Gemini Live session: {error}")
        else:
            logger.debug("Gemini Live session closed")


class GeminiLiveBackend(AbstractLiveBackend):
    """Gemini Live API backend (google-genai)."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[genai.Client] = None):
        """Initialize Gemini Live backend.

        Args:
            api_key: Gemini API key, used when no client is supplied
            client: Preconfigured google-genai client
        """
        if client is None and not api_key:
            raise ValueError("Gemini API key is required - cannot connect without credentials")
        self.client = client or genai.Client(api_key=api_key)
        self.service_name = "Gemini Live"

    @staticmethod
    def build_connect_config(config: LiveSessionConfig) -> types.LiveConnectConfig:
        return types.LiveConnectConfig(
            response_modalities=[types.Modality(config.response_modality)],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=config.voice)
                )
            ),
            system_instruction=types.Content(parts=[types.Part(text=config.system_instruction)]),
            output_audio_transcription=types.AudioTranscriptionConfig() if config.transcribe_output else None,
        )

    async def connect(self, config: LiveSessionConfig, on_event: EventCallback) -> GeminiLiveSession:
        logger.info(f"Connecting to {self.service_name}: model={config.model}, voice={config.voice}")
        connect_config = self.build_connect_config(config)

        exit_stack = AsyncExitStack()
        try:
            session = await exit_stack.enter_async_context(
                self.client.aio.live.connect(model=config.model, config=connect_config)
            )
        except Exception as e:
            await exit_stack.aclose()
            raise ConnectionError(f"Could not connect to {self.service_name}: {e}") from e

        live_session = GeminiLiveSession(exit_stack, session, on_event)
        live_session.start()
        logger.info(f"✅ Connected to {self.service_name}")
        return live_session
