"""Microphone capture delivering fixed-size float32 frames from a background thread."""

import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime
import numpy as np

from ..errors import DeviceError
from ..models.audio import AudioStats, AudioFrame

logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous microphone capture handing each frame to a callback."""

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 4096,
        channels: int = 1,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            sample_rate: Capture sample rate (16kHz for the live session input)
            chunk_size: Number of samples per delivered frame
            channels: Number of device channels; only the first is delivered
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels

        self.frame_callback: Optional[Callable[[AudioFrame], None]] = None
        self.error_callback: Optional[Callable[[Exception], None]] = None

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

        # PyAudio instance and input stream, owned between request_access() and release()
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None

    @property
    def has_access(self) -> bool:
        return self.stream is not None

    def request_access(self) -> None:
        """Open the microphone input stream.

        Raises:
            DeviceError: If no input device is available or access is denied
        """
        if self.stream is not None:
            return

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            # Raises OSError when the host has no default input device
            self.pyaudio_instance.get_default_input_device_info()
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except OSError as e:
            self._terminate()
            raise DeviceError(f"Microphone unavailable: {e}") from e

        logger.info(f"Microphone stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

    def start_recording(self,
                        callback: Callable[[AudioFrame], None],
                        error_callback: Optional[Callable[[Exception], None]] = None) -> None:
        """Start continuous recording in background thread.

        Args:
            callback: Called from the capture thread with every AudioFrame
            error_callback: Called from the capture thread if the device fails
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return
        if self.stream is None:
            raise DeviceError("Microphone access has not been granted")

        logger.info("Starting audio recording")
        self.frame_callback = callback
        self.error_callback = error_callback
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def stop_recording(self) -> None:
        """Stop the capture thread. Safe to call when not recording."""
        if not self.is_recording:
            logger.debug("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")

    def release(self) -> None:
        """Close the input stream and release the device. Safe to call twice."""
        if self.is_recording:
            self.stop_recording()

        if self.stream is not None:
            stream, self.stream = self.stream, None
            try:
                stream.stop_stream()
            finally:
                stream.close()
            logger.info("Microphone released")
        self._terminate()

    def _terminate(self) -> None:
        if self.pyaudio_instance is not None:
            instance, self.pyaudio_instance = self.pyaudio_instance, None
            instance.terminate()

    def _read_frame(self) -> AudioFrame:
        raw = self.stream.read(self.chunk_size, exception_on_overflow=False)
        samples = np.frombuffer(raw, dtype=np.float32)
        if self.channels > 1:
            # Deliver the first channel only
            samples = samples[::self.channels]

        frame = AudioFrame(
            samples=samples,
            timestamp=time.time(),
            frame_number=self.total_chunks
        )
        self.total_chunks += 1
        return frame

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                frame = self._read_frame()
                self.frame_callback(frame)
        except OSError as e:
            logger.error(f"Microphone read failed: {e}")
            if self.error_callback:
                self.error_callback(DeviceError(f"Microphone read failed: {e}"))

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
        )

    def __del__(self):
        """Ensure the capture thread is stopped on deletion."""
        if self.is_recording:
            self.stop_recording()
