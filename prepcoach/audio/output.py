"""Speaker output with a sample-accurate clock and scheduled playback buffers."""

import logging
import threading
from typing import Optional, Callable, List

import numpy as np
import pyaudio

from ..errors import DeviceError

logger = logging.getLogger(__name__)

Dispatcher = Callable[..., object]


def _call_now(callback: Callable, *args) -> None:
    callback(*args)


class ScheduledBuffer:
    """A block of samples scheduled to start at a point on the output clock.

    A buffer finishes exactly one way: it ends naturally once the clock passes
    its end, or it is stopped. Stopped buffers never report ended.
    """

    def __init__(self,
                 samples: np.ndarray,
                 start_time: float,
                 sample_rate: int,
                 lock: threading.Lock,
                 on_ended: Optional[Callable[['ScheduledBuffer'], None]] = None):
        self.samples = samples
        self.start_time = start_time
        self.sample_rate = sample_rate
        self.start_frame = int(round(start_time * sample_rate))
        self.on_ended = on_ended
        self.is_stopped = False
        self.is_ended = False
        self._lock = lock

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def stop(self) -> bool:
        """Stop playback. Returns False if the buffer already ended or was stopped."""
        with self._lock:
            if self.is_stopped or self.is_ended:
                return False
            self.is_stopped = True
            return True

    def _notify_ended(self) -> None:
        if self.on_ended:
            self.on_ended(self)

    def __repr__(self) -> str:
        return (f"ScheduledBuffer(start={self.start_time:.3f}s, duration={self.duration:.3f}s, "
                f"stopped={self.is_stopped}, ended={self.is_ended})")


class AudioOutput:
    """PyAudio output stream that mixes scheduled buffers against its own clock.

    The clock (`current_time`) is the number of frames handed to the device
    divided by the sample rate, so it starts at 0.0 when the stream opens.
    """

    def __init__(self,
                 sample_rate: int = 24000,
                 channels: int = 1,
                 frames_per_buffer: int = 1024):
        """Initialize audio output.

        Args:
            sample_rate: Playback sample rate in Hz
            channels: Output channels; mono content is copied to each
            frames_per_buffer: Frames requested per render callback
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_buffer = frames_per_buffer

        self.lock = threading.Lock()
        self.active_buffers: List[ScheduledBuffer] = []
        self.frames_rendered = 0
        self.dispatch: Dispatcher = _call_now

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None

    @property
    def is_open(self) -> bool:
        return self.stream is not None

    @property
    def current_time(self) -> float:
        with self.lock:
            return self.frames_rendered / self.sample_rate

    def open(self, dispatch: Optional[Dispatcher] = None) -> None:
        """Open the output stream.

        Args:
            dispatch: Used to run buffer completion callbacks, e.g. an event
                loop's call_soon_threadsafe. Defaults to calling them directly
                from the render thread.

        Raises:
            DeviceError: If no output device is available
        """
        if self.stream is not None:
            return
        self.dispatch = dispatch or _call_now

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                output=True,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._render
            )
        except OSError as e:
            self._terminate()
            raise DeviceError(f"Speaker unavailable: {e}") from e

        logger.info(f"Audio output opened: {self.sample_rate}Hz, {self.channels} channel(s)")

    def schedule(self,
                 samples: np.ndarray,
                 start_time: float,
                 on_ended: Optional[Callable[[ScheduledBuffer], None]] = None) -> ScheduledBuffer:
        """Schedule samples to start playing at start_time on the output clock."""
        buffer = ScheduledBuffer(samples, start_time, self.sample_rate, self.lock, on_ended)
        with self.lock:
            self.active_buffers.append(buffer)
        logger.debug(f"Scheduled {buffer}")
        return buffer

    def _render(self, in_data, frame_count, time_info, status):
        """PyAudio stream callback: mix every buffer overlapping the next window."""
        out = np.zeros(frame_count, dtype=np.float32)
        finished = []

        with self.lock:
            window_start = self.frames_rendered
            window_end = window_start + frame_count
            still_active = []

            for buffer in self.active_buffers:
                if buffer.is_stopped:
                    continue

                buffer_end = buffer.start_frame + len(buffer.samples)
                lo = max(buffer.start_frame, window_start)
                hi = min(buffer_end, window_end)
                if hi > lo:
                    out[lo - window_start:hi - window_start] += \
                        buffer.samples[lo - buffer.start_frame:hi - buffer.start_frame]

                if buffer_end <= window_end:
                    buffer.is_ended = True
                    finished.append(buffer)
                else:
                    still_active.append(buffer)

            self.active_buffers = still_active
            self.frames_rendered = window_end

        for buffer in finished:
            self.dispatch(buffer._notify_ended)

        np.clip(out, -1.0, 1.0, out=out)
        if self.channels > 1:
            out = np.repeat(out, self.channels)
        return (out.tobytes(), pyaudio.paContinue)

    def close(self) -> None:
        """Stop the stream and release the device. Safe to call twice."""
        if self.stream is not None:
            stream, self.stream = self.stream, None
            try:
                stream.stop_stream()
            finally:
                stream.close()
            logger.info("Audio output closed")
        self._terminate()

        with self.lock:
            self.active_buffers = []

    def _terminate(self) -> None:
        if self.pyaudio_instance is not None:
            instance, self.pyaudio_instance = self.pyaudio_instance, None
            instance.terminate()
