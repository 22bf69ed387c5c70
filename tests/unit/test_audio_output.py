"""Unit tests for AudioOutput, ScheduledBuffer and PlaybackQueue."""

import threading
from unittest.mock import Mock

import pytest
import numpy as np
import pyaudio

from prepcoach.audio.output import AudioOutput, ScheduledBuffer
from prepcoach.audio.playback import PlaybackQueue
from prepcoach.errors import DeviceError


def render(output: AudioOutput, frames: int) -> np.ndarray:
    data, flag = output._render(None, frames, {}, 0)
    assert flag == pyaudio.paContinue
    return np.frombuffer(data, dtype=np.float32)


def make_buffer(start_time: float = 0.0, samples: int = 100, sample_rate: int = 1000) -> ScheduledBuffer:
    return ScheduledBuffer(np.ones(samples, dtype=np.float32), start_time, sample_rate, threading.Lock())


@pytest.mark.unit
class TestAudioOutput:

    def test_initialization(self):
        output = AudioOutput()

        assert output.sample_rate == 24000
        assert output.channels == 1
        assert output.is_open is False
        assert output.current_time == 0.0

    def test_open_configures_float32_output_stream(self, mock_pyaudio):
        output = AudioOutput(sample_rate=24000, frames_per_buffer=512)

        output.open()

        kwargs = mock_pyaudio['instance'].open.call_args.kwargs
        assert kwargs['format'] == pyaudio.paFloat32
        assert kwargs['rate'] == 24000
        assert kwargs['output'] is True
        assert kwargs['frames_per_buffer'] == 512
        assert kwargs['stream_callback'] == output._render
        assert output.is_open

    def test_open_without_device_raises_device_error(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError("No Default Output Device Available")
        output = AudioOutput()

        with pytest.raises(DeviceError):
            output.open()

        assert output.is_open is False
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_close_is_idempotent(self, mock_pyaudio):
        output = AudioOutput()
        output.open()

        output.close()
        output.close()

        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_render_advances_clock(self):
        output = AudioOutput(sample_rate=1000)

        render(output, 250)
        render(output, 250)

        assert output.current_time == pytest.approx(0.5)

    def test_render_silence_without_buffers(self):
        output = AudioOutput(sample_rate=1000)

        out = render(output, 64)

        assert len(out) == 64
        assert not out.any()

    def test_render_places_buffer_at_its_start_time(self):
        output = AudioOutput(sample_rate=1000)
        output.schedule(np.full(100, 0.25, dtype=np.float32), start_time=0.025)

        out = render(output, 50)

        assert not out[:25].any()
        assert np.allclose(out[25:], 0.25)

    def test_render_mixes_and_clips_overlapping_buffers(self):
        output = AudioOutput(sample_rate=1000)
        output.schedule(np.full(10, 0.75, dtype=np.float32), start_time=0.0)
        output.schedule(np.full(10, 0.75, dtype=np.float32), start_time=0.0)

        out = render(output, 10)

        assert np.allclose(out, 1.0)

    def test_buffer_spanning_windows_plays_continuously(self):
        output = AudioOutput(sample_rate=1000)
        output.schedule(np.arange(100, dtype=np.float32) / 1000, start_time=0.0)

        first = render(output, 60)
        second = render(output, 60)

        assert np.allclose(np.concatenate([first, second[:40]]), np.arange(100) / 1000)
        assert not second[40:].any()

    def test_ended_callback_fires_once_after_end(self):
        output = AudioOutput(sample_rate=1000)
        on_ended = Mock()
        buffer = output.schedule(np.ones(100, dtype=np.float32), start_time=0.0, on_ended=on_ended)

        render(output, 60)
        on_ended.assert_not_called()

        render(output, 60)
        render(output, 60)

        on_ended.assert_called_once_with(buffer)
        assert buffer.is_ended
        assert output.active_buffers == []

    def test_stopped_buffer_is_silent_and_never_ends(self):
        output = AudioOutput(sample_rate=1000)
        on_ended = Mock()
        buffer = output.schedule(np.ones(100, dtype=np.float32), start_time=0.0, on_ended=on_ended)

        assert buffer.stop() is True
        out = render(output, 200)

        assert not out.any()
        on_ended.assert_not_called()
        assert buffer.is_ended is False

    def test_ended_callbacks_go_through_dispatcher(self, mock_pyaudio):
        dispatched = []
        output = AudioOutput(sample_rate=1000)
        output.open(dispatch=dispatched.append)
        on_ended = Mock()
        output.schedule(np.ones(10, dtype=np.float32), start_time=0.0, on_ended=on_ended)

        render(output, 10)

        assert len(dispatched) == 1
        on_ended.assert_not_called()
        dispatched[0]()
        on_ended.assert_called_once()

    def test_stereo_output_duplicates_mono(self):
        output = AudioOutput(sample_rate=1000, channels=2)
        output.schedule(np.full(4, 0.5, dtype=np.float32), start_time=0.0)

        out = render(output, 4)

        assert len(out) == 8
        assert np.allclose(out, 0.5)


@pytest.mark.unit
class TestScheduledBuffer:

    def test_timing(self):
        buffer = make_buffer(start_time=0.5, samples=250)

        assert buffer.duration == pytest.approx(0.25)
        assert buffer.end_time == pytest.approx(0.75)
        assert buffer.start_frame == 500

    def test_stop_twice_returns_false(self):
        buffer = make_buffer()

        assert buffer.stop() is True
        assert buffer.stop() is False

    def test_stop_after_end_returns_false(self):
        buffer = make_buffer()
        buffer.is_ended = True

        assert buffer.stop() is False
        assert buffer.is_stopped is False


@pytest.mark.unit
class TestPlaybackQueue:

    def test_discard_removes_finished_buffer(self):
        queue = PlaybackQueue()
        buffer = make_buffer()
        queue.add(buffer)

        queue.discard(buffer)

        assert len(queue) == 0
        assert queue.completed == 1

    def test_discard_unknown_buffer_is_ignored(self):
        queue = PlaybackQueue()

        queue.discard(make_buffer())

        assert queue.completed == 0

    def test_stop_all_stops_and_clears(self):
        queue = PlaybackQueue()
        buffers = [make_buffer(start_time=i * 0.1) for i in range(3)]
        for buffer in buffers:
            queue.add(buffer)

        stopped = queue.stop_all()

        assert stopped == 3
        assert len(queue) == 0
        assert all(buffer.is_stopped for buffer in buffers)

    def test_buffer_leaves_queue_exactly_once(self):
        queue = PlaybackQueue()
        buffer = make_buffer()
        queue.add(buffer)

        queue.stop_all()
        # A late completion notice for the stopped buffer changes nothing
        queue.discard(buffer)

        assert queue.stopped == 1
        assert queue.completed == 0

    def test_stop_all_skips_buffers_already_stopped(self):
        queue = PlaybackQueue()
        buffer = make_buffer()
        buffer.stop()
        queue.add(buffer)

        assert queue.stop_all() == 0
        assert len(queue) == 0
