"""Real hardware tests for microphone capture and speaker playback.

These tests require an actual microphone and speaker and are skipped
unless pytest is run with --run-hardware.

Run with: pytest tests/hardware/ -v -s --run-hardware
"""

import time

import pytest
import numpy as np

from prepcoach.audio.capture import AudioCapture
from prepcoach.audio.output import AudioOutput


@pytest.mark.hardware
class TestRealAudioHardware:
    """Tests that require real audio hardware to run."""

    def test_real_microphone_capture_3s(self):
        """Capture three seconds from the default microphone.

        Verifies that:
        1. Access to the real input device is granted
        2. Frames arrive at roughly the expected rate
        3. Every frame holds exactly one chunk of float32 samples
        """
        print("\n" + "="*60)
        print("HARDWARE TEST: 3-second microphone capture")
        print("="*60)

        capture = AudioCapture(sample_rate=16000, chunk_size=4096, channels=1)
        frames = []

        capture.request_access()
        try:
            capture.start_recording(frames.append)
            time.sleep(3.0)
        finally:
            capture.release()

        stats = capture.get_recording_stats()
        peak = max((float(np.abs(frame.samples).max()) for frame in frames), default=0.0)
        print("Capture stats:")
        print(f"  Duration: {stats.duration_seconds:.2f} seconds")
        print(f"  Total frames: {stats.total_chunks}")
        print(f"  Peak level: {peak:.3f}")

        # 16000 / 4096 is about 3.9 frames per second
        assert len(frames) >= 8, f"Expected at least 8 frames in 3 seconds, got {len(frames)}"
        assert all(len(frame.samples) == 4096 for frame in frames)
        assert all(frame.samples.dtype == np.float32 for frame in frames)
        if peak == 0.0:
            print("⚠️  Warning: captured pure silence - check the microphone is not muted")

    def test_real_speaker_plays_scheduled_tone(self):
        """Schedule two back-to-back tones and let the device clock play them out."""
        output = AudioOutput(sample_rate=24000)
        ended = []

        t = np.arange(12000) / 24000
        tone = (0.2 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)

        output.open()
        try:
            first = output.schedule(tone, 0.1, on_ended=ended.append)
            output.schedule(tone, first.end_time, on_ended=ended.append)
            time.sleep(1.5)
            clock = output.current_time
        finally:
            output.close()

        print(f"Output clock after 1.5s: {clock:.3f}s")
        assert clock > 1.0
        assert len(ended) == 2
