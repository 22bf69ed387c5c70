"""Pytest configuration and fixtures for prepcoach tests."""

import pytest
import tempfile
import asyncio
import uuid
import logging
from pathlib import Path
from typing import List, Optional, Callable
from unittest.mock import Mock, MagicMock, patch
import numpy as np

from prepcoach.config import PrepCoachConfig
from prepcoach.errors import ConnectionError
from prepcoach.live.base import AbstractLiveBackend, AbstractRemoteSession, LiveSessionConfig
from prepcoach.models.audio import EncodedAudioChunk
from prepcoach.services.session_publisher import SessionPublisher


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TEST_CONFIG_YAML = """
gemini:
  api_key_env: PREPCOACH_TEST_API_KEY
  model: test-live-model
  voice: Kore
  transcribe_output: true
audio:
  input_sample_rate: 16000
  output_sample_rate: 24000
  chunk_size: 4096
  channels: 1
live:
  max_pending_chunks: 8
logging:
  level: DEBUG
  file_path: logs/prepcoach.log
  console_output: false
"""


def pytest_addoption(parser):
    parser.addoption("--run-hardware", action="store_true", default=False,
                     help="Run tests that need a real microphone and speaker")


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with mocked audio hardware")
    config.addinivalue_line("markers", "integration: end-to-end tests with mocked audio hardware")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-hardware"):
        return
    skip_hardware = pytest.mark.skip(reason="needs --run-hardware")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def config_file(temp_data_dir):
    """Write the test configuration to a YAML file."""
    path = Path(temp_data_dir) / "prepcoach.yaml"
    path.write_text(TEST_CONFIG_YAML, encoding="utf-8")
    return path


@pytest.fixture
def prep_config(config_file):
    """Loaded test configuration."""
    return PrepCoachConfig(str(config_file))


@pytest.fixture
def sample_frame():
    """One 4096-sample capture frame (440 Hz sine at 16 kHz) as float32."""
    t = np.arange(4096) / 16000
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def pcm_chunk():
    """Build 24 kHz 16-bit PCM bytes of a given duration."""
    def make(seconds: float, sample_rate: int = 24000, value: int = 1000) -> bytes:
        samples = int(round(seconds * sample_rate))
        return np.full(samples, value, dtype='<i2').tobytes()

    return make


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Silent float32 audio, 4096 samples
        mock_stream.read.return_value = np.zeros(4096, dtype=np.float32).tobytes()
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"index": 0, "name": "Mock Mic"}

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def mock_capture():
    """Mock AudioCapture that grants access and never spawns a thread."""
    mock = MagicMock()
    mock.sample_rate = 16000
    mock.chunk_size = 4096
    mock.channels = 1
    mock.is_recording = False
    return mock


@pytest.fixture
def publisher():
    """Session publisher on a topic unique to the test."""
    return SessionPublisher(f"test.session.{uuid.uuid4().hex}")


class FakeRemoteSession(AbstractRemoteSession):
    """Records outbound chunks and close requests."""

    def __init__(self, send_error: Optional[Exception] = None):
        self.sent: List[EncodedAudioChunk] = []
        self.close_calls = 0
        self.send_error = send_error

    async def send(self, chunk: EncodedAudioChunk) -> None:
        if self.send_error:
            raise self.send_error
        self.sent.append(chunk)

    def close(self) -> None:
        self.close_calls += 1


class FakeLiveBackend(AbstractLiveBackend):
    """Backend that connects instantly, or fails the handshake."""

    def __init__(self, fail: bool = False, during_connect: Optional[Callable[[], None]] = None):
        self.fail = fail
        self.during_connect = during_connect
        self.connect_calls = 0
        self.config: Optional[LiveSessionConfig] = None
        self.on_event = None
        self.remote = FakeRemoteSession()

    async def connect(self, config, on_event):
        self.connect_calls += 1
        self.config = config
        self.on_event = on_event
        if self.during_connect:
            self.during_connect()
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("Handshake rejected")
        return self.remote


@pytest.fixture
def fake_backend():
    return FakeLiveBackend()


async def drain_loop(iterations: int = 5) -> None:
    """Let callbacks and tasks queued on the running loop run."""
    for _ in range(iterations):
        await asyncio.sleep(0)
