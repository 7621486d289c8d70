"""Pytest configuration and fixtures for SpeakWrite tests."""

import asyncio
import pytest
import tempfile
import threading
import logging
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np

from speakwrite.config import SpeakWriteConfig
from speakwrite.errors import PersistenceError
from speakwrite.models.audio import AudioChunk
from speakwrite.storage.record_store import RecordStore
from speakwrite.transcription.base import AbstractTranscriptionBackend


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", num_bytes=32000, sample_rate=16000):
        """Generate 16-bit PCM of (about) the requested byte length.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            num_bytes: Length of the returned audio in bytes (rounded down to even)
            sample_rate: Sample rate in Hz
        """
        samples = num_bytes // 2
        duration_seconds = samples / sample_rate

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = np.sin(2 * np.pi * 440 * t)
        elif pattern == "noise":
            wave_data = np.random.uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return (wave_data * 32767).astype(np.int16).tobytes()

    return generate_audio


@pytest.fixture
def make_chunk():
    """Build AudioChunks with increasing sequence numbers."""
    counter = {"n": 0}

    def _make(size: int, fill: bytes = b'\x01') -> AudioChunk:
        counter["n"] += 1
        return AudioChunk(data=fill * size, timestamp=float(counter["n"]), sequence_number=counter["n"])

    return _make


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def record_store(temp_data_dir):
    return RecordStore(temp_data_dir)


@pytest.fixture
def test_config(temp_data_dir):
    """Config pointing storage and logs at a temp directory."""
    config = SpeakWriteConfig(environ={})
    config.set('storage.data_directory', temp_data_dir)
    config.set('logging.file_path', f"{temp_data_dir}/logs/speakwrite.log")
    config.set('auth.jwt_secret', 'test-secret')
    return config


class FakeCapture:
    """Stands in for AudioCapture: hands out scripted chunks."""

    def __init__(self, chunks: Optional[List[bytes]] = None, residual: bytes = b"",
                 fail_on_start: Optional[Exception] = None):
        self.chunks = list(chunks or [])
        self.residual = residual
        self.fail_on_start = fail_on_start
        self.is_recording = False
        self.peak_level = 0.25
        self.start_calls = 0
        self.stop_calls = 0
        self.sequence_number = 0
        self.error: Optional[Exception] = None
        self.stop_threads: List[str] = []

    def _chunk(self, data: bytes) -> AudioChunk:
        self.sequence_number += 1
        return AudioChunk(data=data, timestamp=float(self.sequence_number),
                          sequence_number=self.sequence_number)

    def start_recording(self):
        self.start_calls += 1
        if self.fail_on_start is not None:
            raise self.fail_on_start
        self.is_recording = True

    def request_data(self) -> Optional[AudioChunk]:
        if not self.chunks:
            return None
        return self._chunk(self.chunks.pop(0))

    def stop_recording(self) -> Optional[AudioChunk]:
        self.stop_calls += 1
        self.stop_threads.append(threading.current_thread().name)
        self.is_recording = False
        return self._chunk(self.residual) if self.residual else None


class FakeApiClient:
    """Stands in for ApiClient: returns scripted transcriptions."""

    def __init__(self, responses: Optional[List[str]] = None, save_error: Optional[str] = None,
                 delays: Optional[List[float]] = None):
        self.responses = list(responses or [])
        self.delays = list(delays or [])
        self.save_error = save_error
        self.uploads: List[bytes] = []
        self.previous_texts: List[str] = []
        self.saved: List[tuple] = []

    async def transcribe_chunk(self, audio: bytes, previous_text: str = "", filename: str = "slice.wav") -> str:
        self.uploads.append(audio)
        self.previous_texts.append(previous_text)
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))
        return self.responses.pop(0) if self.responses else ""

    async def save_transcript(self, text: str, audio_size: int) -> str:
        if self.save_error:
            raise PersistenceError(self.save_error)
        self.saved.append((text, audio_size))
        return text


class FakeBackend(AbstractTranscriptionBackend):
    """Transcription backend that records calls and returns canned text."""

    def __init__(self, text: str = "hello world", error: Optional[Exception] = None, configured: bool = True):
        self.text = text
        self.error = error
        self.configured = configured
        self.calls: List[dict] = []
        self.closed = False

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def transcribe(self, audio: bytes, filename: str, prompt: str = "") -> str:
        self.calls.append({"audio": audio, "filename": filename, "prompt": prompt})
        if self.error is not None:
            raise self.error
        return self.text

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_capture_factory():
    return FakeCapture


@pytest.fixture
def fake_client_factory():
    return FakeApiClient


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def fake_backend_factory():
    return FakeBackend
