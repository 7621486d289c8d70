"""Microphone capture that hands out audio in on-demand chunks."""

import pyaudio
import time
import logging
import threading
from threading import Thread, Event
from typing import Optional
from ..models.audio import AudioChunk
import numpy as np


logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous microphone capture segmented into chunks on request.

    A background thread reads PCM frames from PyAudio into a pending buffer.
    ``request_data()`` hands out everything captured since the previous
    request as one AudioChunk; ``stop_recording()`` releases the device and
    hands out the remainder.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            sample_rate: Audio sample rate (16kHz for Whisper compatibility)
            chunk_size: Frames read from the device per read
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Frames captured since the last request_data()
        self.pending = bytearray()
        self.lock = threading.Lock()
        self.sequence_number = 0

        # Statistics tracking
        self.total_frames = 0
        self.total_bytes = 0
        self.peak_level = 0.0
        self.error: Optional[BaseException] = None

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def start_recording(self) -> None:
        """Open the microphone and start reading in a background thread.

        Raises:
            OSError: If the input device cannot be opened
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.total_frames = 0
        self.total_bytes = 0
        self.sequence_number = 0
        self.error = None
        with self.lock:
            self.pending.clear()

        # Open on the caller's thread so device errors surface here
        self.stream = self.__open_audio_stream()

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def request_data(self) -> Optional[AudioChunk]:
        """Hand out the audio captured since the last request.

        Returns:
            AudioChunk, or None if nothing was captured
        """
        with self.lock:
            if not self.pending:
                return None
            data = bytes(self.pending)
            self.pending.clear()

        self.sequence_number += 1
        chunk = AudioChunk(data=data, timestamp=time.time(), sequence_number=self.sequence_number)
        logger.debug(f"Audio chunk {chunk.sequence_number}: {chunk.size} bytes")
        return chunk

    def stop_recording(self) -> Optional[AudioChunk]:
        """Stop recording, release the device and hand out the final chunk."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return None

        logger.info("Stopping audio recording")
        self.stop_event.set()

        try:
            if self.recording_thread and self.recording_thread.is_alive():
                self.recording_thread.join(timeout=2.0)
                if self.recording_thread.is_alive():
                    logger.warning("Recording thread did not stop cleanly")
        finally:
            self._release()
            self.is_recording = False

        logger.info(f"Recording stopped. Total frames: {self.total_frames}, bytes: {self.total_bytes}")
        return self.request_data()

    def __open_audio_stream(self):
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except Exception:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
            raise
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/read")
        return stream

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                audio_data = self.stream.read(self.chunk_size, exception_on_overflow=False)
                self.total_frames += 1
                self.total_bytes += len(audio_data)
                self.peak_level = self._peak(audio_data)
                with self.lock:
                    self.pending.extend(audio_data)
        except Exception as e:
            logger.error(f"Audio capture failed: {e}", exc_info=True)
            self.error = e

    def _release(self) -> None:
        """Close the stream and terminate PyAudio."""
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            finally:
                self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    @staticmethod
    def _peak(audio_data: bytes) -> float:
        """Peak level of a 16-bit PCM frame in the range 0.0-1.0."""
        samples = np.frombuffer(audio_data, dtype=np.int16)
        if samples.size == 0:
            return 0.0
        return float(np.abs(samples.astype(np.int32)).max()) / 32768.0

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if self.is_recording:
            self.stop_recording()
