"""Recording session: capture, batch, transcribe, merge and save."""

import asyncio
import logging
from typing import Callable, Optional

from ..audio.accumulator import ChunkAccumulator, MIN_UPLOAD_BYTES, MIN_FLUSH_BYTES
from ..audio.wav import encode_wav
from ..client.api_client import ApiClient
from ..client.upload_queue import UploadQueue
from ..errors import SessionStateError, SpeakWriteError
from ..models.audio import AudioChunk
from ..models.session import SessionState, SessionStatus, SessionResult
from ..transcription.merge import merge_transcript
from .session_publisher import SessionPublisher

logger = logging.getLogger(__name__)

CHUNK_INTERVAL_SECONDS = 8.0
DISPLAY_INTERVAL_SECONDS = 1.0


class RecordingSession:
    """Owns everything one recording needs: capture handle, accumulator,
    upload queue, timers and the transcript draft.

    States move IDLE -> RECORDING -> STOPPING -> IDLE. Every chunk the capture
    hands out goes through the accumulator; emitted blobs are uploaded one at a
    time and each returned fragment is merged into the draft. Stopping flushes
    the residual audio, waits for outstanding uploads and saves the draft.

    If the capture reports an ``error`` while recording (its thread died), the
    session stops itself as if the user had asked and ``stopped`` resolves with
    the result.

    The capture object needs ``start_recording()``, ``request_data()``,
    ``stop_recording()``, ``peak_level`` and ``error``, as AudioCapture provides.
    """

    def __init__(self,
                 capture,
                 client: ApiClient,
                 chunk_interval: float = CHUNK_INTERVAL_SECONDS,
                 display_interval: float = DISPLAY_INTERVAL_SECONDS,
                 min_upload_bytes: int = MIN_UPLOAD_BYTES,
                 min_flush_bytes: int = MIN_FLUSH_BYTES,
                 deduplicate: bool = False,
                 encoder: Optional[Callable[[bytes], bytes]] = None,
                 publisher: Optional[SessionPublisher] = None):
        """Initialize recording session.

        Args:
            capture: Audio capture source
            client: API client used for uploads and the final save
            chunk_interval: Seconds between chunk requests to the capture
            display_interval: Seconds between display ticks
            min_upload_bytes: Accumulator threshold
            min_flush_bytes: Smallest residual worth transcribing at stop
            deduplicate: Drop repeated words at chunk boundaries when merging
            encoder: Wraps raw audio for upload (defaults to 16 kHz mono WAV)
            publisher: Receives state, draft and tick updates
        """
        self.capture = capture
        self.client = client
        self.chunk_interval = chunk_interval
        self.display_interval = display_interval
        self.deduplicate = deduplicate
        self.encoder = encoder or encode_wav
        self.publisher = publisher or SessionPublisher()

        self.state = SessionState.IDLE
        self.draft = ""
        self.elapsed_seconds = 0
        self.audio_bytes = 0
        self.accumulator = ChunkAccumulator(min_upload_bytes, min_flush_bytes)
        self.upload_queue: Optional[UploadQueue] = None
        self.capture_error: Optional[str] = None
        self.stopped: Optional[asyncio.Future] = None

        self._chunk_timer: Optional[asyncio.Task] = None
        self._display_timer: Optional[asyncio.Task] = None
        self._failure_stop: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "RecordingSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.state == SessionState.RECORDING:
            await self.stop()

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self.state,
            elapsed_seconds=self.elapsed_seconds,
            draft=self.draft.strip(),
            pending_uploads=self.upload_queue.pending if self.upload_queue else 0,
            peak_level=getattr(self.capture, "peak_level", 0.0),
            capture_error=self.capture_error,
        )

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        logger.info(f"Recording session {state.value}")
        self.publisher.publish_state(self.status())

    async def start(self) -> None:
        """Acquire the microphone and begin recording.

        Raises:
            SessionStateError: If a session is already running
            OSError: If the microphone cannot be opened; nothing is left held
        """
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Cannot start while {self.state.value}")

        self.draft = ""
        self.elapsed_seconds = 0
        self.audio_bytes = 0
        self.accumulator.clear()
        self.capture_error = None
        self.stopped = asyncio.get_running_loop().create_future()

        try:
            self.capture.start_recording()
        except Exception as e:
            logger.error(f"Failed to access microphone: {e}")
            await self._release_capture()
            raise

        self.upload_queue = UploadQueue("transcribe", self._upload)
        self.upload_queue.start()
        self._chunk_timer = asyncio.create_task(self._chunk_timer_loop(), name="chunk_timer")
        self._display_timer = asyncio.create_task(self._display_timer_loop(), name="display_timer")
        self._set_state(SessionState.RECORDING)

    def on_audio_chunk(self, chunk: Optional[AudioChunk]) -> None:
        """Feed a captured chunk through the accumulator."""
        if chunk is None or chunk.size == 0:
            return

        self.audio_bytes += chunk.size
        blob = self.accumulator.add_chunk(chunk)
        if blob is not None:
            self.upload_queue.submit(blob)

    async def _chunk_timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.chunk_interval)
            if self.state != SessionState.RECORDING:
                continue
            self.on_audio_chunk(self.capture.request_data())

            error = getattr(self.capture, "error", None)
            if error is not None:
                self._on_capture_failed(error)
                return

    def _on_capture_failed(self, error: Exception) -> None:
        self.capture_error = f"Audio capture failed: {error}"
        logger.error(f"{self.capture_error}, stopping session")
        self.publisher.publish_state(self.status())
        # stop() cancels the chunk timer, so it cannot run inside it
        self._failure_stop = asyncio.create_task(self._stop_after_capture_failure(), name="capture_failed_stop")

    async def _stop_after_capture_failure(self) -> None:
        if self.state != SessionState.RECORDING:
            return
        try:
            await self.stop()
        except Exception as e:
            logger.error(f"Failed to stop session after capture failure: {e}", exc_info=True)
            if not self.stopped.done():
                self.stopped.set_exception(e)

    async def _display_timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.display_interval)
            self.elapsed_seconds += 1
            self.publisher.publish_tick(self.status())

    async def _upload(self, blob: bytes) -> None:
        text = await self.client.transcribe_chunk(self.encoder(blob), previous_text=self.draft)
        if not text:
            return

        self.draft = merge_transcript(self.draft, text, deduplicate=self.deduplicate)
        logger.debug(f"Draft now {len(self.draft)} chars")
        self.publisher.publish_draft(self.status())

    async def stop(self) -> SessionResult:
        """Stop recording, transcribe what is left and save the draft.

        The session is back in IDLE when this returns, whether or not saving
        succeeded. The draft is kept either way.

        Raises:
            SessionStateError: If no session is recording
        """
        if self.state != SessionState.RECORDING:
            raise SessionStateError(f"Cannot stop while {self.state.value}")

        self._set_state(SessionState.STOPPING)
        result = None
        try:
            await self._cancel_timers()
            self.on_audio_chunk(await self._release_capture())

            residual = self.accumulator.flush()
            if residual is not None:
                self.upload_queue.submit(residual)

            await self.upload_queue.shutdown()
            result = await self._save()
            result.capture_error = self.capture_error
            return result
        finally:
            await self._cancel_timers()
            await self._release_capture()
            if self.upload_queue is not None and self.upload_queue.worker is not None:
                self.upload_queue.worker.cancel()
            self._set_state(SessionState.IDLE)
            if result is not None and not self.stopped.done():
                self.stopped.set_result(result)

    async def _save(self) -> SessionResult:
        text = self.draft.strip()
        result = SessionResult(text=text, audio_bytes=self.audio_bytes)
        if not text:
            logger.info("Nothing transcribed, skipping save")
            return result

        try:
            await self.client.save_transcript(text, self.audio_bytes)
        except SpeakWriteError as e:
            logger.error(f"Error saving final transcription: {e.message}")
            result.error = e.message
            return result

        result.saved = True
        logger.info(f"Saved transcript ({len(text)} chars, {self.audio_bytes} bytes of audio)")
        return result

    def clear(self) -> None:
        """Discard the draft kept from the last session."""
        if self.state != SessionState.IDLE:
            raise SessionStateError("Cannot clear while recording")
        self.draft = ""

    async def _cancel_timers(self) -> None:
        for task in (self._chunk_timer, self._display_timer):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._chunk_timer = None
        self._display_timer = None

    async def _release_capture(self) -> Optional[AudioChunk]:
        """Stop the capture if it is running and return its last chunk.

        Stopping joins the capture thread, so it runs in the default executor.
        """
        if not getattr(self.capture, "is_recording", False):
            return None
        return await asyncio.get_running_loop().run_in_executor(None, self.capture.stop_recording)
