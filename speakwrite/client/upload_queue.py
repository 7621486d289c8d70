"""Single-slot upload queue that keeps transcription responses in order."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class UploadQueue:
    """Runs uploads one at a time in the order they were submitted.

    At most one upload is in flight; later blobs wait behind it, so results
    are handled in emission order regardless of network latency. A failed
    upload is logged and dropped and the queue moves on.
    """

    def __init__(self, name: str, handler: Callable[[bytes], Awaitable[None]]):
        """Initialize upload queue.

        Args:
            name: Name used in log messages
            handler: Coroutine function called with each blob
        """
        self.name = name
        self.handler = handler
        self.queue: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue()
        self.worker: Optional[asyncio.Task] = None
        self.completed = 0
        self.failed = 0
        self._busy = False

    def start(self) -> None:
        if self.worker is None or self.worker.done():
            self.worker = asyncio.create_task(self._worker_loop(), name=f"upload_{self.name}")
            logger.debug(f"Started {self.name} upload worker")

    def submit(self, blob: bytes) -> None:
        """Queue a blob for upload."""
        logger.debug(f"Queueing {len(blob)} bytes for {self.name}; "
                     f"{self.queue.qsize()} already waiting")
        self.queue.put_nowait(blob)

    @property
    def pending(self) -> int:
        """Uploads queued or in flight."""
        return self.queue.qsize() + (1 if self._busy else 0)

    async def _worker_loop(self) -> None:
        while True:
            blob = await self.queue.get()
            try:
                if blob is None:
                    logger.debug(f"{self.name} upload worker received sentinel, exiting.")
                    return
                self._busy = True
                await self.handler(blob)
                self.completed += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failed += 1
                logger.error(f"{self.name} upload of {len(blob)} bytes failed: {e}", exc_info=True)
            finally:
                self._busy = False
                self.queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued upload has finished."""
        await self.queue.join()

    async def shutdown(self) -> None:
        """Finish queued uploads, then stop the worker."""
        if self.worker is None:
            return
        if not self.worker.done():
            self.queue.put_nowait(None)
            await self.worker
        self.worker = None
        logger.info(f"{self.name} upload queue shut down: "
                    f"{self.completed} completed, {self.failed} failed")
