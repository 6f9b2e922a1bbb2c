"""
Ingestion channel - bounded queue plus a single consumer thread.

Sensor sources push messages from their own callback threads. The
channel decouples their cadence from analyzer processing:

1. Submit: producer enqueues without blocking (drops when full)
2. Drain: one worker thread applies messages in arrival order
3. Stop: sentinel + join, after which nothing else is applied

Because exactly one worker applies messages, record()/ingest() calls on
the owning analyzer never run concurrently with each other.
"""

import logging
import queue
import threading
import time
from typing import Callable, Generic, List, Optional, TypeVar

from phonestats.config import config
from phonestats.errors import ChannelClosed

logger = logging.getLogger(__name__)

M = TypeVar('M')

_STOP = object()


class IngestionChannel(Generic[M]):
    """
    Bounded, single-consumer message channel.

    Backpressure is explicit: when the queue is full, submit() drops the
    message and counts it instead of blocking the sensor callback.
    """

    def __init__(
        self,
        name: str,
        handler: Callable[[M], bool],
        capacity: Optional[int] = None,
    ):
        """
        Args:
            name: Channel name used for the worker thread and log messages
            handler: Applies one message; returns False if it was rejected
            capacity: Max queued messages (from config if None)
        """
        self.name = name
        self.handler = handler
        self.capacity = capacity or config.ingestion.channel_capacity

        self._queue: 'queue.Queue' = queue.Queue(maxsize=self.capacity)
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._lock = threading.Lock()

        # Statistics
        self._submitted = 0
        self._processed = 0
        self._rejected = 0
        self._dropped = 0
        self._error_count = 0
        self._last_message_time: float = 0

        self._on_message_callbacks: List[Callable[[M], None]] = []

    @property
    def is_running(self) -> bool:
        return self._running

    def add_message_callback(self, callback: Callable[[M], None]) -> None:
        """Register a callback invoked after each accepted message."""
        self._on_message_callbacks.append(callback)

    def submit(self, message: M) -> bool:
        """
        Enqueue a message without blocking.

        Returns False if the queue was full and the message was dropped.
        Raises ChannelClosed if the channel is not running.
        """
        # Same lock as stop(), so nothing lands behind the stop sentinel
        with self._lock:
            if not self._running:
                raise ChannelClosed(f'Channel {self.name} is not running')

            try:
                self._queue.put_nowait(message)
            except queue.Full:
                self._dropped += 1
                dropped = self._dropped
            else:
                self._submitted += 1
                return True

        if dropped == 1 or dropped % 1000 == 0:
            logger.warning(
                f'{self.name}: queue full ({self.capacity}), '
                f'{dropped} messages dropped so far'
            )
        return False

    def _apply(self, message: M) -> None:
        try:
            accepted = self.handler(message)
        except Exception as e:
            self._error_count += 1
            logger.error(f'{self.name}: handler error: {e}')
            return

        self._processed += 1
        self._last_message_time = time.time()
        if not accepted:
            self._rejected += 1
            return

        for callback in self._on_message_callbacks:
            try:
                callback(message)
            except Exception as e:
                logger.error(f'{self.name}: message callback error: {e}')

    def run(self) -> None:
        """
        Drain the queue until the stop sentinel arrives.

        This method blocks - use start() for a background worker.
        """
        logger.debug(f'{self.name}: worker running')
        while True:
            message = self._queue.get()
            try:
                if message is _STOP:
                    break
                self._apply(message)
            finally:
                self._queue.task_done()
        logger.debug(f'{self.name}: worker exited')

    def start(self) -> None:
        """
        Start the worker thread. No-op if already running.

        Refuses to start while a worker from an earlier stop() is still
        exiting, so at most one worker ever consumes the queue.
        """
        with self._lock:
            if self._thread and self._thread.is_alive():
                if self._running:
                    logger.warning(f'{self.name}: already running')
                else:
                    logger.error(f'{self.name}: previous worker still exiting, not starting')
                return

            self._running = True
            self._thread = threading.Thread(
                target=self.run,
                name=f'{self.name}-ingestion',
                daemon=True,
            )
            self._thread.start()
        logger.info(f'{self.name}: ingestion started (capacity={self.capacity})')

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting messages and wait for the worker to exit.

        Messages already queued ahead of the stop are still applied.
        Idempotent.
        """
        timeout = config.ingestion.join_timeout_seconds if timeout is None else timeout
        with self._lock:
            if not self._running:
                return
            self._running = False
            thread = self._thread

            # The sentinel must get in even when the queue is full
            self._queue.put(_STOP)

        if thread:
            thread.join(timeout=timeout)
            if thread.is_alive():
                # Keep the reference so start() waits for this worker
                logger.error(f'{self.name}: worker did not exit within {timeout}s')
                return

        with self._lock:
            if self._thread is thread:
                self._thread = None
        logger.info(f'{self.name}: ingestion stopped')

    def drain(self) -> None:
        """Block until every queued message has been applied."""
        self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def stats(self) -> dict:
        """Get channel statistics."""
        return {
            'running': self._running,
            'capacity': self.capacity,
            'pending': self.pending,
            'submitted': self._submitted,
            'processed': self._processed,
            'rejected': self._rejected,
            'dropped': self._dropped,
            'error_count': self._error_count,
            'last_message_time': self._last_message_time,
        }
