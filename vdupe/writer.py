import logging
import threading
import time
from queue import Empty, Queue
from threading import Thread
from typing import List, Optional

from .config import (
    DEFAULT_BATCH_SIZE, DEFAULT_FLUSH_INTERVAL, DEFAULT_MAX_RETRIES,
    DEFAULT_QUEUE_MAX, DEFAULT_RETRY_BASE_DELAY,
)
from .errors import StoreBusyError, StoreError
from .models import PersistenceTask

logger = logging.getLogger(__name__)

_CANCEL_POLL = 0.1  # seconds between cancellation checks while idle


class BatchWriter:
    """Single consumer thread funnelling persistence tasks into the store.

    A batch is flushed when it reaches ``batch_size`` tasks or when
    ``flush_interval`` seconds have passed since the last flush. Busy errors
    are retried with exponential backoff; any other failure drops the batch.
    Once ``cancel_event`` is set the writer stops waiting on the interval and
    flushes every pending task immediately until ``close()``.
    """

    def __init__(self, store, batch_size: int = DEFAULT_BATCH_SIZE,
                 flush_interval: float = DEFAULT_FLUSH_INTERVAL,
                 max_retries: int = DEFAULT_MAX_RETRIES,
                 retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
                 cancel_event: Optional[threading.Event] = None,
                 queue_max: int = DEFAULT_QUEUE_MAX):
        self.store = store
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.max_retries = max(1, max_retries)
        self.retry_base_delay = retry_base_delay
        self.cancel_event = cancel_event
        self.q: "Queue[object]" = Queue(maxsize=queue_max)
        self._stop = object()
        self._counter_lock = threading.Lock()
        self.written = 0
        self.dropped = 0
        self.flushes = 0
        self._th = Thread(target=self._run, name="vdupe-writer", daemon=True)
        self._th.start()

    def _run(self):
        batch: List[PersistenceTask] = []
        last_flush = time.monotonic()
        while True:
            wait = max(0.0, self.flush_interval - (time.monotonic() - last_flush))
            if self.cancel_event is not None:
                wait = min(wait, _CANCEL_POLL)
            try:
                item = self.q.get(timeout=wait)
            except Empty:
                item = None
            if item is self._stop:
                break
            if item is not None:
                batch.append(item)

            due = time.monotonic() - last_flush >= self.flush_interval
            if len(batch) >= self.batch_size or (batch and (due or self._cancelled())):
                self._flush(batch)
                batch = []
                last_flush = time.monotonic()
            elif not batch and due:
                last_flush = time.monotonic()
        if batch:
            self._flush(batch)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _flush(self, batch: List[PersistenceTask]) -> None:
        for attempt in range(self.max_retries):
            try:
                count = self.store.create_videos_with_fingerprints(batch)
            except StoreBusyError as e:
                if attempt + 1 >= self.max_retries:
                    logger.error("Store still busy after %d attempts, dropping %d tasks: %s",
                                 self.max_retries, len(batch), e)
                    break
                delay = self.retry_base_delay * (2 ** attempt)
                logger.warning("Store busy (attempt %d/%d), retrying in %.2fs",
                               attempt + 1, self.max_retries, delay)
                time.sleep(delay)
            except StoreError as e:
                logger.error("Flush failed, dropping %d tasks: %s", len(batch), e)
                break
            except Exception:
                # the writer thread must outlive any single batch
                logger.exception("Unexpected error flushing %d tasks, dropping them", len(batch))
                break
            else:
                with self._counter_lock:
                    self.written += count
                    self.flushes += 1
                logger.debug("Flushed %d tasks", count)
                return

        for task in batch:
            logger.error("Dropped video %s", task.video.path)
        with self._counter_lock:
            self.dropped += len(batch)

    def submit(self, task: PersistenceTask):
        self.q.put(task)

    def close(self):
        """Signal end of input, then wait for the final flush."""
        self.q.put(self._stop)
        self._th.join()
