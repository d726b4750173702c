#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Concurrent fingerprinting of equivalence groups.

A fixed pool of worker threads pulls groups from a shared queue, runs the
fingerprint generator on each group's canonical video and hands one
persistence task per member to the single batch writer.
"""

import logging
import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import List, Optional

from ..config import (
    DEFAULT_BATCH_SIZE, DEFAULT_FLUSH_INTERVAL, DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY, DEFAULT_WORKERS,
)
from ..errors import DegenerateFingerprintError, FingerprintError, MediaError, ScanCancelled
from ..models import EquivalenceGroup, PersistenceTask
from ..writer import BatchWriter
from .progress import ProgressReporter

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorResult:
    fingerprinted: int = 0  # groups with a fresh fingerprint
    reused: int = 0         # groups that reused a stored fingerprint
    skipped: int = 0        # groups dropped for failure or degenerate content
    degenerate: int = 0
    written: int = 0        # video rows persisted
    dropped: int = 0        # video rows lost to failed flushes
    cancelled: bool = False


class FingerprintOrchestrator:
    """Runs the worker pool and the writer for one list of groups."""

    def __init__(self, store, generator, workers: int = DEFAULT_WORKERS,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 flush_interval: float = DEFAULT_FLUSH_INTERVAL,
                 max_retries: int = DEFAULT_MAX_RETRIES,
                 retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
                 progress: Optional[ProgressReporter] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.store = store
        self.generator = generator
        self.workers = workers
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.progress = progress
        self.cancel_event = cancel_event or threading.Event()
        self._lock = threading.Lock()

    def run(self, groups: List[EquivalenceGroup]) -> OrchestratorResult:
        """Process every group; returns once workers are done and the writer drained."""
        result = OrchestratorResult()
        progress = self.progress or ProgressReporter(len(groups))

        work: "Queue[EquivalenceGroup]" = Queue()
        for group in groups:
            work.put(group)

        writer = BatchWriter(
            self.store,
            batch_size=self.batch_size,
            flush_interval=self.flush_interval,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
            cancel_event=self.cancel_event,
        )

        logger.info("Fingerprinting %d groups with %d workers", len(groups), self.workers)
        threads = [
            threading.Thread(target=self._worker, args=(work, writer, progress, result),
                             name=f"vdupe-worker-{i}", daemon=True)
            for i in range(max(1, self.workers))
        ]
        try:
            for th in threads:
                th.start()
            for th in threads:
                th.join()
        finally:
            writer.close()
            progress.close()

        result.written = writer.written
        result.dropped = writer.dropped
        result.cancelled = self.cancel_event.is_set()
        logger.info("Fingerprinting done: %d new, %d reused, %d skipped, %d rows written, %d dropped",
                    result.fingerprinted, result.reused, result.skipped,
                    result.written, result.dropped)
        return result

    def _worker(self, work: "Queue[EquivalenceGroup]", writer: BatchWriter,
                progress: ProgressReporter, result: OrchestratorResult) -> None:
        while not self.cancel_event.is_set():
            try:
                group = work.get_nowait()
            except Empty:
                return
            try:
                self._process(group, writer, result)
            except ScanCancelled:
                logger.info("Cancelled while fingerprinting %s", group.canonical.path)
                return
            except Exception:
                logger.exception("Unexpected error fingerprinting %s", group.canonical.path)
                self._count(result, "skipped")
            progress.tick()

    def _process(self, group: EquivalenceGroup, writer: BatchWriter,
                 result: OrchestratorResult) -> None:
        if group.is_reused:
            for member in group.members:
                member.fingerprint_id = group.reused_fingerprint_id
                writer.submit(PersistenceTask(member))
            self._count(result, "reused")
            return

        canonical = group.canonical
        try:
            fp_result = self.generator.generate(canonical)
        except DegenerateFingerprintError as e:
            logger.info("Skipping %s: %s", canonical.path, e)
            self._count(result, "skipped", "degenerate")
            return
        except (FingerprintError, MediaError) as e:
            logger.warning("Cannot fingerprint %s: %s", canonical.path, e)
            self._count(result, "skipped")
            return

        for member in group.members:
            writer.submit(PersistenceTask(member, fp_result.fingerprint, fp_result.thumbnails))
        self._count(result, "fingerprinted")

    def _count(self, result: OrchestratorResult, *fields: str) -> None:
        with self._lock:
            for name in fields:
                setattr(result, name, getattr(result, name) + 1)
