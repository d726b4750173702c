#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main scanner integration for the video duplicate finder.
Coordinates all phases: discovery, probing, reconciliation, fingerprinting
and clustering.
"""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..config import ClusterOptions, ScanOptions
from ..grouping import cluster_fingerprints
from ..media import FFmpegAdapter
from ..models import DuplicateBucket
from .discovery import FileDiscovery
from .extractor import FeatureExtractor
from .fingerprint import FingerprintGenerator
from .pipeline import FingerprintOrchestrator
from .progress import ProgressReporter
from .reconcile import build_equivalence_groups, filter_known_paths

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass
class ScanSummary:
    discovered: int = 0
    already_known: int = 0
    corrupted: int = 0
    probe_failed: int = 0
    groups: int = 0
    fingerprinted: int = 0
    reused: int = 0
    skipped: int = 0
    degenerate: int = 0
    written: int = 0
    dropped: int = 0
    cancelled: bool = False
    elapsed: float = 0.0


class VideoScanner:
    """
    Pipeline entry points over one store.
    The adapter defaults to the ffprobe/ffmpeg executables on PATH.
    """

    def __init__(self, store, adapter=None):
        self.store = store
        self.adapter = adapter or FFmpegAdapter()

    def run_discovery_and_fingerprinting(self, options: ScanOptions,
                                         progress_callback: Optional[ProgressCallback] = None,
                                         cancel_event: Optional[threading.Event] = None
                                         ) -> ScanSummary:
        """
        Discover, reconcile and fingerprint every video under ``options.roots``.

        Raises:
            NoVideosFoundError: discovery found nothing.
            StoreError: the store could not be read.
        """
        cancel_event = cancel_event or threading.Event()
        if getattr(self.adapter, "cancel_event", None) is None:
            self.adapter.cancel_event = cancel_event
        summary = ScanSummary()
        start = time.perf_counter()

        # Stage 1: Discovery
        discovered = FileDiscovery(options).discover()
        summary.discovered = len(discovered)

        # Stage 2: Skip unchanged rows, then hash and probe the rest
        known = self.store.get_all_videos()
        fresh, unchanged = filter_known_paths(discovered, known)
        summary.already_known = len(unchanged)

        extractor = FeatureExtractor(self.adapter, workers=options.probe_workers,
                                     cancel_event=cancel_event)
        enriched = extractor.enrich_all(fresh)
        summary.corrupted = len(enriched.corrupted)
        summary.probe_failed = len(enriched.failed)
        if cancel_event.is_set():
            return self._finish(summary, start, cancelled=True)

        # Stage 3: Reconciliation
        reconciled = build_equivalence_groups(enriched.usable, known)
        summary.groups = len(reconciled.groups)

        # Stage 4: Fingerprinting
        progress = ProgressReporter(len(reconciled.groups))
        follower = progress.follow(progress_callback) if progress_callback else None
        orchestrator = FingerprintOrchestrator(
            self.store,
            FingerprintGenerator(self.adapter, mode=options.hash_mode),
            workers=options.workers,
            batch_size=options.batch_size,
            flush_interval=options.flush_interval,
            max_retries=options.max_retries,
            retry_base_delay=options.retry_base_delay,
            progress=progress,
            cancel_event=cancel_event,
        )
        outcome = orchestrator.run(reconciled.groups)
        if follower is not None:
            follower.join()

        summary.fingerprinted = outcome.fingerprinted
        summary.reused = outcome.reused
        summary.skipped = outcome.skipped
        summary.degenerate = outcome.degenerate
        summary.written = outcome.written
        summary.dropped = outcome.dropped
        return self._finish(summary, start, cancelled=outcome.cancelled)

    def run_clustering(self, cluster_options: Optional[ClusterOptions] = None
                       ) -> List[DuplicateBucket]:
        """Re-cluster every stored fingerprint and return the duplicate groups."""
        fingerprints = self.store.get_all_fingerprints()
        cluster_fingerprints(fingerprints, cluster_options or ClusterOptions(),
                             shared_ids=self.store.get_shared_fingerprint_ids())
        self.store.bulk_update_fingerprints(fingerprints)
        buckets = self.store.get_duplicate_buckets()
        logger.info("%d duplicate groups covering %d videos",
                    len(buckets), sum(len(b) for b in buckets))
        return buckets

    @staticmethod
    def _finish(summary: ScanSummary, start: float, cancelled: bool) -> ScanSummary:
        summary.cancelled = cancelled
        summary.elapsed = time.perf_counter() - start
        if cancelled:
            logger.warning("Scan cancelled after %.1fs", summary.elapsed)
        else:
            logger.info("Scan finished in %.1fs", summary.elapsed)
        return summary


def run_discovery_and_fingerprinting(roots: Sequence[Union[str, Path]], store,
                                     options: Optional[ScanOptions] = None,
                                     adapter=None,
                                     progress_callback: Optional[ProgressCallback] = None,
                                     cancel_event: Optional[threading.Event] = None
                                     ) -> ScanSummary:
    """Convenience wrapper: ``roots`` override ``options.roots``."""
    options = options or ScanOptions()
    options.roots = [Path(r) for r in roots]
    return VideoScanner(store, adapter).run_discovery_and_fingerprinting(
        options, progress_callback=progress_callback, cancel_event=cancel_event)


def run_clustering(store, cluster_options: Optional[ClusterOptions] = None
                   ) -> List[DuplicateBucket]:
    return VideoScanner(store).run_clustering(cluster_options)
