#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Scan command (thin wrapper).
All pipeline logic lives in `scanning/scanner.py`; this module only adds the
CLI-facing banner, progress bar and Ctrl-C handling.
"""

import logging
import threading
from typing import Optional

from ..config import ClusterOptions, ScanOptions
from ..scanning.progress import TqdmProgress
from ..scanning.scanner import ScanSummary, VideoScanner
from ..utils.time import utc_now_str

logger = logging.getLogger(__name__)


class ScanCommand:
    def __init__(self, store, adapter=None):
        self.store = store
        self.engine = VideoScanner(store, adapter)
        self.cancel_event = threading.Event()

    def execute(self, options: ScanOptions, show_progress: bool = True,
                cluster_options: Optional[ClusterOptions] = None) -> ScanSummary:
        """
        Run discovery and fingerprinting, optionally followed by clustering.

        The pipeline runs on a background thread so Ctrl-C can cancel it
        cleanly: workers stop pulling groups and the writer flushes what it
        already holds before the KeyboardInterrupt is re-raised.
        """
        self._print_scan_header(options)

        bar = TqdmProgress(disable=not show_progress)
        outcome = {}

        def _run():
            try:
                outcome["summary"] = self.engine.run_discovery_and_fingerprinting(
                    options, progress_callback=bar, cancel_event=self.cancel_event)
            except BaseException as e:
                outcome["error"] = e

        th = threading.Thread(target=_run, name="vdupe-scan", daemon=True)
        th.start()
        try:
            while th.is_alive():
                th.join(0.2)
        except KeyboardInterrupt:
            logger.warning("Interrupted, waiting for pending writes to flush...")
            self.cancel_event.set()
            th.join()
            raise
        finally:
            bar.close()

        if "error" in outcome:
            raise outcome["error"]
        summary = outcome["summary"]
        self._print_summary(summary)

        if cluster_options is not None and not summary.cancelled:
            buckets = self.engine.run_clustering(cluster_options)
            logger.info("Duplicate groups: %d", len(buckets))
        return summary

    def _print_scan_header(self, options: ScanOptions):
        logger.info("=" * 60)
        logger.info("VIDEO DUPLICATE SCAN - %s", utc_now_str())
        logger.info("=" * 60)
        logger.info("Roots: %s", ", ".join(str(r) for r in options.roots))
        logger.info("Hash mode: %s, workers: %d (probe workers: %d)",
                    options.hash_mode, options.workers, options.probe_workers)
        logger.info("Writer batch: %d tasks / %.1fs", options.batch_size, options.flush_interval)

    def _print_summary(self, summary: ScanSummary):
        logger.info("Discovered: %d, already stored: %d, corrupted: %d, probe failures: %d",
                    summary.discovered, summary.already_known, summary.corrupted,
                    summary.probe_failed)
        logger.info("Groups: %d (fingerprinted %d, reused %d, skipped %d of which %d degenerate)",
                    summary.groups, summary.fingerprinted, summary.reused,
                    summary.skipped, summary.degenerate)
        logger.info("Rows written: %d, dropped: %d", summary.written, summary.dropped)
        if summary.cancelled:
            logger.warning("Scan was cancelled before completion")
        logger.info("SCAN COMPLETED - %s (%.1fs)", utc_now_str(), summary.elapsed)
