#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Feature extraction for the video duplicate finder: content digest plus
metadata probe for every discovered file.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import xxhash

from ..config import CONTENT_HASH_CHUNK, DEFAULT_PROBE_WORKERS
from ..errors import CorruptVideoError, MediaError, ScanCancelled
from ..models import VideoDescriptor, VideoMetadata

logger = logging.getLogger(__name__)


def compute_content_hash(path: Union[str, Path], size: int,
                         chunk_size: int = CONTENT_HASH_CHUNK) -> str:
    """xxh64 of the whole file, seeded with its size, as 16 hex chars."""
    h = xxhash.xxh64(seed=size)
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


@dataclass
class _Features:
    content_hash: Optional[str] = None
    metadata: Optional[VideoMetadata] = None
    error: Optional[MediaError] = None


@dataclass
class EnrichmentResult:
    usable: List[VideoDescriptor] = field(default_factory=list)
    corrupted: List[VideoDescriptor] = field(default_factory=list)
    failed: List[VideoDescriptor] = field(default_factory=list)


class FeatureExtractor:
    """Hashes and probes videos on a bounded thread pool.

    Results are memoised by (device, inode) so hard links to one file are
    hashed and probed once. The memo is the only state shared between the
    workers and it is guarded by a single lock.
    """

    def __init__(self, adapter, workers: int = DEFAULT_PROBE_WORKERS,
                 cancel_event: Optional[threading.Event] = None):
        self.adapter = adapter
        self.workers = workers
        self.cancel_event = cancel_event
        self._memo: Dict[Tuple[int, int], "Future[_Features]"] = {}
        self._lock = threading.Lock()

    def enrich_all(self, videos: List[VideoDescriptor]) -> EnrichmentResult:
        result = EnrichmentResult()
        if not videos:
            return result

        logger.info("Probing %d videos with %d workers", len(videos), self.workers)
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            outcomes = list(pool.map(self._enrich_one, videos))

        for video, ok in zip(videos, outcomes):
            if ok is None:
                continue  # cancelled before it ran
            if video.corrupted:
                result.corrupted.append(video)
            elif not ok:
                result.failed.append(video)
            else:
                result.usable.append(video)

        logger.info("Probe complete: %d usable, %d corrupted, %d failed",
                    len(result.usable), len(result.corrupted), len(result.failed))
        return result

    def _enrich_one(self, video: VideoDescriptor) -> Optional[bool]:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return None
        try:
            features = self._features_for(video)
        except ScanCancelled:
            return None

        video.content_hash = features.content_hash
        if features.error is not None:
            if isinstance(features.error, CorruptVideoError):
                video.corrupted = True
                logger.warning("Corrupt video %s: %s", video.path, features.error)
            else:
                logger.error("Probe failed for %s: %s", video.path, features.error)
            return False
        video.apply_metadata(features.metadata)
        return True

    def _features_for(self, video: VideoDescriptor) -> _Features:
        key = video.identity_key
        with self._lock:
            future = self._memo.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._memo[key] = future
        if not owner:
            return future.result()

        try:
            features = self._compute(video)
        except BaseException as e:
            # let the next hard link retry instead of waiting forever
            with self._lock:
                self._memo.pop(key, None)
            future.set_exception(e)
            raise
        future.set_result(features)
        return features

    def _compute(self, video: VideoDescriptor) -> _Features:
        features = _Features()
        try:
            features.content_hash = compute_content_hash(video.path, video.size)
        except OSError as e:
            logger.warning("Cannot hash %s: %s", video.path, e)
        try:
            features.metadata = self.adapter.probe_metadata(video.path)
        except MediaError as e:
            features.error = e
        return features
