#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Global configuration and constants for the video duplicate finder.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

# File type categories
VIDEO_EXT: Set[str] = {
    ".mp4", ".m4v", ".webm", ".mkv", ".mov", ".avi", ".wmv", ".flv", ".mpeg", ".mpg",
}

DEFAULT_DB_PATH = "videos.db"

# Hash kinds
HASH_KIND_FAST = "fast"
HASH_KIND_SLOW = "slow"
HASH_KINDS = {HASH_KIND_FAST, HASH_KIND_SLOW}

# Clustering thresholds (can be overridden by CLI)
DEFAULT_MAX_DURATION_DIFF = 5
DEFAULT_MAX_HASH_DISTANCE = 4

# Fingerprint geometry
FAST_NUM_FRAMES = 9
COLLAGE_GRID = 3
FRAME_WIDTH = 160
FRAME_HEIGHT = 90
HASH_HEX_LENGTH = 16  # 64-bit perceptual hash
THUMBNAIL_QUALITY = 80

# Reserved hash values produced by featureless (solid colour) frames
DEGENERATE_HASHES = frozenset({
    "0000000000000000",
    "8000000000000000",
    "ffffffffffffffff",
})

# Processing defaults
DEFAULT_WORKERS = 4
DEFAULT_PROBE_WORKERS = 8
DEFAULT_BATCH_SIZE = 10
DEFAULT_FLUSH_INTERVAL = 2.0  # seconds
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_BASE_DELAY = 0.05  # seconds, doubled each attempt
DEFAULT_QUEUE_MAX = 1000
CONTENT_HASH_CHUNK = 64 * 1024
SQLITE_BUSY_TIMEOUT = 1.0  # seconds sqlite waits before reporting "locked"

FFMPEG_TIMEOUT_SECONDS = float(os.getenv("VDUPE_FFMPEG_TIMEOUT_SECONDS", "60"))


@dataclass
class ScanOptions:
    """Settings for one discovery + fingerprinting run."""
    roots: List[Path] = field(default_factory=lambda: [Path(".")])
    include_ext: Set[str] = field(default_factory=lambda: set(VIDEO_EXT))
    ignore_ext: Set[str] = field(default_factory=set)
    include_str: List[str] = field(default_factory=list)
    ignore_str: List[str] = field(default_factory=list)
    max_file_size: int = 0  # bytes, 0 disables the cutoff
    follow_symlinks: bool = False
    skip_symlinks: bool = True

    hash_mode: str = HASH_KIND_FAST
    workers: int = DEFAULT_WORKERS
    probe_workers: int = DEFAULT_PROBE_WORKERS

    batch_size: int = DEFAULT_BATCH_SIZE
    flush_interval: float = DEFAULT_FLUSH_INTERVAL
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY

    def __post_init__(self):
        self.roots = [Path(r) for r in self.roots]
        self.include_ext = {_normalize_ext(e) for e in self.include_ext}
        self.ignore_ext = {_normalize_ext(e) for e in self.ignore_ext}
        if self.hash_mode not in HASH_KINDS:
            raise ValueError(f"Unknown hash mode: {self.hash_mode!r}")
        if self.workers < 1 or self.probe_workers < 1:
            raise ValueError("Worker counts must be at least 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")


@dataclass
class ClusterOptions:
    """Thresholds for the similarity relation used by clustering."""
    max_duration_diff: float = DEFAULT_MAX_DURATION_DIFF
    max_hash_distance: int = DEFAULT_MAX_HASH_DISTANCE


def _normalize_ext(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def parse_csv_list(value: Optional[str]) -> List[str]:
    """Split a comma separated CLI value into trimmed, non-empty items."""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]
