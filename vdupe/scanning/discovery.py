#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
File discovery for the video duplicate finder.
Recursively walks the scan roots and builds a VideoDescriptor per candidate file.
"""

import logging
import os
import time
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..config import ScanOptions
from ..errors import NoVideosFoundError
from ..models import VideoDescriptor

logger = logging.getLogger(__name__)


class HardLinkTracker:
    """Remembers every (device, inode) seen during one walk."""

    def __init__(self):
        self._seen: Set[Tuple[int, int]] = set()

    def observe(self, device: int, inode: int) -> bool:
        """Record the key; True when another path already referenced it."""
        key = (device, inode)
        if key in self._seen:
            return True
        self._seen.add(key)
        return False


class FileDiscovery:
    """Single-threaded filesystem walk producing VideoDescriptors."""

    def __init__(self, options: ScanOptions):
        self.options = options
        self.links = HardLinkTracker()
        self.stats: Dict[str, int] = {}
        self._visited_dirs: Set[str] = set()

    def discover(self) -> List[VideoDescriptor]:
        """
        Walk every root and return the matching video files.

        Raises:
            NoVideosFoundError: when nothing matched across all roots.
        """
        self.stats = {
            'total_scanned': 0,
            'errors': 0,
            'filtered': 0,
            'symlinks_skipped': 0,
            'videos_found': 0,
        }
        self._visited_dirs.clear()
        videos: List[VideoDescriptor] = []

        start_time = time.perf_counter()
        for root in self.options.roots:
            if not root.is_dir():
                logger.warning("Scan root is not a directory, skipping: %s", root)
                self.stats['errors'] += 1
                continue
            logger.info("Discovering videos in %s", root)
            self._scan_recursive(root, videos)
        elapsed = time.perf_counter() - start_time

        self._log_summary(videos, elapsed)
        if not videos:
            roots = ", ".join(str(r) for r in self.options.roots)
            raise NoVideosFoundError(f"No videos found in {roots}")
        return videos

    def _scan_recursive(self, path: Path, videos: List[VideoDescriptor]) -> None:
        """Recursively scan directory for video files."""
        real = os.path.realpath(path)
        if real in self._visited_dirs:
            logger.debug("Already visited %s, skipping", path)
            return
        self._visited_dirs.add(real)

        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    self.stats['total_scanned'] += 1
                    try:
                        self._handle_entry(entry, videos)
                    except OSError as e:
                        logger.warning("Skipping %s: %s", entry.path, e)
                        self.stats['errors'] += 1
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", path, e)
            self.stats['errors'] += 1

    def _handle_entry(self, entry: os.DirEntry, videos: List[VideoDescriptor]) -> None:
        symlink_target: Optional[str] = None
        if entry.is_symlink():
            if self.options.skip_symlinks:
                self.stats['symlinks_skipped'] += 1
                return
            symlink_target = os.path.realpath(entry.path)
            if entry.is_dir(follow_symlinks=True):
                if self.options.follow_symlinks:
                    self._scan_recursive(Path(entry.path), videos)
                return

        if entry.is_dir(follow_symlinks=False):
            self._scan_recursive(Path(entry.path), videos)
            return

        if not entry.is_file(follow_symlinks=True):
            return

        if not self._matches_filters(entry.name):
            self.stats['filtered'] += 1
            return

        st = entry.stat(follow_symlinks=True)
        if st.st_size <= 0:
            self.stats['filtered'] += 1
            return
        if self.options.max_file_size > 0 and st.st_size > self.options.max_file_size:
            self.stats['filtered'] += 1
            return

        video = VideoDescriptor(
            path=str(Path(entry.path).absolute()),
            filename=entry.name,
            size=st.st_size,
            modified_at=st.st_mtime,
            device=st.st_dev,
            inode=st.st_ino,
            num_hard_links=st.st_nlink,
            is_hard_link=self.links.observe(st.st_dev, st.st_ino),
            is_symbolic_link=symlink_target is not None,
            symbolic_link=symlink_target,
        )
        videos.append(video)
        self.stats['videos_found'] += 1

    def _matches_filters(self, filename: str) -> bool:
        """Extension and filename-substring filters."""
        opts = self.options
        ext = os.path.splitext(filename)[1].lower()
        if opts.include_ext and ext not in opts.include_ext:
            return False
        if ext in opts.ignore_ext:
            return False
        lowered = filename.lower()
        if opts.include_str and not any(s.lower() in lowered for s in opts.include_str):
            return False
        if any(s.lower() in lowered for s in opts.ignore_str):
            return False
        return True

    def _log_summary(self, videos: List[VideoDescriptor], elapsed: float) -> None:
        logger.info("Discovery complete: %d videos (%d entries scanned in %.1fs)",
                    len(videos), self.stats['total_scanned'], elapsed)
        if self.stats['errors']:
            logger.info("  - Errors: %d", self.stats['errors'])
        if self.stats['symlinks_skipped']:
            logger.info("  - Symlinks skipped: %d", self.stats['symlinks_skipped'])
        if videos:
            total_gb = sum(v.size for v in videos) / (1024 ** 3)
            hard_links = sum(1 for v in videos if v.is_hard_link)
            logger.info("  - Total size: %.1f GB, hard links: %d", total_gb, hard_links)
