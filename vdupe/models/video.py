#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Data structures for video records in the video duplicate finder.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass
class VideoMetadata:
    """Media facts reported by the probe."""
    duration: float
    width: int
    height: int
    size: int
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    bitrate: int = 0
    avg_frame_rate: float = 0.0


@dataclass
class VideoDescriptor:
    """One physical video file, from enumeration through persistence."""
    path: str
    filename: str
    size: int
    modified_at: float
    device: int
    inode: int
    num_hard_links: int = 1
    is_hard_link: bool = False
    is_symbolic_link: bool = False
    symbolic_link: Optional[str] = None

    # Computed features (filled by pipeline stages)
    content_hash: Optional[str] = None
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    bitrate: Optional[int] = None
    avg_frame_rate: Optional[float] = None
    corrupted: bool = False

    # Store identity
    id: Optional[int] = None
    fingerprint_id: Optional[int] = None

    @property
    def identity_key(self) -> Tuple[int, int]:
        """Filesystem identity: equal keys mean the same file (hard links)."""
        return (self.device, self.inode)

    @property
    def content_key(self) -> Optional[Tuple[int, str]]:
        """Content identity, or None when the content hash is unknown."""
        if not self.content_hash:
            return None
        return (self.size, self.content_hash)

    @property
    def pixels(self) -> int:
        return (self.width or 0) * (self.height or 0)

    def apply_metadata(self, meta: VideoMetadata) -> None:
        self.duration = meta.duration
        self.width = meta.width
        self.height = meta.height
        self.video_codec = meta.video_codec
        self.audio_codec = meta.audio_codec
        self.bitrate = meta.bitrate
        self.avg_frame_rate = meta.avg_frame_rate
