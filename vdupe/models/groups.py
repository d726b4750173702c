#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Pipeline-internal groupings: equivalence groups, persistence tasks and
duplicate buckets.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .fingerprint import Fingerprint, Thumbnails
from .video import VideoDescriptor


@dataclass
class EquivalenceGroup:
    """Videos believed to hold the same content; only the canonical one is hashed."""
    members: List[VideoDescriptor]
    reused_fingerprint_id: Optional[int] = None

    def __post_init__(self):
        if not self.members:
            raise ValueError("EquivalenceGroup needs at least one member")

    @property
    def canonical(self) -> VideoDescriptor:
        return self.members[0]

    @property
    def is_reused(self) -> bool:
        return self.reused_fingerprint_id is not None

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class PersistenceTask:
    """One video row to write; ``fingerprint`` is None when reusing a stored id."""
    video: VideoDescriptor
    fingerprint: Optional[Fingerprint] = None
    thumbnails: Optional[Thumbnails] = None


@dataclass
class DuplicateBucket:
    """Fingerprints sharing one bucket id, joined back to their videos."""
    bucket_id: int
    fingerprints: List[Fingerprint] = field(default_factory=list)
    videos: List[VideoDescriptor] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.videos)
