"""Data models for the video duplicate finder."""

from .video import VideoDescriptor, VideoMetadata
from .fingerprint import Fingerprint, Thumbnails, is_degenerate_hash
from .groups import EquivalenceGroup, PersistenceTask, DuplicateBucket

__all__ = [
    'VideoDescriptor', 'VideoMetadata',
    'Fingerprint', 'Thumbnails', 'is_degenerate_hash',
    'EquivalenceGroup', 'PersistenceTask', 'DuplicateBucket',
]
