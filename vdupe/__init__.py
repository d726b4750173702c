"""Video duplicate finder: perceptual fingerprints and near-duplicate clustering."""

__version__ = "1.0.0"
__author__ = "vdupe developers"

# Import key classes for convenient top-level access
from .config import ClusterOptions, ScanOptions
from .database import VideoStore
from .media import FFmpegAdapter
from .grouping import cluster_fingerprints, symbol_distance
from .scanning import (
    FingerprintGenerator, FingerprintOrchestrator, ProgressReporter, VideoScanner,
    run_clustering, run_discovery_and_fingerprinting,
)
from .models import DuplicateBucket, EquivalenceGroup, Fingerprint, VideoDescriptor

__all__ = [
    # Entry points
    'VideoScanner',
    'run_discovery_and_fingerprinting',
    'run_clustering',

    # Components
    'VideoStore',
    'FFmpegAdapter',
    'FingerprintGenerator',
    'FingerprintOrchestrator',
    'ProgressReporter',
    'cluster_fingerprints',
    'symbol_distance',

    # Options and data models
    'ScanOptions',
    'ClusterOptions',
    'VideoDescriptor',
    'Fingerprint',
    'EquivalenceGroup',
    'DuplicateBucket',

    # Package metadata
    '__version__',
    '__author__'
]
