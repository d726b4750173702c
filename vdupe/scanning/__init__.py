"""Scanning and processing modules for the video duplicate finder."""

from .discovery import FileDiscovery, HardLinkTracker
from .extractor import EnrichmentResult, FeatureExtractor, compute_content_hash
from .fingerprint import FingerprintGenerator, FingerprintResult, fast_timestamps
from .pipeline import FingerprintOrchestrator, OrchestratorResult
from .progress import ProgressReporter, TqdmProgress
from .reconcile import ReconcileResult, build_equivalence_groups, filter_known_paths
from .scanner import ScanSummary, VideoScanner, run_clustering, run_discovery_and_fingerprinting

__all__ = [
    'FileDiscovery',
    'HardLinkTracker',
    'EnrichmentResult',
    'FeatureExtractor',
    'compute_content_hash',
    'FingerprintGenerator',
    'FingerprintResult',
    'fast_timestamps',
    'FingerprintOrchestrator',
    'OrchestratorResult',
    'ProgressReporter',
    'TqdmProgress',
    'ReconcileResult',
    'build_equivalence_groups',
    'filter_known_paths',
    'ScanSummary',
    'VideoScanner',
    'run_clustering',
    'run_discovery_and_fingerprinting',
]
