"""
Duplicate clustering over persisted fingerprints.

Two fingerprints are neighbours when their durations differ by at most
``max_duration_diff`` and their hash strings differ in at most
``max_hash_distance`` characters. Buckets are the connected components of
that relation, so fingerprints that are not directly similar still share a
bucket when a chain of neighbours links them.
"""

import logging
from collections import defaultdict
from typing import AbstractSet, Dict, List, Optional, Sequence

from .config import ClusterOptions
from .errors import HashLengthMismatchError
from .models import Fingerprint

logger = logging.getLogger(__name__)


def symbol_distance(a: str, b: str) -> int:
    """Count positions where two equal-length hash strings differ.

    Each hex digit is one symbol: this is not a bit-level Hamming distance.
    """
    if len(a) != len(b):
        raise HashLengthMismatchError(
            f"hash values must have the same length ({len(a)} != {len(b)})")
    return sum(1 for x, y in zip(a, b) if x != y)


def is_similar(f: Fingerprint, g: Fingerprint, options: ClusterOptions) -> bool:
    if abs(f.duration - g.duration) > options.max_duration_diff:
        return False
    try:
        return symbol_distance(f.value, g.value) <= options.max_hash_distance
    except HashLengthMismatchError:
        logger.debug("Skipping pair with unequal hash lengths: %s / %s", f.id, g.id)
        return False


def find_neighbors(index: int, fingerprints: Sequence[Fingerprint],
                   options: ClusterOptions) -> List[int]:
    """Indices (in store order) of every fingerprint similar to ``fingerprints[index]``."""
    current = fingerprints[index]
    return [i for i, other in enumerate(fingerprints)
            if i != index and other is not current and is_similar(current, other, options)]


def build_adjacency(fingerprints: Sequence[Fingerprint],
                    options: ClusterOptions) -> List[List[int]]:
    """Symmetric neighbour lists; each list is sorted in store order."""
    adjacency: List[List[int]] = [[] for _ in fingerprints]
    for i in range(len(fingerprints)):
        for j in range(i + 1, len(fingerprints)):
            if is_similar(fingerprints[i], fingerprints[j], options):
                adjacency[i].append(j)
                adjacency[j].append(i)
    return adjacency


def cluster_fingerprints(fingerprints: Sequence[Fingerprint],
                         options: Optional[ClusterOptions] = None,
                         shared_ids: Optional[AbstractSet[int]] = None
                         ) -> Dict[int, List[Fingerprint]]:
    """Reset and recompute bucket ids for every fingerprint in place.

    ``shared_ids`` names fingerprints referenced by two or more videos; such a
    fingerprint is a duplicate group on its own and gets a bucket even without
    neighbours. Any other fingerprint without a neighbour keeps bucket -1.
    Returns the buckets keyed by bucket id.
    """
    shared_ids = shared_ids or frozenset()
    options = options or ClusterOptions()
    logger.info("Clustering %d fingerprints (duration diff <= %s, distance <= %s)",
                len(fingerprints), options.max_duration_diff, options.max_hash_distance)

    for fp in fingerprints:
        fp.reset_cluster_state()

    adjacency = build_adjacency(fingerprints, options)
    for fp, neighbours in zip(fingerprints, adjacency):
        fp.neighbours = list(neighbours)

    next_bucket = 0
    for index, fp in enumerate(fingerprints):
        if fp.bucket != -1 or not (fp.neighbours or fp.id in shared_ids):
            continue
        _label_component(index, next_bucket, fingerprints)
        next_bucket += 1

    buckets = collect_buckets(fingerprints, shared_ids)
    logger.info("Found %d duplicate buckets", len(buckets))
    return buckets


def _label_component(start: int, bucket: int, fingerprints: Sequence[Fingerprint]) -> None:
    """Depth-first walk assigning ``bucket`` to everything reachable from ``start``."""
    visited = {start}
    stack = [start]
    while stack:
        index = stack.pop()
        fingerprints[index].bucket = bucket
        for neighbour in fingerprints[index].neighbours:
            if neighbour not in visited:
                visited.add(neighbour)
                stack.append(neighbour)


def collect_buckets(fingerprints: Sequence[Fingerprint],
                    shared_ids: Optional[AbstractSet[int]] = None) -> Dict[int, List[Fingerprint]]:
    """Buckets of two or more fingerprints, or holding one shared by several videos."""
    shared_ids = shared_ids or frozenset()
    groups: Dict[int, List[Fingerprint]] = defaultdict(list)
    for fp in fingerprints:
        if fp.bucket >= 0:
            groups[fp.bucket].append(fp)
    return {b: members for b, members in groups.items()
            if len(members) >= 2 or any(fp.id in shared_ids for fp in members)}
