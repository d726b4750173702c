#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Identity reconciliation between freshly discovered videos and the store.

A fresh video is already covered when it is the same file as a stored one
(same device and inode) or holds the same bytes (same size and content
hash). Everything else is grouped so identical new files are fingerprinted
only once.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from ..models import EquivalenceGroup, VideoDescriptor

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Groups to process: new groups first, then reused singletons."""
    groups: List[EquivalenceGroup] = field(default_factory=list)
    reused: int = 0
    new: int = 0

    @property
    def groups_to_fingerprint(self) -> int:
        return sum(1 for g in self.groups if not g.is_reused)


def filter_known_paths(fresh: Iterable[VideoDescriptor],
                       known: Iterable[VideoDescriptor]
                       ) -> Tuple[List[VideoDescriptor], List[VideoDescriptor]]:
    """Split ``fresh`` into (needs work, already stored unchanged).

    A descriptor is unchanged when path, device, inode and size all match a
    stored row.
    """
    stored = {(v.path, v.device, v.inode, v.size) for v in known}
    remaining, unchanged = [], []
    for video in fresh:
        if (video.path, video.device, video.inode, video.size) in stored:
            unchanged.append(video)
        else:
            remaining.append(video)
    if unchanged:
        logger.info("%d videos already in the store, skipping", len(unchanged))
    return remaining, unchanged


def build_equivalence_groups(fresh: List[VideoDescriptor],
                             known: Iterable[VideoDescriptor]) -> ReconcileResult:
    """Partition ``fresh`` into equivalence groups covering each video once."""
    by_identity: Dict[Tuple[int, int], VideoDescriptor] = {}
    by_content: Dict[Tuple[int, str], VideoDescriptor] = {}
    for video in known:
        if video.fingerprint_id is None:
            continue
        by_identity.setdefault(video.identity_key, video)
        if video.content_key is not None:
            by_content.setdefault(video.content_key, video)

    result = ReconcileResult()
    reused: List[EquivalenceGroup] = []
    new_identity: Dict[Tuple[int, int], EquivalenceGroup] = {}
    new_content: Dict[Tuple[int, str], EquivalenceGroup] = {}

    for video in fresh:
        match = by_identity.get(video.identity_key)
        if match is None and video.content_key is not None:
            match = by_content.get(video.content_key)
        if match is not None:
            logger.debug("%s matches stored %s", video.path, match.path)
            video.fingerprint_id = match.fingerprint_id
            reused.append(EquivalenceGroup([video], reused_fingerprint_id=match.fingerprint_id))
            continue

        if video.content_key is None:
            # unreadable content: never merged with anything
            result.groups.append(EquivalenceGroup([video]))
            continue

        group = new_identity.get(video.identity_key) or new_content.get(video.content_key)
        if group is None:
            group = EquivalenceGroup([video])
            result.groups.append(group)
        else:
            group.members.append(video)
        new_identity.setdefault(video.identity_key, group)
        new_content.setdefault(video.content_key, group)

    result.new = len(result.groups)
    result.reused = len(reused)
    result.groups.extend(reused)
    logger.info("Reconciliation: %d groups to fingerprint covering %d videos, %d reused",
                result.new, sum(len(g) for g in result.groups[:result.new]), result.reused)
    return result
