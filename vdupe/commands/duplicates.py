#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Duplicate listing command.

Re-clusters every stored fingerprint, then prints each duplicate group with
its videos. With as_json=True a single JSON payload is written to stdout.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import ClusterOptions
from ..jsonio import success
from ..models import DuplicateBucket
from ..scanning.scanner import VideoScanner
from ..utils.time import format_duration

logger = logging.getLogger(__name__)


def _bucket_to_dict(bucket: DuplicateBucket) -> Dict[str, Any]:
    return {
        "bucket": bucket.bucket_id,
        "fingerprints": [
            {"id": fp.id, "hash_kind": fp.hash_kind, "value": fp.value, "duration": fp.duration}
            for fp in bucket.fingerprints
        ],
        "videos": [
            {
                "id": v.id,
                "path": v.path,
                "size": v.size,
                "duration": v.duration,
                "width": v.width,
                "height": v.height,
                "video_codec": v.video_codec,
                "bitrate": v.bitrate,
                "fingerprint_id": v.fingerprint_id,
            }
            for v in bucket.videos
        ],
    }


def cmd_list_duplicates(store, cluster_options: Optional[ClusterOptions] = None,
                        recluster: bool = True, as_json: bool = False) -> int:
    """List duplicate groups.

    Args:
        store: VideoStore instance.
        cluster_options: similarity thresholds for the re-cluster pass.
        recluster: if False, report the bucket ids already stored.
        as_json: emit one JSON object instead of logs.
    """
    if recluster:
        buckets: List[DuplicateBucket] = VideoScanner(store).run_clustering(cluster_options)
    else:
        buckets = store.get_duplicate_buckets()

    if as_json:
        return success("duplicates", {
            "groups": [_bucket_to_dict(b) for b in buckets],
            "group_count": len(buckets),
            "video_count": sum(len(b) for b in buckets),
        })

    if not buckets:
        logger.info("No duplicate groups found.")
        return 0

    logger.info("=== Duplicate Groups (%d) ===", len(buckets))
    for bucket in buckets:
        logger.info("Group %d: %d videos", bucket.bucket_id, len(bucket))
        for video in sorted(bucket.videos, key=lambda v: -(v.pixels or 0)):
            logger.info("  %s  [%s, %sx%s, %.1f MB]",
                        video.path,
                        format_duration(video.duration or 0),
                        video.width, video.height,
                        video.size / (1024 ** 2))
    return 0
