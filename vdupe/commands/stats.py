#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Statistics command implementation for the video duplicate finder.

- Uses Python logging instead of print.
- If as_json is True, writes a JSON payload to stdout.
"""

import logging
from typing import Any, Dict

from ..config import HASH_KINDS
from ..jsonio import success


def cmd_show_stats(store, as_json: bool = False) -> int:
    """Show store statistics.

    Args:
        store: VideoStore instance.
        as_json: If True, emit a single JSON object to stdout instead of logs.
    """
    logger = logging.getLogger(__name__)
    stats: Dict[str, Any] = store.get_stats()

    if as_json:
        return success("stats", stats)

    logger.info("=== Store Statistics ===")
    logger.info("Videos: %s", f"{stats['videos']:,}")
    total_gb = stats["total_bytes"] / (1024 ** 3) if stats["total_bytes"] else 0.0
    logger.info("Storage: %.1f GB", total_gb)
    logger.info("Fingerprints: %s", f"{stats['fingerprints']:,}")
    for kind in sorted(HASH_KINDS):
        logger.info("  %s: %s", kind, f"{stats.get(f'fingerprints_{kind}', 0):,}")
    logger.info("Fingerprints in a bucket: %s", f"{stats['bucketed_fingerprints']:,}")
    logger.info("Duplicate groups: %s", f"{stats['duplicate_groups']:,}")
    return 0
