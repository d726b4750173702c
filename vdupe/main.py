#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main CLI entry point for the video duplicate finder.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import (
    DEFAULT_BATCH_SIZE, DEFAULT_DB_PATH, DEFAULT_FLUSH_INTERVAL, DEFAULT_MAX_DURATION_DIFF,
    DEFAULT_MAX_HASH_DISTANCE, DEFAULT_MAX_RETRIES, DEFAULT_PROBE_WORKERS, DEFAULT_WORKERS,
    HASH_KIND_FAST, HASH_KINDS, VIDEO_EXT, ClusterOptions, ScanOptions, parse_csv_list,
)
from .commands.duplicates import cmd_list_duplicates
from .commands.scan import ScanCommand
from .commands.stats import cmd_show_stats
from .database import VideoStore
from .jsonio import enable_json_logging, error, success


def setup_logging(verbose: bool, log_file: str = None):
    """Configure logging for the CLI tool."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )
    logging.debug("Verbose logging enabled (DEBUG level).")


def create_parser():
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vdupe",
        description="Find near-duplicate videos by perceptual fingerprint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # Fingerprint everything under two folders
  %(prog)s scan --source /mnt/videos --source ~/Downloads --workers 8

  # Slow, per-second fingerprints and clustering straight after
  %(prog)s scan --source /mnt/videos --hash-mode slow --cluster

  # List duplicate groups
  %(prog)s duplicates --max-hash-distance 3 --json
        """
    )

    # Global options
    parser.add_argument("--db", default=DEFAULT_DB_PATH,
                        help=f"SQLite database path (default: {DEFAULT_DB_PATH})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose (DEBUG) output")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON instead of human-readable text")
    parser.add_argument("--log-file",
                        help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    _add_scan_parser(subparsers)
    _add_duplicates_parser(subparsers)
    _add_stats_parser(subparsers)

    return parser


def _add_cluster_arguments(p):
    p.add_argument("--max-duration-diff", type=float, default=DEFAULT_MAX_DURATION_DIFF,
                   help=f"Max duration difference in seconds (default: {DEFAULT_MAX_DURATION_DIFF})")
    p.add_argument("--max-hash-distance", type=int, default=DEFAULT_MAX_HASH_DISTANCE,
                   help=f"Max differing hash characters (default: {DEFAULT_MAX_HASH_DISTANCE})")


def _add_scan_parser(subparsers):
    """Add scan command parser."""
    scan_parser = subparsers.add_parser("scan", help="Discover and fingerprint videos")
    scan_parser.add_argument("--source", action="append", required=True, dest="sources",
                             help="Directory to scan (repeatable)")
    scan_parser.add_argument("--include-ext", default=",".join(sorted(VIDEO_EXT)),
                             help="Comma separated extensions to include")
    scan_parser.add_argument("--ignore-ext", default="",
                             help="Comma separated extensions to ignore")
    scan_parser.add_argument("--include-str", default="",
                             help="Only include files whose name contains one of these (comma separated)")
    scan_parser.add_argument("--ignore-str", default="",
                             help="Ignore files whose name contains one of these (comma separated)")
    scan_parser.add_argument("--max-file-size-mb", type=int, default=0,
                             help="Skip files larger than this many MB (default: no limit)")
    scan_parser.add_argument("--follow-symlinks", action="store_true",
                             help="Descend into symlinked directories")
    scan_parser.add_argument("--keep-symlinks", action="store_true",
                             help="Record symlinked files instead of skipping them")
    scan_parser.add_argument("--hash-mode", choices=sorted(HASH_KINDS), default=HASH_KIND_FAST,
                             help="fast: one collage hash; slow: one hash per second (default: fast)")
    scan_parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS,
                             help=f"Fingerprint worker threads (default: {DEFAULT_WORKERS})")
    scan_parser.add_argument("--probe-workers", type=int, default=DEFAULT_PROBE_WORKERS,
                             help=f"Probe / hash worker threads (default: {DEFAULT_PROBE_WORKERS})")
    scan_parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE,
                             help=f"Writer batch size (default: {DEFAULT_BATCH_SIZE})")
    scan_parser.add_argument("--flush-interval", type=float, default=DEFAULT_FLUSH_INTERVAL,
                             help=f"Writer flush interval in seconds (default: {DEFAULT_FLUSH_INTERVAL})")
    scan_parser.add_argument("--max-retries", type=int, default=DEFAULT_MAX_RETRIES,
                             help=f"Attempts per batch while the store is busy (default: {DEFAULT_MAX_RETRIES})")
    scan_parser.add_argument("--no-progress", action="store_true",
                             help="Disable the progress bar")
    scan_parser.add_argument("--cluster", action="store_true",
                             help="Re-cluster duplicates after the scan")
    _add_cluster_arguments(scan_parser)


def _add_duplicates_parser(subparsers):
    """Add duplicates command parser."""
    dup_parser = subparsers.add_parser("duplicates", help="Cluster and list duplicate groups")
    dup_parser.add_argument("--no-recluster", action="store_true",
                            help="Report stored bucket ids without re-clustering")
    _add_cluster_arguments(dup_parser)


def _add_stats_parser(subparsers):
    """Add stats command parser."""
    subparsers.add_parser("stats", help="Show store statistics")


def build_scan_options(args) -> ScanOptions:
    return ScanOptions(
        roots=[Path(s).expanduser() for s in args.sources],
        include_ext=set(parse_csv_list(args.include_ext)),
        ignore_ext=set(parse_csv_list(args.ignore_ext)),
        include_str=parse_csv_list(args.include_str),
        ignore_str=parse_csv_list(args.ignore_str),
        max_file_size=args.max_file_size_mb * 1024 * 1024,
        follow_symlinks=args.follow_symlinks,
        skip_symlinks=not args.keep_symlinks,
        hash_mode=args.hash_mode,
        workers=args.workers,
        probe_workers=args.probe_workers,
        batch_size=args.batch_size,
        flush_interval=args.flush_interval,
        max_retries=args.max_retries,
    )


def build_cluster_options(args) -> ClusterOptions:
    return ClusterOptions(max_duration_diff=args.max_duration_diff,
                          max_hash_distance=args.max_hash_distance)


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # JSON mode keeps stdout for the payload only
    if args.json:
        enable_json_logging(args.log_file)
    else:
        setup_logging(args.verbose, args.log_file)

    logging.debug("Parsed arguments: %s", args)

    store = None
    try:
        store = VideoStore(Path(args.db))
        logging.info("Using database: %s", args.db)

        if args.command == "scan":
            options = build_scan_options(args)
            cluster_options = build_cluster_options(args) if args.cluster else None
            summary = ScanCommand(store).execute(
                options,
                show_progress=not (args.no_progress or args.json),
                cluster_options=cluster_options,
            )
            if args.json:
                return success("scan", summary)
            return 0

        elif args.command == "duplicates":
            return cmd_list_duplicates(store, build_cluster_options(args),
                                       recluster=not args.no_recluster, as_json=args.json)

        elif args.command == "stats":
            return cmd_show_stats(store, as_json=args.json)

    except KeyboardInterrupt:
        if args.json:
            return error(args.command, "Operation interrupted by user", code=130)
        logging.warning("Operation interrupted by user.")
        return 130
    except Exception as e:
        if args.json:
            debug_info = {"exception_type": type(e).__name__} if args.verbose else None
            return error(args.command, str(e), debug=debug_info, code=1)
        logging.error("Error occurred: %s", e, exc_info=args.verbose)
        return 1
    finally:
        if store is not None:
            store.close()


if __name__ == "__main__":
    sys.exit(main())
