# vdupe/database/manager.py
import json
import logging
import sqlite3
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..config import SQLITE_BUSY_TIMEOUT
from ..errors import StoreBusyError, StoreError, StoreUnavailableError
from ..models import DuplicateBucket, Fingerprint, PersistenceTask, Thumbnails, VideoDescriptor
from .init import init_db_if_needed
from .schema import VIDEO_COLUMNS

logger = logging.getLogger(__name__)

_VIDEO_SELECT = "SELECT id, " + ", ".join(VIDEO_COLUMNS) + " FROM videos"
_VIDEO_UPSERT = (
    "INSERT INTO videos (" + ", ".join(VIDEO_COLUMNS) + ") VALUES ("
    + ", ".join("?" for _ in VIDEO_COLUMNS) + ") "
    "ON CONFLICT(path) DO UPDATE SET "
    + ", ".join(f"{c}=excluded.{c}" for c in VIDEO_COLUMNS if c != "path")
)
_FINGERPRINT_SELECT = (
    "SELECT id, hash_kind, hash_value, duration, neighbours, bucket FROM fingerprints"
)


def translate_sqlite_error(exc: sqlite3.Error) -> StoreError:
    """Classify a sqlite error as transient contention or a hard failure."""
    msg = str(exc).lower()
    if isinstance(exc, sqlite3.OperationalError) and ("locked" in msg or "busy" in msg):
        return StoreBusyError(str(exc))
    return StoreError(str(exc))


def _video_row(video: VideoDescriptor) -> Tuple[Any, ...]:
    return (
        video.path,                     # path
        video.filename,                 # filename
        video.size,                     # size
        video.modified_at,              # modified_at
        video.device,                   # device
        video.inode,                    # inode
        video.num_hard_links,           # num_hard_links
        int(video.is_hard_link),        # is_hard_link
        int(video.is_symbolic_link),    # is_symbolic_link
        video.symbolic_link,            # symbolic_link
        video.content_hash,             # content_hash
        video.duration,                 # duration
        video.width,                    # width
        video.height,                   # height
        video.video_codec,              # video_codec
        video.audio_codec,              # audio_codec
        video.bitrate,                  # bitrate
        video.avg_frame_rate,           # avg_frame_rate
        video.fingerprint_id,           # fingerprint_id
    )


def _row_to_video(row) -> VideoDescriptor:
    (vid, path, filename, size, modified_at, device, inode, num_hard_links,
     is_hard_link, is_symbolic_link, symbolic_link, content_hash, duration,
     width, height, video_codec, audio_codec, bitrate, avg_frame_rate,
     fingerprint_id) = row
    return VideoDescriptor(
        path=path,
        filename=filename,
        size=size,
        modified_at=modified_at,
        device=device,
        inode=inode,
        num_hard_links=num_hard_links or 1,
        is_hard_link=bool(is_hard_link),
        is_symbolic_link=bool(is_symbolic_link),
        symbolic_link=symbolic_link,
        content_hash=content_hash,
        duration=duration,
        width=width,
        height=height,
        video_codec=video_codec,
        audio_codec=audio_codec,
        bitrate=bitrate,
        avg_frame_rate=avg_frame_rate,
        id=vid,
        fingerprint_id=fingerprint_id,
    )


def _row_to_fingerprint(row) -> Fingerprint:
    fid, kind, value, duration, neighbours, bucket = row
    return Fingerprint(
        hash_kind=kind,
        value=value,
        duration=duration,
        neighbours=json.loads(neighbours) if neighbours else [],
        bucket=bucket if bucket is not None else -1,
        id=fid,
    )


class VideoStore:
    """SQLite-backed store for videos, fingerprints and thumbnails.

    One connection is shared by every thread that touches the store and all
    access is serialised by a lock. During fingerprinting the batch writer is
    the only caller of the write methods.
    """

    def __init__(self, db_path: Path, busy_timeout: float = SQLITE_BUSY_TIMEOUT):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        try:
            init_db_if_needed(self.db_path)
            self.conn = sqlite3.connect(str(self.db_path), timeout=busy_timeout,
                                        check_same_thread=False)
            # Pragmas for performance & integrity
            self.conn.execute("PRAGMA foreign_keys=ON;")
            self.conn.execute("PRAGMA journal_mode=WAL;")
            self.conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open store at {self.db_path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            try:
                self.conn.close()
            except sqlite3.Error:
                logger.debug("Error closing store", exc_info=True)

    # ------------------------------------------------------------------ reads

    def get_all_videos(self) -> List[VideoDescriptor]:
        with self._lock:
            rows = self._read(_VIDEO_SELECT + " ORDER BY id")
        return [_row_to_video(r) for r in rows]

    def get_all_fingerprints(self) -> List[Fingerprint]:
        """All fingerprints in store order (ascending id)."""
        with self._lock:
            rows = self._read(_FINGERPRINT_SELECT + " ORDER BY id")
        return [_row_to_fingerprint(r) for r in rows]

    def get_thumbnails(self, fingerprint_id: int) -> Thumbnails:
        with self._lock:
            rows = self._read("SELECT images FROM thumbnails WHERE fingerprint_id=?",
                              (fingerprint_id,))
        return Thumbnails.from_json(rows[0][0] if rows else None)

    def get_duplicate_buckets(self) -> List[DuplicateBucket]:
        """Buckets covering at least two videos, each fingerprint joined to its videos."""
        with self._lock:
            fp_rows = self._read(_FINGERPRINT_SELECT + " WHERE bucket >= 0 ORDER BY bucket, id")
            video_rows = self._read(
                _VIDEO_SELECT + " WHERE fingerprint_id IN "
                "(SELECT id FROM fingerprints WHERE bucket >= 0) ORDER BY id"
            )

        videos_by_fp: Dict[int, List[VideoDescriptor]] = defaultdict(list)
        for row in video_rows:
            video = _row_to_video(row)
            videos_by_fp[video.fingerprint_id].append(video)

        buckets: Dict[int, DuplicateBucket] = {}
        for row in fp_rows:
            fp = _row_to_fingerprint(row)
            bucket = buckets.setdefault(fp.bucket, DuplicateBucket(bucket_id=fp.bucket))
            bucket.fingerprints.append(fp)
            bucket.videos.extend(videos_by_fp.get(fp.id, []))

        return [b for b in buckets.values() if len(b.videos) >= 2]

    def get_shared_fingerprint_ids(self) -> Set[int]:
        """Ids of fingerprints referenced by two or more videos."""
        with self._lock:
            rows = self._read(
                "SELECT fingerprint_id FROM videos WHERE fingerprint_id IS NOT NULL "
                "GROUP BY fingerprint_id HAVING COUNT(*) >= 2"
            )
        return {r[0] for r in rows}

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            videos, total_bytes = self._read("SELECT COUNT(*), COALESCE(SUM(size), 0) FROM videos")[0]
            fingerprints = self._read("SELECT COUNT(*) FROM fingerprints")[0][0]
            bucketed = self._read("SELECT COUNT(*) FROM fingerprints WHERE bucket >= 0")[0][0]
            buckets = self._read(
                "SELECT COUNT(*) FROM (SELECT f.bucket FROM fingerprints f "
                "JOIN videos v ON v.fingerprint_id = f.id WHERE f.bucket >= 0 "
                "GROUP BY f.bucket HAVING COUNT(v.id) >= 2)"
            )[0][0]
            kinds = self._read("SELECT hash_kind, COUNT(*) FROM fingerprints GROUP BY hash_kind")
        stats = {
            "videos": int(videos or 0),
            "total_bytes": int(total_bytes or 0),
            "fingerprints": int(fingerprints or 0),
            "bucketed_fingerprints": int(bucketed or 0),
            "duplicate_groups": int(buckets or 0),
        }
        for kind, count in kinds:
            stats[f"fingerprints_{kind}"] = int(count)
        return stats

    # ----------------------------------------------------------------- writes

    def create_video_with_fingerprint(self, video: VideoDescriptor,
                                      fingerprint: Optional[Fingerprint],
                                      thumbnails: Optional[Thumbnails] = None) -> None:
        """Persist one video (and its fingerprint if not yet stored) atomically."""
        self.create_videos_with_fingerprints([PersistenceTask(video, fingerprint, thumbnails)])

    def create_videos_with_fingerprints(self, tasks: Iterable[PersistenceTask]) -> int:
        """Persist a batch of tasks in a single transaction. Returns rows written."""
        tasks = list(tasks)
        assigned: List[Fingerprint] = []
        with self._lock:
            try:
                cur = self.conn.cursor()
                for task in tasks:
                    self._insert_task(cur, task, assigned)
                self.conn.commit()
            except sqlite3.Error as e:
                self._rollback(tasks, assigned)
                raise translate_sqlite_error(e) from e
            except StoreError:
                self._rollback(tasks, assigned)
                raise
        return len(tasks)

    def bulk_update_fingerprints(self, fingerprints: Iterable[Fingerprint]) -> None:
        """Write bucket ids and neighbour lists back in one transaction."""
        rows = [(fp.bucket, json.dumps(fp.neighbours), fp.id)
                for fp in fingerprints if fp.id is not None]
        with self._lock:
            try:
                self.conn.executemany(
                    "UPDATE fingerprints SET bucket=?, neighbours=? WHERE id=?", rows)
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise translate_sqlite_error(e) from e
        logger.debug("Updated %d fingerprint rows", len(rows))

    # -------------------------------------------------------------- internals

    def _read(self, sql: str, params: Tuple[Any, ...] = ()) -> List[Tuple[Any, ...]]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise translate_sqlite_error(e) from e

    def _insert_task(self, cur: sqlite3.Cursor, task: PersistenceTask,
                     assigned: List[Fingerprint]) -> None:
        video, fp = task.video, task.fingerprint
        if fp is not None:
            if fp.is_degenerate():
                raise StoreError(f"Refusing degenerate fingerprint {fp.value!r} for {video.path}")
            if fp.id is None:
                cur.execute(
                    "INSERT INTO fingerprints (hash_kind, hash_value, duration, neighbours, bucket) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (fp.hash_kind, fp.value, fp.duration, json.dumps(fp.neighbours), fp.bucket),
                )
                fp.id = cur.lastrowid
                assigned.append(fp)
                if task.thumbnails:
                    cur.execute(
                        "INSERT INTO thumbnails (fingerprint_id, images) VALUES (?, ?)",
                        (fp.id, task.thumbnails.to_json()),
                    )
            video.fingerprint_id = fp.id
        elif video.fingerprint_id is None:
            raise StoreError(f"Video {video.path} has no fingerprint to reference")

        cur.execute(_VIDEO_UPSERT, _video_row(video))
        video.id = cur.execute("SELECT id FROM videos WHERE path=?", (video.path,)).fetchone()[0]

    def _rollback(self, tasks: List[PersistenceTask], assigned: List[Fingerprint]) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error:
            logger.warning("Rollback failed", exc_info=True)
        # ids handed out inside the failed transaction no longer exist
        for fp in assigned:
            fp.id = None
        for task in tasks:
            if task.fingerprint is not None:
                task.video.fingerprint_id = None
            task.video.id = None
