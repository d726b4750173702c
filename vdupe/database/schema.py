#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Database schema definitions for the video duplicate finder.
"""

# Fingerprints are their own table: several videos may point at one row.
MAIN_SCHEMA = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS fingerprints (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    hash_kind TEXT NOT NULL,
    hash_value TEXT NOT NULL,
    duration REAL NOT NULL,
    neighbours TEXT NOT NULL DEFAULT '[]',
    bucket INTEGER NOT NULL DEFAULT -1,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS videos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT NOT NULL UNIQUE,
    filename TEXT NOT NULL,
    size INTEGER NOT NULL,
    modified_at REAL,
    device INTEGER,
    inode INTEGER,
    num_hard_links INTEGER,
    is_hard_link INTEGER DEFAULT 0,
    is_symbolic_link INTEGER DEFAULT 0,
    symbolic_link TEXT,
    content_hash TEXT,
    duration REAL,
    width INTEGER,
    height INTEGER,
    video_codec TEXT,
    audio_codec TEXT,
    bitrate INTEGER,
    avg_frame_rate REAL,
    fingerprint_id INTEGER,
    created_at TEXT DEFAULT (datetime('now')),
    FOREIGN KEY(fingerprint_id) REFERENCES fingerprints(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS thumbnails (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fingerprint_id INTEGER NOT NULL UNIQUE,
    images TEXT NOT NULL,
    FOREIGN KEY(fingerprint_id) REFERENCES fingerprints(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_videos_identity ON videos(device, inode);
CREATE INDEX IF NOT EXISTS idx_videos_content ON videos(size, content_hash);
CREATE INDEX IF NOT EXISTS idx_videos_fingerprint ON videos(fingerprint_id);
CREATE INDEX IF NOT EXISTS idx_fingerprints_bucket ON fingerprints(bucket);
"""

# Statically mapped video columns, in insert order.
VIDEO_COLUMNS = (
    "path", "filename", "size", "modified_at", "device", "inode",
    "num_hard_links", "is_hard_link", "is_symbolic_link", "symbolic_link",
    "content_hash", "duration", "width", "height", "video_codec",
    "audio_codec", "bitrate", "avg_frame_rate", "fingerprint_id",
)
