#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for filesystem discovery.
"""

import os

import pytest

from vdupe.config import ScanOptions
from vdupe.errors import NoVideosFoundError
from vdupe.scanning.discovery import FileDiscovery, HardLinkTracker


def _write(path, size=100):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


def _names(videos):
    return sorted(v.filename for v in videos)


class TestFileDiscovery:

    def test_recursive_walk_with_extension_filter(self, tmp_path):
        _write(tmp_path / "a.mp4")
        _write(tmp_path / "sub" / "deeper" / "b.MKV")
        _write(tmp_path / "notes.txt")
        videos = FileDiscovery(ScanOptions(roots=[tmp_path])).discover()
        assert _names(videos) == ["a.mp4", "b.MKV"]

    def test_descriptor_fields(self, tmp_path):
        path = _write(tmp_path / "clip.mp4", size=321)
        video = FileDiscovery(ScanOptions(roots=[tmp_path])).discover()[0]
        st = os.stat(path)
        assert video.path == str(path.absolute())
        assert video.size == 321
        assert video.device == st.st_dev
        assert video.inode == st.st_ino
        assert video.num_hard_links == 1
        assert not video.is_hard_link
        assert video.content_hash is None

    def test_ignore_ext(self, tmp_path):
        _write(tmp_path / "a.mp4")
        _write(tmp_path / "b.webm")
        videos = FileDiscovery(ScanOptions(roots=[tmp_path], ignore_ext={"webm"})).discover()
        assert _names(videos) == ["a.mp4"]

    def test_include_and_ignore_substrings(self, tmp_path):
        _write(tmp_path / "holiday-2020.mp4")
        _write(tmp_path / "holiday-sample.mp4")
        _write(tmp_path / "work.mp4")
        options = ScanOptions(roots=[tmp_path], include_str=["HOLIDAY"], ignore_str=["sample"])
        assert _names(FileDiscovery(options).discover()) == ["holiday-2020.mp4"]

    def test_size_filters(self, tmp_path):
        _write(tmp_path / "empty.mp4", size=0)
        _write(tmp_path / "small.mp4", size=10)
        _write(tmp_path / "big.mp4", size=5000)
        options = ScanOptions(roots=[tmp_path], max_file_size=1000)
        assert _names(FileDiscovery(options).discover()) == ["small.mp4"]

    def test_hard_links_flagged(self, tmp_path):
        original = _write(tmp_path / "a.mp4")
        os.link(original, tmp_path / "b.mp4")
        videos = FileDiscovery(ScanOptions(roots=[tmp_path])).discover()
        assert len(videos) == 2
        assert {v.identity_key for v in videos} == {videos[0].identity_key}
        assert sum(v.is_hard_link for v in videos) == 1
        assert all(v.num_hard_links == 2 for v in videos)

    def test_symlinks_skipped_by_default(self, tmp_path):
        target = _write(tmp_path / "real" / "a.mp4")
        os.symlink(target, tmp_path / "link.mp4")
        videos = FileDiscovery(ScanOptions(roots=[tmp_path])).discover()
        assert _names(videos) == ["a.mp4"]

    def test_symlink_recorded_when_kept(self, tmp_path):
        target = _write(tmp_path / "real" / "a.mp4")
        os.symlink(target, tmp_path / "link.mp4")
        videos = FileDiscovery(ScanOptions(roots=[tmp_path], skip_symlinks=False)).discover()
        link = next(v for v in videos if v.filename == "link.mp4")
        assert link.is_symbolic_link
        assert link.symbolic_link == os.path.realpath(target)

    def test_symlinked_dir_followed_only_when_asked(self, tmp_path):
        _write(tmp_path / "elsewhere" / "x.mp4")
        root = tmp_path / "root"
        _write(root / "a.mp4")
        os.symlink(tmp_path / "elsewhere", root / "linked")

        plain = ScanOptions(roots=[root], skip_symlinks=False)
        assert _names(FileDiscovery(plain).discover()) == ["a.mp4"]

        follow = ScanOptions(roots=[root], skip_symlinks=False, follow_symlinks=True)
        assert _names(FileDiscovery(follow).discover()) == ["a.mp4", "x.mp4"]

    def test_symlink_loop_terminates(self, tmp_path):
        _write(tmp_path / "a.mp4")
        os.symlink(tmp_path, tmp_path / "loop")
        options = ScanOptions(roots=[tmp_path], skip_symlinks=False, follow_symlinks=True)
        assert _names(FileDiscovery(options).discover()) == ["a.mp4"]

    def test_missing_root_skipped(self, tmp_path):
        _write(tmp_path / "a.mp4")
        options = ScanOptions(roots=[tmp_path / "nope", tmp_path])
        discovery = FileDiscovery(options)
        assert _names(discovery.discover()) == ["a.mp4"]
        assert discovery.stats['errors'] == 1

    def test_nothing_found_raises(self, tmp_path):
        _write(tmp_path / "readme.txt")
        with pytest.raises(NoVideosFoundError):
            FileDiscovery(ScanOptions(roots=[tmp_path])).discover()

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unreadable_directory_skipped(self, tmp_path):
        _write(tmp_path / "a.mp4")
        locked = tmp_path / "locked"
        _write(locked / "b.mp4")
        locked.chmod(0)
        try:
            discovery = FileDiscovery(ScanOptions(roots=[tmp_path]))
            assert _names(discovery.discover()) == ["a.mp4"]
            assert discovery.stats['errors'] >= 1
        finally:
            locked.chmod(0o755)


class TestHardLinkTracker:

    def test_second_sighting_is_link(self):
        tracker = HardLinkTracker()
        assert tracker.observe(1, 10) is False
        assert tracker.observe(1, 10) is True
        assert tracker.observe(2, 10) is False
