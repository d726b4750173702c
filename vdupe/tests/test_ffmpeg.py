#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the ffprobe / ffmpeg adapter. No real executables are run.
"""

import json
import subprocess
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from vdupe.errors import CorruptVideoError, MediaToolError, ScanCancelled
from vdupe.media.ffmpeg import (
    FFmpegAdapter, format_timestamp, parse_frame_rate, parse_probe_output,
)

PROBE_OK = {
    "streams": [
        {"codec_type": "video", "codec_name": "h264", "width": 1280, "height": 720,
         "avg_frame_rate": "30000/1001"},
        {"codec_type": "audio", "codec_name": "aac"},
        {"codec_type": "subtitle", "codec_name": "mov_text"},
    ],
    "format": {"duration": "125.480000", "size": "10485760", "bit_rate": "668512"},
}


def _proc(returncode=0, out=b"", err=b""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate.return_value = (out, err)
    return proc


class TestParsing:

    def test_frame_rate(self):
        assert parse_frame_rate("25/1") == 25.0
        assert parse_frame_rate("30000/1001") == pytest.approx(29.97, rel=1e-3)
        assert parse_frame_rate("0/0") == 0.0
        assert parse_frame_rate(None) == 0.0

    def test_frame_rate_invalid(self):
        with pytest.raises(ValueError):
            parse_frame_rate("25")
        with pytest.raises(ValueError):
            parse_frame_rate("25/0")

    def test_timestamp_format(self):
        assert format_timestamp(0) == "00:00:00.000"
        assert format_timestamp(3723.5) == "01:02:03.500"
        assert format_timestamp(-4) == "00:00:00.000"

    def test_probe_output(self):
        meta = parse_probe_output(PROBE_OK, "/v/a.mp4")
        assert meta.duration == pytest.approx(125.48)
        assert (meta.width, meta.height) == (1280, 720)
        assert meta.size == 10485760
        assert meta.video_codec == "h264"
        assert meta.audio_codec == "aac"
        assert meta.bitrate == 668512
        assert meta.avg_frame_rate == pytest.approx(29.97, rel=1e-3)

    def test_missing_bitrate_is_zero(self):
        data = json.loads(json.dumps(PROBE_OK))
        del data["format"]["bit_rate"]
        assert parse_probe_output(data).bitrate == 0

    @pytest.mark.parametrize("mutate", [
        lambda d: d["streams"].pop(0),
        lambda d: d["streams"][0].update(width=0),
        lambda d: d["format"].update(duration="0"),
        lambda d: d["format"].update(size="0"),
        lambda d: d["format"].pop("duration"),
    ])
    def test_unusable_probe_is_corrupt(self, mutate):
        data = json.loads(json.dumps(PROBE_OK))
        mutate(data)
        with pytest.raises(CorruptVideoError):
            parse_probe_output(data, "/v/bad.mp4")


class TestAdapterCalls:

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_probe_metadata(self, mock_popen):
        mock_popen.return_value = _proc(out=json.dumps(PROBE_OK).encode())
        meta = FFmpegAdapter().probe_metadata("/v/a.mp4")
        assert meta.width == 1280
        cmd = mock_popen.call_args.args[0]
        assert cmd[0] == "ffprobe"
        assert cmd[-1] == "/v/a.mp4"
        assert "json" in cmd

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_probe_nonzero_exit_is_corrupt(self, mock_popen):
        mock_popen.return_value = _proc(returncode=1, err=b"moov atom not found")
        with pytest.raises(CorruptVideoError, match="moov atom"):
            FFmpegAdapter().probe_metadata("/v/a.mp4")

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_probe_invalid_json_is_corrupt(self, mock_popen):
        mock_popen.return_value = _proc(out=b"{not json")
        with pytest.raises(CorruptVideoError):
            FFmpegAdapter().probe_metadata("/v/a.mp4")

    @patch("vdupe.media.ffmpeg.subprocess.Popen", side_effect=FileNotFoundError("ffprobe"))
    def test_missing_executable(self, mock_popen):
        with pytest.raises(MediaToolError):
            FFmpegAdapter().probe_metadata("/v/a.mp4")

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_extract_frame_command(self, mock_popen):
        mock_popen.return_value = _proc(out=b"BMdata")
        data = FFmpegAdapter(frame_size=(160, 90)).extract_frame_at("/v/a.mp4", 12.25)
        assert data == b"BMdata"
        cmd = mock_popen.call_args.args[0]
        assert cmd[cmd.index("-ss") + 1] == "00:00:12.250"
        assert cmd[cmd.index("-vf") + 1] == "scale=160:90"
        assert cmd[cmd.index("-vcodec") + 1] == "bmp"
        assert cmd[-1] == "pipe:1"

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_empty_frame_is_corrupt(self, mock_popen):
        mock_popen.return_value = _proc(out=b"")
        with pytest.raises(CorruptVideoError):
            FFmpegAdapter().extract_frame_at("/v/a.mp4", 1.0)

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_cancel_kills_child(self, mock_popen):
        proc = _proc()
        proc.communicate.side_effect = [subprocess.TimeoutExpired("ffmpeg", 0.25), (b"", b"")]
        mock_popen.return_value = proc
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(ScanCancelled):
            FFmpegAdapter(cancel_event=cancel).extract_frame_at("/v/a.mp4", 1.0)
        proc.kill.assert_called_once()

    @patch("vdupe.media.ffmpeg.subprocess.Popen")
    def test_timeout_kills_child(self, mock_popen):
        calls = []

        def _communicate(timeout=None):
            calls.append(timeout)
            if len(calls) == 1:
                time.sleep(0.05)
                raise subprocess.TimeoutExpired("ffprobe", timeout)
            return b"", b""

        proc = _proc()
        proc.communicate.side_effect = _communicate
        mock_popen.return_value = proc

        with pytest.raises(MediaToolError):
            FFmpegAdapter(timeout=0.01).probe_metadata("/v/a.mp4")
        proc.kill.assert_called_once()
