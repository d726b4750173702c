#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ffprobe / ffmpeg wrapper used for metadata probing and frame extraction.
"""

import json
import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import FFMPEG_TIMEOUT_SECONDS, FRAME_HEIGHT, FRAME_WIDTH
from ..errors import CorruptVideoError, MediaToolError, ScanCancelled
from ..models import VideoMetadata

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.25


def format_timestamp(seconds: float) -> str:
    """Render seconds as ``HH:MM:SS.mmm`` for ffmpeg's ``-ss``."""
    total_ms = int(max(0.0, seconds) * 1000)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, ms = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{ms:03d}"


def parse_frame_rate(raw: Optional[str]) -> float:
    """Parse ffprobe's ``num/den`` frame rate; ``0/0`` means unknown (0.0)."""
    if not raw:
        return 0.0
    parts = str(raw).split("/")
    if len(parts) != 2:
        raise ValueError(f"invalid fraction format: {raw!r}")
    num, den = float(parts[0]), float(parts[1])
    if num == 0 and den == 0:
        return 0.0
    if den == 0:
        raise ValueError(f"division by zero in frame rate {raw!r}")
    return num / den


def parse_probe_output(data: Dict[str, Any], path: str = "") -> VideoMetadata:
    """Turn ffprobe JSON into ``VideoMetadata``; raise CorruptVideoError when unusable."""
    width = height = 0
    video_codec = audio_codec = None
    frame_rate = 0.0
    for stream in data.get("streams", []):
        kind = stream.get("codec_type")
        if kind == "video" and video_codec is None:
            width, height = int(stream.get("width") or 0), int(stream.get("height") or 0)
            if width <= 0 or height <= 0:
                raise CorruptVideoError(f"invalid video dimensions {width}x{height}: {path}")
            video_codec = stream.get("codec_name")
            try:
                frame_rate = parse_frame_rate(stream.get("avg_frame_rate"))
            except ValueError:
                frame_rate = 0.0
        elif kind == "audio" and audio_codec is None:
            audio_codec = stream.get("codec_name")
        else:
            logger.debug("Ignoring %s stream in %s", kind, path)

    if video_codec is None:
        raise CorruptVideoError(f"no video stream: {path}")

    fmt = data.get("format", {})
    try:
        size = int(fmt.get("size"))
        duration = float(fmt.get("duration"))
    except (TypeError, ValueError) as e:
        raise CorruptVideoError(f"unparsable size/duration for {path}: {e}") from e
    if size <= 0:
        raise CorruptVideoError(f"invalid size {size}: {path}")
    if duration <= 0:
        raise CorruptVideoError(f"invalid duration {duration}: {path}")

    try:
        bitrate = int(fmt.get("bit_rate"))
    except (TypeError, ValueError):
        bitrate = 0

    return VideoMetadata(
        duration=duration,
        width=width,
        height=height,
        size=size,
        video_codec=video_codec,
        audio_codec=audio_codec,
        bitrate=bitrate,
        avg_frame_rate=frame_rate,
    )


class FFmpegAdapter:
    """Runs ffprobe/ffmpeg as child processes.

    Every call honours ``cancel_event``: the child is killed and
    ``ScanCancelled`` raised as soon as the event is set.
    """

    def __init__(self, ffprobe: str = "ffprobe", ffmpeg: str = "ffmpeg",
                 timeout: float = FFMPEG_TIMEOUT_SECONDS,
                 frame_size: Tuple[int, int] = (FRAME_WIDTH, FRAME_HEIGHT),
                 cancel_event: Optional[threading.Event] = None):
        self.ffprobe = ffprobe
        self.ffmpeg = ffmpeg
        self.timeout = timeout
        self.frame_size = frame_size
        self.cancel_event = cancel_event

    def probe_metadata(self, path: Union[str, Path]) -> VideoMetadata:
        cmd = [
            self.ffprobe, "-v", "error",
            "-show_entries", "format=duration,size,bit_rate",
            "-show_entries", "stream=codec_type,codec_name,width,height,avg_frame_rate",
            "-of", "json",
            str(path),
        ]
        returncode, out, err = self._run(cmd)
        if returncode != 0:
            raise CorruptVideoError(f"ffprobe failed for {path}: {err.decode(errors='replace').strip()}")
        try:
            data = json.loads(out.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as e:
            raise CorruptVideoError(f"ffprobe returned invalid JSON for {path}: {e}") from e
        return parse_probe_output(data, str(path))

    def extract_frame_at(self, path: Union[str, Path], timestamp: float) -> bytes:
        """Grab one frame at ``timestamp`` seconds, scaled and encoded as BMP."""
        width, height = self.frame_size
        cmd = [
            self.ffmpeg, "-hide_banner", "-nostats", "-nostdin", "-loglevel", "error",
            "-ss", format_timestamp(timestamp),
            "-i", str(path),
            "-vframes", "1",
            "-vf", f"scale={width}:{height}",
            "-vcodec", "bmp",
            "-f", "image2",
            "pipe:1",
        ]
        returncode, out, err = self._run(cmd)
        if returncode != 0:
            raise CorruptVideoError(
                f"ffmpeg failed at {format_timestamp(timestamp)} for {path}: "
                f"{err.decode(errors='replace').strip()}")
        if not out:
            raise CorruptVideoError(f"no frame at {format_timestamp(timestamp)} for {path}")
        return out

    def _run(self, cmd: List[str]) -> Tuple[int, bytes, bytes]:
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                    stdin=subprocess.DEVNULL)
        except (FileNotFoundError, PermissionError) as e:
            raise MediaToolError(f"cannot run {cmd[0]}: {e}") from e

        deadline = time.monotonic() + self.timeout if self.timeout and self.timeout > 0 else None
        while True:
            try:
                out, err = proc.communicate(timeout=_POLL_SECONDS)
                return proc.returncode, out, err
            except subprocess.TimeoutExpired:
                if self.cancel_event is not None and self.cancel_event.is_set():
                    self._kill(proc)
                    raise ScanCancelled(f"{cmd[0]} cancelled")
                if deadline is not None and time.monotonic() > deadline:
                    self._kill(proc)
                    raise MediaToolError(f"{cmd[0]} exceeded {self.timeout} seconds")

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        proc.kill()
        proc.communicate()
