#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Perceptual fingerprints for single videos.

Fast mode hashes one collage of frames sampled from the middle 80% of the
video. Slow mode hashes one frame per second and concatenates the hashes.
Nothing here touches the store.
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

import imagehash
from PIL import Image

from ..config import (
    COLLAGE_GRID, FAST_NUM_FRAMES, FRAME_HEIGHT, FRAME_WIDTH,
    HASH_KIND_FAST, HASH_KIND_SLOW, HASH_KINDS, THUMBNAIL_QUALITY,
)
from ..errors import (
    DegenerateFingerprintError, FrameExtractionError, MediaError, ScanCancelled,
)
from ..models import Fingerprint, Thumbnails, VideoDescriptor

logger = logging.getLogger(__name__)


@dataclass
class FingerprintResult:
    fingerprint: Fingerprint
    thumbnails: Thumbnails


def fast_timestamps(duration: float, count: int = FAST_NUM_FRAMES) -> List[float]:
    """Evenly spaced sample points skipping the first and last 10%."""
    intro = duration / 10
    interval = (duration * 0.9 - intro) / count
    return [intro + i * interval for i in range(count)]


def slow_timestamps(duration: float) -> List[float]:
    """One sample per whole second of footage."""
    return [float(i) for i in range(int(math.floor(duration)))]


def decode_frame(data: bytes, size: Tuple[int, int] = (FRAME_WIDTH, FRAME_HEIGHT)) -> Image.Image:
    """Decode raw image bytes to an RGB image of exactly ``size``."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            frame = img.convert("RGB")
    except (OSError, ValueError) as e:
        raise FrameExtractionError(f"cannot decode frame: {e}") from e
    if frame.size != size:
        frame = frame.resize(size)
    return frame


def build_collage(frames: List[Image.Image], grid: int = COLLAGE_GRID) -> Image.Image:
    """Tile frames row by row into a ``grid`` x ``grid`` image."""
    if not frames:
        raise FrameExtractionError("no frames to tile")
    width, height = frames[0].size
    collage = Image.new("RGB", (width * grid, height * grid))
    for i, frame in enumerate(frames[:grid * grid]):
        row, col = divmod(i, grid)
        collage.paste(frame, (col * width, row * height))
    return collage


def encode_thumbnail(frame: Image.Image, quality: int = THUMBNAIL_QUALITY) -> bytes:
    buf = io.BytesIO()
    frame.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


class FingerprintGenerator:
    """Produces a Fingerprint and thumbnails for one video."""

    def __init__(self, adapter, mode: str = HASH_KIND_FAST,
                 num_frames: int = FAST_NUM_FRAMES, grid: int = COLLAGE_GRID,
                 frame_size: Tuple[int, int] = (FRAME_WIDTH, FRAME_HEIGHT)):
        if mode not in HASH_KINDS:
            raise ValueError(f"Unknown hash mode: {mode!r}")
        if num_frames > grid * grid:
            raise ValueError("num_frames does not fit in the collage grid")
        self.adapter = adapter
        self.mode = mode
        self.num_frames = num_frames
        self.grid = grid
        self.frame_size = frame_size

    def generate(self, video: VideoDescriptor) -> FingerprintResult:
        """
        Fingerprint ``video`` (which must carry a duration).

        Raises:
            FrameExtractionError: frames could not be obtained.
            DegenerateFingerprintError: the hash carries no information.
            ScanCancelled: the adapter was cancelled mid-call.
        """
        if not video.duration or video.duration <= 0:
            raise FrameExtractionError(f"no duration for {video.path}")
        if self.mode == HASH_KIND_FAST:
            result = self._generate_fast(video)
        else:
            result = self._generate_slow(video)

        if result.fingerprint.is_degenerate():
            raise DegenerateFingerprintError(video.path, result.fingerprint.value)
        return result

    def _extract(self, video: VideoDescriptor, timestamp: float) -> Image.Image:
        try:
            data = self.adapter.extract_frame_at(video.path, timestamp)
        except ScanCancelled:
            raise
        except MediaError as e:
            raise FrameExtractionError(str(e)) from e
        return decode_frame(data, self.frame_size)

    def _generate_fast(self, video: VideoDescriptor) -> FingerprintResult:
        frames = [self._extract(video, ts)
                  for ts in fast_timestamps(video.duration, self.num_frames)]
        collage = build_collage(frames, self.grid)
        value = str(imagehash.phash(collage))
        logger.debug("Fast hash %s for %s", value, video.path)
        fp = Fingerprint(hash_kind=HASH_KIND_FAST, value=value, duration=video.duration)
        return FingerprintResult(fp, Thumbnails([encode_thumbnail(f) for f in frames]))

    def _generate_slow(self, video: VideoDescriptor) -> FingerprintResult:
        hashes: List[str] = []
        usable: List[Image.Image] = []
        for ts in slow_timestamps(video.duration):
            try:
                frame = self._extract(video, ts)
            except FrameExtractionError as e:
                logger.debug("Skipping frame at %.0fs of %s: %s", ts, video.path, e)
                continue
            hashes.append(str(imagehash.phash(frame)))
            usable.append(frame)

        if not hashes:
            raise FrameExtractionError(f"no usable frames in {video.path}")
        logger.debug("Slow hash of %d frames for %s", len(hashes), video.path)
        fp = Fingerprint(hash_kind=HASH_KIND_SLOW, value="".join(hashes), duration=video.duration)
        middle = usable[len(usable) // 2]
        return FingerprintResult(fp, Thumbnails([encode_thumbnail(middle)]))
