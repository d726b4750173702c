#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Fingerprint and thumbnail records.

A ``Fingerprint`` compares by identity: videos proven identical hold the
same instance, and the store inserts it once no matter how many videos
reference it.
"""

import base64
import json
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import DEGENERATE_HASHES, HASH_HEX_LENGTH


@dataclass(eq=False)
class Fingerprint:
    """One perceptual hash record."""
    hash_kind: str
    value: str
    duration: float
    neighbours: List[int] = field(default_factory=list)
    bucket: int = -1
    id: Optional[int] = None

    def segments(self) -> List[str]:
        """Split the value into fixed-length 64-bit hex segments."""
        return [self.value[i:i + HASH_HEX_LENGTH]
                for i in range(0, len(self.value), HASH_HEX_LENGTH)]

    def is_degenerate(self) -> bool:
        """True when every segment equals a reserved sentinel."""
        segs = self.segments()
        return bool(segs) and all(is_degenerate_hash(s) for s in segs)

    def reset_cluster_state(self) -> None:
        self.bucket = -1
        self.neighbours = []


def is_degenerate_hash(value: str) -> bool:
    return value.lower() in DEGENERATE_HASHES


@dataclass
class Thumbnails:
    """Encoded frames kept for display next to a duplicate group."""
    images: List[bytes] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.images)

    def to_json(self) -> str:
        return json.dumps([base64.b64encode(img).decode("ascii") for img in self.images])

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "Thumbnails":
        if not raw:
            return cls()
        return cls([base64.b64decode(s) for s in json.loads(raw)])
